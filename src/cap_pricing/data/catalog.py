"""
Catalog Loader - Reads the CSV pricing tables into typed records.

Features:
- Configuration-driven table paths
- Case-insensitive lookups for every option table
- Build report generation with input file hashes
"""
import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from ..config.settings import BREAKPOINTS, OPTIONAL_TABLES, Settings, get_settings
from ..engine.breakpoints import price_column
from ..engine.models import (
    Accessory,
    DeliveryMethod,
    LogoMethod,
    MarginSetting,
    MoldCharge,
    PremiumClosure,
    PremiumFabric,
    PricingTier,
    Product,
    Service,
)

logger = logging.getLogger(__name__)

# Short names the order forms use for delivery methods
DELIVERY_ALIASES = {
    'regular': 'Regular Delivery',
    'priority': 'Priority Delivery',
    'air-freight': 'Air Freight',
    'sea-freight': 'Sea Freight',
}

# Scores for matching a product from loose cap specs
SPEC_WEIGHTS = {
    'panel_count': 35,
    'bill_shape': 25,
    'profile': 20,
    'structure': 15,
}


def get_file_hash(path: Path) -> str:
    """Get SHA256 hash of a file."""
    if not path.exists():
        return ""
    with open(path, 'rb') as f:
        return hashlib.sha256(f.read()).hexdigest()[:12]


def _norm(value) -> str:
    return str(value or "").strip().lower()


def _read_table(path: Path) -> pd.DataFrame:
    """Read a CSV table with stripped headers and string cells."""
    if not path.exists():
        raise FileNotFoundError(f"Pricing table not found at {path}.")

    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df.columns = [c.strip() for c in df.columns]
    for col in df.columns:
        df[col] = df[col].astype(str).str.strip()
    if 'Name' in df.columns:
        df = df[df['Name'] != '']
    return df


def _to_float(value) -> Optional[float]:
    text = str(value or "").strip().replace('$', '').replace(',', '')
    if not text:
        return None
    return float(text)


def _parse_amount(value) -> Optional[float]:
    """A flat fee cell; None when the text is not a number."""
    try:
        return _to_float(value) or 0.0
    except ValueError:
        return None


def _to_int(value) -> Optional[int]:
    number = _to_float(value)
    return int(number) if number is not None else None


def _prices(row: pd.Series) -> dict[int, Optional[float]]:
    """Breakpoint → price map for every price column present in the row."""
    prices = {}
    for bp in BREAKPOINTS:
        col = price_column(bp)
        if col in row.index:
            prices[bp] = _to_float(row[col])
    return prices


@dataclass
class Catalog:
    """All pricing tables, loaded and typed."""
    tiers: list[PricingTier] = field(default_factory=list)
    products: list[Product] = field(default_factory=list)
    logo_methods: list[LogoMethod] = field(default_factory=list)
    mold_charges: list[MoldCharge] = field(default_factory=list)
    fabrics: list[PremiumFabric] = field(default_factory=list)
    closures: list[PremiumClosure] = field(default_factory=list)
    accessories: list[Accessory] = field(default_factory=list)
    delivery_methods: list[DeliveryMethod] = field(default_factory=list)
    services: list[Service] = field(default_factory=list)
    margins: list[MarginSetting] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {
            'tiers': len(self.tiers),
            'products': len(self.products),
            'logo_methods': len(self.logo_methods),
            'mold_charges': len(self.mold_charges),
            'fabrics': len(self.fabrics),
            'closures': len(self.closures),
            'accessories': len(self.accessories),
            'delivery': len(self.delivery_methods),
            'services': len(self.services),
            'margins': len(self.margins),
        }

    # -- lookups -----------------------------------------------------------

    def find_tier(self, name: str) -> Optional[PricingTier]:
        return next((t for t in self.tiers if _norm(t.name) == _norm(name)), None)

    def find_product(self, name: str) -> Optional[Product]:
        """Find a product by name, code or nickname."""
        key = _norm(name)
        for product in self.products:
            if key in (_norm(product.name), _norm(product.code)):
                return product
        for product in self.products:
            if key in (_norm(n) for n in product.nick_names):
                return product
        return None

    def find_logo_method(self, name: str, size: str, application: str) -> Optional[LogoMethod]:
        """
        Find a logo method row for name + size + application.

        An exact name wins; otherwise a method whose name contains the
        requested name ("Rubber" → "Rubber Patch").
        """
        key = _norm(name)
        candidates = [
            m for m in self.logo_methods
            if _norm(m.size) == _norm(size) and _norm(m.application) == _norm(application)
        ]
        exact = next((m for m in candidates if _norm(m.name) == key), None)
        if exact:
            return exact
        return next((m for m in candidates if key and key in _norm(m.name)), None)

    def find_mold_charge(self, mold_type: str) -> Optional[MoldCharge]:
        """Find a mold charge by type ("Medium Mold Charge") or bare size ("Medium")."""
        size = _norm(mold_type).replace('mold charge', '').strip()
        return next((m for m in self.mold_charges if _norm(m.size) == size), None)

    def find_fabric(self, name: str) -> Optional[PremiumFabric]:
        return next((f for f in self.fabrics if _norm(f.name) == _norm(name)), None)

    def find_closure(self, name: str) -> Optional[PremiumClosure]:
        return next((c for c in self.closures if _norm(c.name) == _norm(name)), None)

    def find_accessory(self, name: str) -> Optional[Accessory]:
        return next((a for a in self.accessories if _norm(a.name) == _norm(name)), None)

    def find_delivery(self, name: str) -> Optional[DeliveryMethod]:
        """Find a delivery method by alias, exact name, then substring."""
        key = _norm(DELIVERY_ALIASES.get(_norm(name), name))
        exact = next((d for d in self.delivery_methods if _norm(d.name) == key), None)
        if exact:
            return exact
        return next((d for d in self.delivery_methods if key and key in _norm(d.name)), None)

    def find_service(self, name: str) -> Optional[Service]:
        key = _norm(name)
        return next((s for s in self.services if key in (_norm(s.name), _norm(s.slug))), None)

    def find_margin(self, category: str) -> Optional[MarginSetting]:
        """Active margin setting for a cost category, if any."""
        return next(
            (m for m in self.margins if m.is_active and _norm(m.category) == _norm(category)),
            None,
        )

    def match_product_by_specs(
        self,
        profile: Optional[str] = None,
        bill_shape: Optional[str] = None,
        panel_count: Optional[int] = None,
        structure: Optional[str] = None,
    ) -> Optional[Product]:
        """
        Best product for loose cap specs.

        Scores panel count, bill shape, profile and structure; ties keep
        catalog order. Returns None when nothing scores.
        """
        best, best_score = None, 0
        for product in self.products:
            score = 0
            if panel_count and product.panel_count == int(panel_count):
                score += SPEC_WEIGHTS['panel_count']
            if bill_shape and _norm(bill_shape) in _norm(product.bill_shape):
                score += SPEC_WEIGHTS['bill_shape']
            if profile and _norm(profile) == _norm(product.profile):
                score += SPEC_WEIGHTS['profile']
            if structure and _norm(structure) in _norm(product.structure_type):
                score += SPEC_WEIGHTS['structure']
            if score > best_score:
                best, best_score = product, score
        return best

    def table_rows(self, table: str) -> list:
        """Records of a table by its logical name."""
        tables = {
            'tiers': self.tiers,
            'products': self.products,
            'logo_methods': self.logo_methods,
            'mold_charges': self.mold_charges,
            'fabrics': self.fabrics,
            'closures': self.closures,
            'accessories': self.accessories,
            'delivery': self.delivery_methods,
            'services': self.services,
            'margins': self.margins,
        }
        if table not in tables:
            raise KeyError(table)
        return tables[table]


def load_catalog(data_dir: Optional[Path] = None, settings: Optional[Settings] = None) -> Catalog:
    """
    Load every pricing table from a data directory.

    Args:
        data_dir: Directory holding the CSV tables (defaults to settings.data_dir)
        settings: Optional settings override

    Returns:
        Catalog with typed records
    """
    settings = settings or get_settings()
    data_dir = Path(data_dir) if data_dir else settings.data_dir

    def table(name: str) -> pd.DataFrame:
        path = data_dir / settings.table_files[name]
        if name in OPTIONAL_TABLES and not path.exists():
            logger.info("Optional table %s not found at %s, skipping", name, path)
            return pd.DataFrame()
        return _read_table(path)

    catalog = Catalog()

    for _, row in table('tiers').iterrows():
        catalog.tiers.append(PricingTier(name=row['Name'], prices=_prices(row)))

    for _, row in table('products').iterrows():
        nick_names = [n.strip() for n in row.get('Nick Names', '').split(';') if n.strip()]
        catalog.products.append(Product(
            name=row['Name'],
            code=row.get('Code', ''),
            profile=row.get('Profile', ''),
            bill_shape=row.get('Bill Shape', ''),
            panel_count=_to_int(row.get('Panel Count')),
            tier_name=row.get('priceTier', ''),
            structure_type=row.get('Structure Type', ''),
            nick_names=nick_names,
        ))

    for _, row in table('logo_methods').iterrows():
        catalog.logo_methods.append(LogoMethod(
            name=row['Name'],
            prices=_prices(row),
            application=row.get('Application', '') or 'Direct',
            size=row.get('Size', ''),
            size_example=row.get('Size Example', ''),
            mold_charge_type=row.get('Mold Charge', '') or None,
        ))

    for _, row in table('mold_charges').iterrows():
        catalog.mold_charges.append(MoldCharge(
            size=row['Size'],
            size_example=row.get('Size Example', ''),
            amount=_parse_amount(row.get('Charge Amount')),
            raw_amount=row.get('Charge Amount', ''),
        ))

    for _, row in table('fabrics').iterrows():
        catalog.fabrics.append(PremiumFabric(
            name=row['Name'],
            prices=_prices(row),
            cost_type=row.get('Cost Type', '') or 'Premium Fabric',
            color_note=row.get('Color Note', ''),
        ))

    for _, row in table('closures').iterrows():
        catalog.closures.append(PremiumClosure(
            name=row['Name'],
            prices=_prices(row),
            closure_type=row.get('Type', ''),
            comments=row.get('Comments', ''),
        ))

    for _, row in table('accessories').iterrows():
        catalog.accessories.append(Accessory(name=row['Name'], prices=_prices(row)))

    for _, row in table('delivery').iterrows():
        catalog.delivery_methods.append(DeliveryMethod(
            name=row['Name'],
            prices=_prices(row),
            delivery_type=row.get('Type', ''),
            delivery_days=row.get('Delivery Days', ''),
            min_quantity=_to_int(row.get('Min Quantity')) or 0,
        ))

    for _, row in table('services').iterrows():
        catalog.services.append(Service(
            name=row['Name'],
            slug=row.get('Slug', ''),
            price=_to_float(row.get('Price')) or 0.0,
        ))

    for _, row in table('margins').iterrows():
        catalog.margins.append(MarginSetting(
            category=row['Category'],
            margin_percent=_to_float(row.get('Margin Percent')) or 0.0,
            flat_margin=_to_float(row.get('Flat Margin')) or 0.0,
            is_active=_norm(row.get('Active', 'true')) not in ('false', '0', 'no'),
        ))

    logger.info("Loaded pricing catalog from %s: %s", data_dir, catalog.counts())
    return catalog


def build_catalog_report(settings: Optional[Settings] = None, verbose: bool = True) -> dict:
    """
    Load the catalog, validate it and write a build report.

    Args:
        settings: Optional settings override
        verbose: Print progress messages

    Returns:
        Build report dictionary
    """
    from .validation import validate_catalog

    settings = settings or get_settings()

    report = {
        "timestamp": datetime.now().isoformat(),
        "status": "pending",
        "data_dir": str(settings.data_dir),
        "input_files": {},
        "metrics": {},
        "warnings": [],
        "errors": []
    }

    for table in settings.table_files:
        path = settings.table_path(table)
        report["input_files"][table] = {
            "path": str(path),
            "hash": get_file_hash(path)
        }

    try:
        catalog = load_catalog(settings=settings)
    except (FileNotFoundError, ValueError) as e:
        msg = f"ERROR: Failed to load pricing tables. {e}"
        report["errors"].append(msg)
        report["status"] = "failed"
        if verbose:
            print(msg)
        _write_report(report, settings.build_report, verbose)
        return report

    report["metrics"]["record_counts"] = catalog.counts()
    if verbose:
        for table, count in catalog.counts().items():
            print(f"Loaded {table}: {count} records")

    validation = validate_catalog(catalog)
    report["warnings"].extend(validation.warnings)
    report["errors"].extend(validation.errors)
    report["status"] = "success" if validation.valid else "failed"

    if verbose:
        for warning in validation.warnings:
            print(f"WARNING: {warning}")
        for error in validation.errors:
            print(f"ERROR: {error}")

    _write_report(report, settings.build_report, verbose)
    return report


def _write_report(report: dict, report_path: Path, verbose: bool):
    report_path.parent.mkdir(parents=True, exist_ok=True)
    with open(report_path, 'w') as f:
        json.dump(report, f, indent=2)

    if verbose:
        print(f"Build report saved to: {report_path}")


if __name__ == "__main__":
    build_catalog_report()
