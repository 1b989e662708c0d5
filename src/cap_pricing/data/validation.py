"""
Catalog validation - integrity checks over the loaded pricing tables.

Nothing here blocks a lookup; results feed the build report and the
system status endpoint.
"""
from dataclasses import dataclass, field
from collections import Counter

from ..config.settings import OPTIONAL_TABLES
from ..engine.breakpoints import is_non_increasing
from ..engine.models import CATEGORIES
from .catalog import Catalog


@dataclass
class ValidationResult:
    """Result of catalog validation."""
    valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    statistics: dict = field(default_factory=dict)

    def error(self, message: str):
        self.errors.append(message)
        self.valid = False

    def warn(self, message: str):
        self.warnings.append(message)


def _check_priced_rows(result: ValidationResult, label: str, rows, warn_zero: bool = False):
    """Negative, increasing and (optionally) zero price checks for a priced table."""
    for row in rows:
        prices = [p for p in row.prices.values() if p is not None]
        if any(p < 0 for p in prices):
            result.error(f"{label} '{row.name}' has negative prices")
        if not is_non_increasing(row.prices):
            result.warn(f"{label} '{row.name}' has increasing prices at higher volumes")
        if warn_zero and any(p == 0 for p in prices):
            result.warn(f"{label} '{row.name}' has zero prices")


def _check_duplicates(result: ValidationResult, label: str, keys):
    for key, count in Counter(keys).items():
        if count > 1:
            result.warn(f"Duplicate {label}: {key} ({count} rows)")


def validate_catalog(catalog: Catalog) -> ValidationResult:
    """
    Validate a loaded catalog.

    Errors: negative prices, products pointing at unknown tiers, logo
    methods pointing at unknown mold sizes, non-numeric or negative mold
    charges, margins for unknown cost categories.
    Warnings: empty tables, prices rising with volume, zero tier prices,
    duplicate names.
    """
    result = ValidationResult()
    result.statistics["record_counts"] = catalog.counts()

    for table, count in catalog.counts().items():
        if count == 0 and table not in OPTIONAL_TABLES:
            result.warn(f"{table} is empty")

    _check_priced_rows(result, "Pricing tier", catalog.tiers, warn_zero=True)
    _check_priced_rows(result, "Logo method", catalog.logo_methods)
    _check_priced_rows(result, "Fabric", catalog.fabrics)
    _check_priced_rows(result, "Closure", catalog.closures)
    _check_priced_rows(result, "Accessory", catalog.accessories)
    _check_priced_rows(result, "Delivery method", catalog.delivery_methods)

    # Products must resolve to a tier
    orphans = 0
    for product in catalog.products:
        if not catalog.find_tier(product.tier_name):
            result.error(f"Product '{product.name}' references unknown tier '{product.tier_name}'")
            orphans += 1
    result.statistics["orphan_products"] = orphans

    # Logo mold types must resolve to a mold charge
    for method in catalog.logo_methods:
        if method.mold_charge_type and not catalog.find_mold_charge(method.mold_charge_type):
            result.error(
                f"Logo method '{method.name}' ({method.size}) references unknown mold charge "
                f"'{method.mold_charge_type}'"
            )

    for mold in catalog.mold_charges:
        if not mold.is_numeric:
            result.error(f"Mold charge '{mold.size}' is not numeric ('{mold.raw_amount}')")
        elif mold.amount < 0:
            result.error(f"Mold charge '{mold.size}' is negative")

    for margin in catalog.margins:
        if margin.category not in CATEGORIES:
            result.error(f"Margin setting references unknown category '{margin.category}'")
        if margin.margin_percent < 0 or margin.flat_margin < 0:
            result.warn(f"Margin setting '{margin.category}' sells below factory cost")

    for service in catalog.services:
        if service.price < 0:
            result.error(f"Service '{service.name}' has a negative price")

    _check_duplicates(result, "pricing tier", [t.name.lower() for t in catalog.tiers])
    _check_duplicates(result, "product", [p.name.lower() for p in catalog.products])
    _check_duplicates(
        result, "logo method",
        [f"{m.name} / {m.size} / {m.application}".lower() for m in catalog.logo_methods],
    )
    _check_duplicates(result, "fabric", [f.name.lower() for f in catalog.fabrics])
    _check_duplicates(result, "closure", [c.name.lower() for c in catalog.closures])
    _check_duplicates(result, "accessory", [a.name.lower() for a in catalog.accessories])
    _check_duplicates(result, "delivery method", [d.name.lower() for d in catalog.delivery_methods])
    _check_duplicates(result, "margin category", [m.category.lower() for m in catalog.margins if m.is_active])

    return result
