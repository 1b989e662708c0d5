"""
Centralized settings and path configuration for the cap pricing tool.
"""
import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional


PACKAGE_ROOT = Path(__file__).resolve().parent.parent

# Volume breakpoints shared by every pricing table
BREAKPOINTS = (48, 144, 576, 1152, 2880, 10000, 20000)

TABLE_FILES = {
    'tiers': 'priceTier.csv',
    'products': 'products.csv',
    'logo_methods': 'logo_methods.csv',
    'mold_charges': 'mold_charges.csv',
    'fabrics': 'fabrics.csv',
    'closures': 'closures.csv',
    'accessories': 'accessories.csv',
    'delivery': 'delivery.csv',
    'services': 'services.csv',
    'margins': 'margins.csv',
}

# Tables that may be absent from a data directory
OPTIONAL_TABLES = ('margins',)


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Installed package without a checkout: fall back to the working directory
    return Path.cwd()


def _env_path(name: str) -> Optional[Path]:
    value = os.environ.get(name, "").strip()
    return Path(value) if value else None


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path

    # Pricing tables (CSV)
    data_dir: Path

    # Output / storage files
    orders_store: Path
    build_report: Path

    table_files: dict[str, str] = field(default_factory=lambda: dict(TABLE_FILES))

    def table_path(self, table: str) -> Path:
        """Path of a pricing table by its logical name."""
        return self.data_dir / self.table_files[table]

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and environment."""
        root = project_root or get_project_root()

        data_dir = _env_path('CAP_PRICING_DATA_DIR') or PACKAGE_ROOT / 'data' / 'tables'
        orders_store = _env_path('CAP_PRICING_ORDERS_PATH') or root / 'var' / 'orders.json'
        build_report = _env_path('CAP_PRICING_REPORT_PATH') or root / 'var' / 'build_report.json'

        return cls(
            project_root=root,
            data_dir=data_dir,
            orders_store=orders_store,
            build_report=build_report,
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reset_settings():
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
