"""
Data models for the pricing engine.

Uses dataclasses for structured, type-safe data representation.
Catalog records mirror the CSV pricing tables; QuoteRequest and
CostBreakdown are the engine's input and output.
"""
from dataclasses import dataclass, field
from typing import Optional


class UnknownOptionError(ValueError):
    """A selection names something the pricing tables do not carry."""

    def __init__(self, category: str, name: str, detail: str = ""):
        self.category = category
        self.name = name
        message = f"{category} not found: {name}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


@dataclass
class PricedRow:
    """Base for any catalog row that carries per-breakpoint unit prices."""
    name: str
    prices: dict[int, Optional[float]] = field(default_factory=dict)


@dataclass
class PricingTier(PricedRow):
    """Named blank-cap tier (Tier 1/2/3)."""


@dataclass
class Product:
    """A blank cap style linked to a pricing tier."""
    name: str
    code: str
    profile: str
    bill_shape: str
    panel_count: Optional[int]
    tier_name: str
    structure_type: str
    nick_names: list[str] = field(default_factory=list)


@dataclass
class LogoMethod(PricedRow):
    """A logo technique at a given application and size."""
    application: str = "Direct"
    size: str = "Medium"
    size_example: str = ""
    mold_charge_type: Optional[str] = None


@dataclass
class MoldCharge:
    """
    One-time flat fee for a physical mold, keyed by size.

    amount is None when the table cell could not be read as a number;
    raw_amount keeps the cell text for validation messages.
    """
    size: str
    size_example: str
    amount: Optional[float]
    raw_amount: str = ""

    @property
    def is_numeric(self) -> bool:
        return self.amount is not None


@dataclass
class MarginSetting:
    """Markup applied to the factory unit price of one cost category."""
    category: str
    margin_percent: float = 0.0
    flat_margin: float = 0.0
    is_active: bool = True

    def apply(self, factory_price: float) -> float:
        """factory + factory x percent / 100 + flat, never below zero."""
        return max(0.0, factory_price + factory_price * self.margin_percent / 100 + self.flat_margin)


@dataclass
class PremiumFabric(PricedRow):
    cost_type: str = "Premium Fabric"
    color_note: str = ""

    @property
    def is_free(self) -> bool:
        return self.cost_type.strip().lower() == "free"


@dataclass
class PremiumClosure(PricedRow):
    closure_type: str = ""
    comments: str = ""


@dataclass
class Accessory(PricedRow):
    pass


@dataclass
class DeliveryMethod(PricedRow):
    delivery_type: str = ""
    delivery_days: str = ""
    min_quantity: int = 0


@dataclass
class Service:
    """Flat-rate service (graphics, sampling); not multiplied by quantity."""
    name: str
    slug: str
    price: float


# ---------------------------------------------------------------------------
# Quote input
# ---------------------------------------------------------------------------

@dataclass
class LogoSelection:
    """One logo on the cap."""
    name: str
    size: str = "Medium"
    application: str = "Direct"
    position: Optional[str] = None


@dataclass
class QuoteRequest:
    """
    A quote configuration (the Order Builder state).

    Quantity is either given directly or summed from colors:
    {"Black": {"S/M": 48, "L/XL": 96}}.
    """
    product_name: Optional[str] = None
    price_tier: Optional[str] = None
    quantity: int = 0
    colors: Optional[dict[str, dict[str, int]]] = None
    logos: list[LogoSelection] = field(default_factory=list)
    fabric: Optional[str] = None
    closure: Optional[str] = None
    accessories: list[str] = field(default_factory=list)
    delivery_method: Optional[str] = None
    services: list[str] = field(default_factory=list)

    # Combined units of the shipment this order travels in (bulk delivery pricing)
    shipment_quantity: Optional[int] = None

    # Reorders reuse the existing mold
    previous_order_number: Optional[str] = None

    # Sell at factory cost plus the category margins
    apply_margins: bool = False

    def total_units(self) -> int:
        """Units from colors when given, else the plain quantity."""
        if self.colors:
            total = 0
            for color, sizes in self.colors.items():
                for size, qty in (sizes or {}).items():
                    qty = int(qty or 0)
                    if qty < 0:
                        raise ValueError(f"Negative quantity for {color} {size}: {qty}")
                    total += qty
            return total
        return int(self.quantity or 0)

    @classmethod
    def from_dict(cls, data: dict) -> 'QuoteRequest':
        """Build a request from plain JSON-style data."""
        payload = dict(data)
        payload['logos'] = [
            logo if isinstance(logo, LogoSelection) else LogoSelection(**logo)
            for logo in payload.get('logos') or []
        ]
        payload['accessories'] = list(payload.get('accessories') or [])
        payload['services'] = list(payload.get('services') or [])
        return cls(**payload)


# ---------------------------------------------------------------------------
# Quote output
# ---------------------------------------------------------------------------

CATEGORIES = (
    'base_product', 'logo', 'mold_charge', 'premium_fabric',
    'closure', 'accessory', 'delivery', 'service',
)

MERCHANDISE_CATEGORIES = ('base_product', 'logo', 'premium_fabric', 'closure', 'accessory')


@dataclass
class TraceStep:
    """A single step in the pricing resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass
class CostLine:
    """A single priced line in a quote breakdown."""
    name: str
    category: str
    quantity: int
    unit_price: float
    cost: float
    breakpoint: Optional[int] = None
    details: str = ""
    savings: float = 0.0
    waived: bool = False
    waiver_reason: Optional[str] = None
    factory_unit_price: Optional[float] = None

    @property
    def margin(self) -> float:
        """Amount above factory cost on this line."""
        if self.factory_unit_price is None or self.waived:
            return 0.0
        return self.cost - round(self.factory_unit_price * self.quantity, 2)


@dataclass
class CostBreakdown:
    """Complete result of a quote calculation."""
    total_units: int
    product_name: Optional[str]
    price_tier: str
    lines: list[CostLine] = field(default_factory=list)
    category_totals: dict[str, float] = field(default_factory=dict)
    merchandise_subtotal: float = 0.0
    total_cost: float = 0.0
    total_savings: float = 0.0
    total_margin: float = 0.0
    margins_applied: bool = False
    estimated_lead_time: str = ""
    warnings: list[str] = field(default_factory=list)
    trace: list[TraceStep] = field(default_factory=list)

    def add_line(self, line: CostLine):
        self.lines.append(line)

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the result-level trace."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def add_warning(self, warning: str):
        """Add a result-level warning."""
        if warning not in self.warnings:
            self.warnings.append(warning)

    def lines_for(self, category: str) -> list[CostLine]:
        return [line for line in self.lines if line.category == category]

    def finalize(self):
        """Aggregate category totals and grand totals from the lines."""
        totals = {category: 0.0 for category in CATEGORIES}
        for line in self.lines:
            if line.waived:
                continue
            totals[line.category] = totals.get(line.category, 0.0) + line.cost

        self.category_totals = {k: round(v, 2) for k, v in totals.items()}
        self.merchandise_subtotal = round(sum(totals[c] for c in MERCHANDISE_CATEGORIES), 2)
        self.total_cost = round(sum(totals.values()), 2)
        self.total_savings = round(sum(line.savings for line in self.lines), 2)
        self.total_margin = round(sum(line.margin for line in self.lines), 2)

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"• {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"• {t.step}: {t.description}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Batch item lookups
# ---------------------------------------------------------------------------

ITEM_TYPES = ('product', 'logo', 'fabric', 'closure', 'accessory', 'delivery')


@dataclass
class ItemPriceRequest:
    """A single table lookup: one item at one quantity."""
    type: str
    name: str
    quantity: int
    size: str = "Medium"
    application: str = "Direct"


@dataclass
class ItemPrice:
    """Result of an item lookup; error is set instead of a price on failure."""
    type: str
    name: str
    quantity: int
    unit_price: Optional[float] = None
    total: Optional[float] = None
    breakpoint: Optional[int] = None
    error: Optional[str] = None
