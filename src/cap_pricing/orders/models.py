"""
Order and invoice records.

Orders keep the quote configuration they were priced from and the
computed breakdown; invoices are derived from an order's breakdown.
"""
from dataclasses import dataclass, field, asdict
from typing import Optional


ORDER_STATUSES = (
    'DRAFT', 'PENDING', 'CONFIRMED', 'PROCESSING', 'SHIPPED', 'DELIVERED', 'CANCELLED',
)

INVOICE_STATUSES = ('ISSUED', 'PAID', 'VOID')

SHIPMENT_STATUSES = ('PREPARING', 'READY_TO_SHIP', 'SHIPPED', 'DELIVERED', 'CANCELLED')


@dataclass
class Order:
    """A persisted quote."""
    order_id: str
    status: str
    customer_name: str
    customer_email: Optional[str]
    quote: dict
    breakdown: dict
    created_at: str
    updated_at: str
    notes: Optional[str] = None
    shipment_id: Optional[str] = None

    @property
    def total_units(self) -> int:
        return int(self.breakdown.get('total_units', 0))

    @property
    def total_cost(self) -> float:
        return float(self.breakdown.get('total_cost', 0.0))

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'Order':
        return cls(**data)


@dataclass
class InvoiceItem:
    name: str
    description: str
    quantity: int
    unit_price: float
    total: float


@dataclass
class Invoice:
    """Invoice for a single order."""
    invoice_id: str
    number: str
    order_id: str
    status: str
    customer_name: str
    items: list[InvoiceItem] = field(default_factory=list)
    subtotal: float = 0.0
    discount: float = 0.0
    shipping: float = 0.0
    tax: float = 0.0
    total: float = 0.0
    breakdown: dict = field(default_factory=dict)
    simple: bool = False
    issued_at: str = ""
    paid_at: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'Invoice':
        payload = dict(data)
        payload['items'] = [InvoiceItem(**item) for item in payload.get('items', [])]
        return cls(**payload)


@dataclass
class Shipment:
    """A group of orders travelling together; delivery is priced on their combined units."""
    shipment_id: str
    name: str
    status: str
    created_at: str
    updated_at: str
    delivery_method: Optional[str] = None
    order_ids: list[str] = field(default_factory=list)
    notes: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'Shipment':
        return cls(**data)
