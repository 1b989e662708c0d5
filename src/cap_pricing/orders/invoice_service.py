"""
Invoice Service - Builds invoices from priced orders.

Detailed invoices list every billable breakdown line; simple invoices
collapse the order into one customer-facing line.
"""
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

from .models import INVOICE_STATUSES, Invoice, InvoiceItem, Order
from .store import JsonStore


class InvoiceNotFoundError(LookupError):
    """No invoice with the requested ID."""


# Customer-facing groups for the simple invoice description
SIMPLE_GROUPS = (
    ('Caps', ('base_product',)),
    ('Logos', ('logo', 'mold_charge')),
    ('Options', ('premium_fabric', 'closure', 'accessory', 'service')),
    ('Delivery', ('delivery',)),
)


def format_currency(amount: float) -> str:
    return f"${amount:,.2f}"


def invoice_totals(subtotal: float, discount: float = 0.0, shipping: float = 0.0,
                   tax: Optional[float] = None, tax_rate: Optional[float] = None) -> dict:
    """
    Invoice arithmetic.

    total = subtotal - discount + shipping + tax; a tax rate applies to
    (subtotal - discount + shipping) when no flat tax is given.
    """
    if discount < 0 or shipping < 0 or (tax is not None and tax < 0):
        raise ValueError("discount, shipping and tax must not be negative")

    if tax is None:
        tax = (subtotal - discount + shipping) * tax_rate if tax_rate else 0.0

    total = subtotal - discount + shipping + tax
    return {
        'subtotal': round(subtotal, 2),
        'discount': round(discount, 2),
        'shipping': round(shipping, 2),
        'tax': round(tax, 2),
        'total': round(total, 2),
    }


def detailed_items(order: Order) -> list[InvoiceItem]:
    """One invoice item per billable breakdown line."""
    items = []
    for line in order.breakdown.get('lines', []):
        if line.get('waived'):
            continue
        items.append(InvoiceItem(
            name=line['name'],
            description=line.get('details') or line['category'].replace('_', ' ').title(),
            quantity=line['quantity'],
            unit_price=line['unit_price'],
            total=line['cost'],
        ))
    return items


def simple_items(order: Order) -> list[InvoiceItem]:
    """A single line describing the whole order."""
    totals = order.breakdown.get('category_totals', {})
    parts = []
    for label, categories in SIMPLE_GROUPS:
        amount = sum(totals.get(c, 0.0) for c in categories)
        if amount > 0:
            parts.append(f"{label}: {format_currency(amount)}")

    description = f"Complete order with {order.total_units} units including customization"
    if parts:
        description += f" ({', '.join(parts)})"

    name = order.breakdown.get('product_name') or 'Custom Cap Order'
    return [InvoiceItem(
        name=name,
        description=description,
        quantity=1,
        unit_price=order.total_cost,
        total=order.total_cost,
    )]


class InvoiceService:
    """Service for issuing and settling invoices."""

    COLLECTION = 'invoices'

    def __init__(self, store_path: Path):
        self.store = JsonStore(store_path)

    def list_invoices(self, order_id: Optional[str] = None, status: Optional[str] = None) -> list[Invoice]:
        invoices = [Invoice.from_dict(row) for row in self.store.read(self.COLLECTION)]
        if order_id:
            invoices = [i for i in invoices if i.order_id == order_id]
        if status:
            status = status.upper()
            if status not in INVOICE_STATUSES:
                raise ValueError(
                    f"Unknown invoice status '{status}'. Expected one of: {', '.join(INVOICE_STATUSES)}"
                )
            invoices = [i for i in invoices if i.status == status]
        return invoices

    def get_invoice(self, invoice_id: str) -> Invoice:
        for invoice in self.list_invoices():
            if invoice.invoice_id == invoice_id:
                return invoice
        raise InvoiceNotFoundError(f"Invoice '{invoice_id}' not found")

    def create_invoice(
        self,
        order: Order,
        discount: float = 0.0,
        shipping: float = 0.0,
        tax: Optional[float] = None,
        tax_rate: Optional[float] = None,
        simple: bool = False,
    ) -> Invoice:
        """Issue an invoice for an order."""
        if order.status == 'CANCELLED':
            raise ValueError(f"Order '{order.order_id}' is cancelled")

        items = simple_items(order) if simple else detailed_items(order)
        totals = invoice_totals(order.total_cost, discount, shipping, tax, tax_rate)

        now = datetime.now()
        invoices = self.list_invoices()
        invoice = Invoice(
            invoice_id=uuid.uuid4().hex[:12],
            number=self._next_number(invoices, now),
            order_id=order.order_id,
            status='ISSUED',
            customer_name=order.customer_name,
            items=items,
            breakdown=dict(order.breakdown.get('category_totals', {})),
            simple=simple,
            issued_at=now.isoformat(),
            **totals,
        )

        invoices.append(invoice)
        self._write_invoices(invoices)
        return invoice

    def mark_paid(self, invoice_id: str) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        if invoice.status == 'VOID':
            raise ValueError(f"Invoice '{invoice.number}' is void")
        return self._update(invoice_id, status='PAID', paid_at=datetime.now().isoformat())

    def void_invoice(self, invoice_id: str) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        if invoice.status == 'PAID':
            raise ValueError(f"Invoice '{invoice.number}' is already paid")
        return self._update(invoice_id, status='VOID')

    @staticmethod
    def _next_number(invoices: list[Invoice], now: datetime) -> str:
        """Sequential number within the month: INV-YYYYMM-NNNN."""
        prefix = f"INV-{now:%Y%m}-"
        count = sum(1 for i in invoices if i.number.startswith(prefix))
        return f"{prefix}{count + 1:04d}"

    def _update(self, invoice_id: str, **changes) -> Invoice:
        invoices = self.list_invoices()
        for i, invoice in enumerate(invoices):
            if invoice.invoice_id == invoice_id:
                for key, value in changes.items():
                    setattr(invoice, key, value)
                invoices[i] = invoice
                self._write_invoices(invoices)
                return invoice
        raise InvoiceNotFoundError(f"Invoice '{invoice_id}' not found")

    def _write_invoices(self, invoices: list[Invoice]):
        self.store.write(self.COLLECTION, [i.to_dict() for i in invoices])
