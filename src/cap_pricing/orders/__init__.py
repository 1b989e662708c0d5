"""Orders subpackage - persisted quotes, their invoices and shipments."""
from .models import Order, Invoice, InvoiceItem, Shipment, ORDER_STATUSES, INVOICE_STATUSES, SHIPMENT_STATUSES
from .order_service import OrderService, OrderNotFoundError
from .invoice_service import InvoiceService, InvoiceNotFoundError
from .shipment_service import ShipmentService, ShipmentNotFoundError

__all__ = [
    'Order', 'Invoice', 'InvoiceItem', 'Shipment',
    'ORDER_STATUSES', 'INVOICE_STATUSES', 'SHIPMENT_STATUSES',
    'OrderService', 'OrderNotFoundError', 'InvoiceService', 'InvoiceNotFoundError',
    'ShipmentService', 'ShipmentNotFoundError',
]
