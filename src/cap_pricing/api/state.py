"""
Shared engine and services for the API process.
"""
from ..config.settings import get_settings
from ..engine import PricingEngine
from ..orders import InvoiceService, OrderService, ShipmentService

settings = get_settings()
engine = PricingEngine(settings)
order_service = OrderService(settings.orders_store, engine)
invoice_service = InvoiceService(settings.orders_store)
shipment_service = ShipmentService(settings.orders_store, order_service)
