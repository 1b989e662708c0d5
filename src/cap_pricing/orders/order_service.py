"""
Order Service - CRUD operations for priced orders.
Handles reading/writing the orders store and re-pricing on demand.
"""
import logging
import uuid
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..engine.models import QuoteRequest
from ..engine.pricing_engine import PricingEngine
from .models import ORDER_STATUSES, Order
from .store import JsonStore

logger = logging.getLogger(__name__)


class OrderNotFoundError(LookupError):
    """No order with the requested ID."""


class OrderService:
    """Service for creating and managing orders."""

    COLLECTION = 'orders'

    def __init__(self, store_path: Path, engine: PricingEngine):
        self.store = JsonStore(store_path)
        self.engine = engine

    def list_orders(self, status: Optional[str] = None) -> list[Order]:
        """List orders, newest first, optionally filtered by status."""
        orders = [Order.from_dict(row) for row in self.store.read(self.COLLECTION)]
        if status:
            orders = [o for o in orders if o.status == status.upper()]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    def get_order(self, order_id: str) -> Order:
        """Get a single order by ID."""
        for order in self.list_orders():
            if order.order_id == order_id:
                return order
        raise OrderNotFoundError(f"Order '{order_id}' not found")

    def create_order(
        self,
        request: QuoteRequest,
        customer_name: str,
        customer_email: Optional[str] = None,
        notes: Optional[str] = None,
        status: str = 'PENDING',
    ) -> Order:
        """Price a quote and persist it as a new order."""
        self._check_status(status)
        breakdown = self.engine.calculate(request)

        now = datetime.now().isoformat()
        order = Order(
            order_id=uuid.uuid4().hex[:12],
            status=status,
            customer_name=customer_name,
            customer_email=customer_email,
            quote=asdict(request),
            breakdown=asdict(breakdown),
            created_at=now,
            updated_at=now,
            notes=notes,
        )

        orders = self.list_orders()
        orders.append(order)
        self._write_orders(orders)

        logger.info("Created order %s: %s units, $%.2f", order.order_id, breakdown.total_units, breakdown.total_cost)
        return order

    def update_status(self, order_id: str, status: str) -> Order:
        """Move an order to a new status."""
        status = status.upper()
        self._check_status(status)
        return self._update(order_id, status=status)

    def recalculate_order(self, order_id: str) -> Order:
        """Re-price an order against the current pricing tables."""
        order = self.get_order(order_id)
        return self.reprice_order(order_id, QuoteRequest.from_dict(order.quote))

    def reprice_order(self, order_id: str, request: QuoteRequest, breakdown=None, **changes) -> Order:
        """
        Store a new quote on an order together with its pricing.

        A breakdown already calculated for this request can be passed in;
        otherwise the request is priced here. Extra keyword arguments are
        written to the order as well (e.g. shipment_id).
        """
        if breakdown is None:
            breakdown = self.engine.calculate(request)
        return self._update(order_id, quote=asdict(request), breakdown=asdict(breakdown), **changes)

    def delete_order(self, order_id: str) -> bool:
        """Delete an order."""
        orders = self.list_orders()
        remaining = [o for o in orders if o.order_id != order_id]
        if len(remaining) == len(orders):
            raise OrderNotFoundError(f"Order '{order_id}' not found")
        self._write_orders(remaining)
        return True

    def get_stats(self) -> dict:
        """Get statistics about orders."""
        orders = self.list_orders()
        by_status = {}
        for o in orders:
            by_status[o.status] = by_status.get(o.status, 0) + 1

        active = [o for o in orders if o.status != 'CANCELLED']
        return {
            'total': len(orders),
            'by_status': by_status,
            'total_units': sum(o.total_units for o in active),
            'total_value': round(sum(o.total_cost for o in active), 2),
        }

    def _update(self, order_id: str, **changes) -> Order:
        orders = self.list_orders()
        for i, order in enumerate(orders):
            if order.order_id == order_id:
                for key, value in changes.items():
                    setattr(order, key, value)
                order.updated_at = datetime.now().isoformat()
                orders[i] = order
                self._write_orders(orders)
                return order
        raise OrderNotFoundError(f"Order '{order_id}' not found")

    @staticmethod
    def _check_status(status: str):
        if status not in ORDER_STATUSES:
            raise ValueError(f"Unknown order status '{status}'. Expected one of: {', '.join(ORDER_STATUSES)}")

    def _write_orders(self, orders: list[Order]):
        self.store.write(self.COLLECTION, [o.to_dict() for o in orders])
