"""
Shipment Service - groups orders that travel together.

Every order in a shipment is re-priced with the shipment's combined
units as its delivery quantity, so small orders reach the bulk
delivery breakpoint of the whole consignment.
"""
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..engine.models import QuoteRequest
from .models import SHIPMENT_STATUSES, Order, Shipment
from .order_service import OrderNotFoundError, OrderService
from .store import JsonStore

logger = logging.getLogger(__name__)


class ShipmentNotFoundError(LookupError):
    """No shipment with the requested ID."""


class ShipmentService:
    """Service for creating shipments and assigning orders to them."""

    COLLECTION = 'shipments'

    def __init__(self, store_path: Path, order_service: OrderService):
        self.store = JsonStore(store_path)
        self.order_service = order_service

    def list_shipments(self, status: Optional[str] = None) -> list[Shipment]:
        shipments = [Shipment.from_dict(row) for row in self.store.read(self.COLLECTION)]
        if status:
            shipments = [s for s in shipments if s.status == status.upper()]
        return sorted(shipments, key=lambda s: s.created_at, reverse=True)

    def get_shipment(self, shipment_id: str) -> Shipment:
        for shipment in self.list_shipments():
            if shipment.shipment_id == shipment_id:
                return shipment
        raise ShipmentNotFoundError(f"Shipment '{shipment_id}' not found")

    def create_shipment(
        self,
        name: str,
        delivery_method: Optional[str] = None,
        notes: Optional[str] = None,
        status: str = 'PREPARING',
    ) -> Shipment:
        """Create an empty shipment."""
        status = status.upper()
        self._check_status(status)
        if delivery_method and not self.order_service.engine.catalog.find_delivery(delivery_method):
            raise ValueError(f"Delivery method not found: {delivery_method}")

        now = datetime.now().isoformat()
        shipment = Shipment(
            shipment_id=uuid.uuid4().hex[:12],
            name=name,
            status=status,
            created_at=now,
            updated_at=now,
            delivery_method=delivery_method,
            notes=notes,
        )
        shipments = self.list_shipments()
        shipments.append(shipment)
        self._write_shipments(shipments)

        logger.info("Created shipment %s (%s)", shipment.shipment_id, name)
        return shipment

    def update_status(self, shipment_id: str, status: str) -> Shipment:
        status = status.upper()
        self._check_status(status)
        return self._update(shipment_id, status=status)

    def orders_for(self, shipment: Shipment) -> list[Order]:
        """Orders currently in a shipment; deleted orders are skipped."""
        return self._load_orders(shipment.order_ids)

    def _load_orders(self, order_ids: list[str]) -> list[Order]:
        orders = []
        for order_id in order_ids:
            try:
                orders.append(self.order_service.get_order(order_id))
            except OrderNotFoundError:
                logger.warning("Skipping missing order %s", order_id)
        return orders

    def total_units(self, shipment_id: str) -> int:
        """Combined units of every order in the shipment."""
        shipment = self.get_shipment(shipment_id)
        return sum(order.total_units for order in self.orders_for(shipment))

    def assign_orders(self, shipment_id: str, order_ids: list[str]) -> Shipment:
        """
        Add orders to a shipment and re-price every order in it.

        Raises ValueError when an order does not exist or already travels
        in another shipment; nothing is changed in that case.
        """
        if not order_ids:
            raise ValueError("At least one order ID is required")
        shipment = self.get_shipment(shipment_id)

        missing = []
        taken = []
        for order_id in order_ids:
            try:
                order = self.order_service.get_order(order_id)
            except OrderNotFoundError:
                missing.append(order_id)
                continue
            if order.shipment_id and order.shipment_id != shipment_id:
                taken.append(f"{order_id} ({order.shipment_id})")
        if missing:
            raise ValueError(f"Orders not found: {', '.join(missing)}")
        if taken:
            raise ValueError(f"Orders already assigned to another shipment: {', '.join(taken)}")

        new_ids = list(shipment.order_ids)
        new_ids.extend(order_id for order_id in dict.fromkeys(order_ids) if order_id not in new_ids)

        self._reprice(shipment, new_ids, released=[])
        shipment = self._update(shipment_id, order_ids=new_ids)
        logger.info("Assigned %s orders to shipment %s", len(order_ids), shipment_id)
        return shipment

    def remove_orders(self, shipment_id: str, order_ids: list[str]) -> Shipment:
        """Take orders out of a shipment; both groups are re-priced."""
        if not order_ids:
            raise ValueError("At least one order ID is required")
        shipment = self.get_shipment(shipment_id)

        released = [order_id for order_id in shipment.order_ids if order_id in order_ids]
        remaining = [order_id for order_id in shipment.order_ids if order_id not in order_ids]

        self._reprice(shipment, remaining, released=released)
        return self._update(shipment_id, order_ids=remaining)

    def _reprice(self, shipment: Shipment, order_ids: list[str], released: list[str]):
        """
        Price the shipment's orders on their combined units, and released
        orders on their own units.

        Every quote is priced before any order is written, so a pricing
        error (e.g. a freight minimum) leaves the store untouched.
        """
        members = self._load_orders(order_ids)
        combined = sum(order.total_units for order in members)

        updates = []
        for order in members:
            request = QuoteRequest.from_dict(order.quote)
            request.shipment_quantity = combined
            if shipment.delivery_method:
                request.delivery_method = shipment.delivery_method
            updates.append((order, request, shipment.shipment_id))

        for order in self._load_orders(released):
            request = QuoteRequest.from_dict(order.quote)
            request.shipment_quantity = None
            updates.append((order, request, None))

        priced = [
            (order, request, shipment_id, self.order_service.engine.calculate(request))
            for order, request, shipment_id in updates
        ]
        for order, request, shipment_id, breakdown in priced:
            self.order_service.reprice_order(order.order_id, request, breakdown, shipment_id=shipment_id)

    def _update(self, shipment_id: str, **changes) -> Shipment:
        shipments = self.list_shipments()
        for i, shipment in enumerate(shipments):
            if shipment.shipment_id == shipment_id:
                for key, value in changes.items():
                    setattr(shipment, key, value)
                shipment.updated_at = datetime.now().isoformat()
                shipments[i] = shipment
                self._write_shipments(shipments)
                return shipment
        raise ShipmentNotFoundError(f"Shipment '{shipment_id}' not found")

    @staticmethod
    def _check_status(status: str):
        if status not in SHIPMENT_STATUSES:
            raise ValueError(
                f"Unknown shipment status '{status}'. Expected one of: {', '.join(SHIPMENT_STATUSES)}"
            )

    def _write_shipments(self, shipments: list[Shipment]):
        self.store.write(self.COLLECTION, [s.to_dict() for s in shipments])
