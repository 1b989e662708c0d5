"""
Shipments API - groups orders so delivery is priced on their combined units.
"""
from typing import Optional

from fastapi import APIRouter, HTTPException
from fastapi.encoders import jsonable_encoder

from ..orders import ShipmentNotFoundError
from . import state
from .schemas import OrderIds, ShipmentCreate, StatusUpdate

router = APIRouter(prefix="/api/shipments", tags=["shipments"])


def _with_orders(shipment) -> dict:
    orders = state.shipment_service.orders_for(shipment)
    payload = jsonable_encoder(shipment)
    payload['orders'] = jsonable_encoder(orders)
    payload['total_units'] = sum(order.total_units for order in orders)
    return payload


@router.get("")
async def list_shipments(status: Optional[str] = None):
    return jsonable_encoder(state.shipment_service.list_shipments(status=status))


@router.post("", status_code=201)
async def create_shipment(shipment_data: ShipmentCreate):
    try:
        shipment = state.shipment_service.create_shipment(**shipment_data.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return jsonable_encoder(shipment)


@router.get("/{shipment_id}")
async def get_shipment(shipment_id: str):
    """Shipment with its orders and combined units."""
    try:
        return _with_orders(state.shipment_service.get_shipment(shipment_id))
    except ShipmentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{shipment_id}/status")
async def update_status(shipment_id: str, update: StatusUpdate):
    try:
        return jsonable_encoder(state.shipment_service.update_status(shipment_id, update.status))
    except ShipmentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{shipment_id}/assign-orders")
async def assign_orders(shipment_id: str, body: OrderIds):
    """Add orders and re-price the whole shipment."""
    try:
        shipment = state.shipment_service.assign_orders(shipment_id, body.order_ids)
    except ShipmentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _with_orders(shipment)


@router.post("/{shipment_id}/remove-orders")
async def remove_orders(shipment_id: str, body: OrderIds):
    try:
        shipment = state.shipment_service.remove_orders(shipment_id, body.order_ids)
    except ShipmentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _with_orders(shipment)
