"""
Orders API - FastAPI routers for orders and invoices.
"""
from typing import Optional

from fastapi import APIRouter, HTTPException
from fastapi.encoders import jsonable_encoder

from ..orders import InvoiceNotFoundError, OrderNotFoundError
from . import state
from .schemas import InvoiceCreate, OrderCreate, StatusUpdate

router = APIRouter(prefix="/api/orders", tags=["orders"])
invoices_router = APIRouter(prefix="/api/invoices", tags=["invoices"])


# Orders

@router.get("")
async def list_orders(status: Optional[str] = None):
    """List orders, newest first."""
    return jsonable_encoder(state.order_service.list_orders(status=status))


@router.get("/stats")
async def get_stats():
    """Get order statistics."""
    return state.order_service.get_stats()


@router.get("/{order_id}")
async def get_order(order_id: str):
    try:
        return jsonable_encoder(state.order_service.get_order(order_id))
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("", status_code=201)
async def create_order(order_data: OrderCreate):
    """Price a quote and save it as an order."""
    try:
        order = state.order_service.create_order(
            order_data.quote.to_request(),
            customer_name=order_data.customer_name,
            customer_email=order_data.customer_email,
            notes=order_data.notes,
            status=order_data.status.upper(),
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return jsonable_encoder(order)


@router.put("/{order_id}/status")
async def update_status(order_id: str, update: StatusUpdate):
    try:
        return jsonable_encoder(state.order_service.update_status(order_id, update.status))
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{order_id}/recalculate")
async def recalculate_order(order_id: str):
    """Re-price an order against the current tables."""
    try:
        return jsonable_encoder(state.order_service.recalculate_order(order_id))
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{order_id}")
async def delete_order(order_id: str):
    try:
        state.order_service.delete_order(order_id)
        return {"success": True, "message": f"Order '{order_id}' deleted"}
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{order_id}/invoice", status_code=201)
async def create_invoice(order_id: str, invoice_data: InvoiceCreate):
    """Issue an invoice for an order."""
    try:
        order = state.order_service.get_order(order_id)
        invoice = state.invoice_service.create_invoice(order, **invoice_data.model_dump())
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return jsonable_encoder(invoice)


# Invoices

@invoices_router.get("")
async def list_invoices(order_id: Optional[str] = None, status: Optional[str] = None):
    try:
        invoices = state.invoice_service.list_invoices(order_id=order_id, status=status)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return jsonable_encoder(invoices)


@invoices_router.get("/{invoice_id}")
async def get_invoice(invoice_id: str):
    try:
        return jsonable_encoder(state.invoice_service.get_invoice(invoice_id))
    except InvoiceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@invoices_router.post("/{invoice_id}/pay")
async def pay_invoice(invoice_id: str):
    try:
        return jsonable_encoder(state.invoice_service.mark_paid(invoice_id))
    except InvoiceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@invoices_router.post("/{invoice_id}/void")
async def void_invoice(invoice_id: str):
    try:
        return jsonable_encoder(state.invoice_service.void_invoice(invoice_id))
    except InvoiceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
