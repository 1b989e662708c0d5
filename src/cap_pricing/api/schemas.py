"""
Pydantic request models shared by the API routers.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, NonNegativeInt

from ..engine.models import ItemPriceRequest, QuoteRequest


class LogoModel(BaseModel):
    """One logo selection."""
    name: str
    size: str = "Medium"
    application: str = "Direct"
    position: Optional[str] = None


class QuoteModel(BaseModel):
    """Request model for a quote calculation."""
    product_name: Optional[str] = None
    price_tier: Optional[str] = None
    quantity: int = Field(default=0, ge=0)
    colors: Optional[Dict[str, Dict[str, NonNegativeInt]]] = None
    logos: List[LogoModel] = Field(default_factory=list)
    fabric: Optional[str] = None
    closure: Optional[str] = None
    accessories: List[str] = Field(default_factory=list)
    delivery_method: Optional[str] = None
    services: List[str] = Field(default_factory=list)
    shipment_quantity: Optional[int] = Field(default=None, ge=0)
    previous_order_number: Optional[str] = None
    apply_margins: bool = False

    def to_request(self) -> QuoteRequest:
        return QuoteRequest.from_dict(self.model_dump())


class OrderCreate(BaseModel):
    """Request model for creating an order."""
    customer_name: str
    customer_email: Optional[str] = None
    notes: Optional[str] = None
    status: str = "PENDING"
    quote: QuoteModel


class StatusUpdate(BaseModel):
    status: str


class InvoiceCreate(BaseModel):
    """Request model for issuing an invoice."""
    discount: float = 0.0
    shipping: float = 0.0
    tax: Optional[float] = None
    tax_rate: Optional[float] = None
    simple: bool = False


class ShipmentCreate(BaseModel):
    """Request model for creating a shipment."""
    name: str
    delivery_method: Optional[str] = None
    notes: Optional[str] = None
    status: str = "PREPARING"


class OrderIds(BaseModel):
    order_ids: List[str] = Field(min_length=1)


class ItemModel(BaseModel):
    """One catalog item to price."""
    type: str
    name: str
    quantity: int
    size: str = "Medium"
    application: str = "Direct"

    def to_request(self) -> ItemPriceRequest:
        return ItemPriceRequest(**self.model_dump())


class BulkPricingRequest(BaseModel):
    items: List[ItemModel]
