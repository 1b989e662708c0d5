import logging
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..data.validation import validate_catalog
from . import state
from .orders_api import invoices_router, router as orders_router
from .schemas import BulkPricingRequest, QuoteModel
from .shipments_api import router as shipments_router

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Cap Pricing API",
    description="Volume-tiered quoting for custom caps",
    version=__version__
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(orders_router)
app.include_router(invoices_router)
app.include_router(shipments_router)


@app.get("/")
async def root():
    return {"status": "online", "message": "Cap Pricing API Active"}


@app.post("/calculate")
async def calculate_quote(req: QuoteModel):
    try:
        result = state.engine.calculate(req.to_request())
        return jsonable_encoder(result)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/pricing/bulk")
async def bulk_pricing(req: BulkPricingRequest):
    """Price up to 100 catalog items at their own quantities."""
    try:
        results = state.engine.price_items([item.to_request() for item in req.items])
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    failed = sum(1 for r in results if r.error)
    return {
        "results": jsonable_encoder(results),
        "summary": {"total": len(results), "successful": len(results) - failed, "failed": failed},
    }


@app.get("/catalog/{table}")
async def get_catalog(table: str, search: Optional[str] = None):
    try:
        rows = state.engine.catalog.table_rows(table)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown catalog table '{table}'")

    if search:
        needle = search.lower()
        rows = [r for r in rows if needle in str(getattr(r, 'name', getattr(r, 'size', ''))).lower()]
    return jsonable_encoder(rows)


@app.get("/products/match")
async def match_product(
    profile: Optional[str] = None,
    bill_shape: Optional[str] = None,
    panel_count: Optional[int] = None,
    structure: Optional[str] = None,
):
    product = state.engine.catalog.match_product_by_specs(
        profile=profile,
        bill_shape=bill_shape,
        panel_count=panel_count,
        structure=structure,
    )
    if not product:
        raise HTTPException(status_code=404, detail="No product matches these specs")
    return jsonable_encoder(product)


@app.get("/system/status")
async def get_status():
    catalog = state.engine.catalog
    validation = validate_catalog(catalog)
    return {
        "engine_active": True,
        "data_dir": str(state.engine.settings.data_dir),
        "record_counts": catalog.counts(),
        "catalog_valid": validation.valid,
        "errors": validation.errors,
        "warnings": validation.warnings,
    }


@app.post("/system/reload")
async def reload_catalog():
    try:
        state.engine.reload_data()
    except (FileNotFoundError, ValueError) as e:
        logger.exception("Catalog reload failed")
        raise HTTPException(status_code=500, detail=str(e))
    return {"success": True, "record_counts": state.engine.catalog.counts()}
