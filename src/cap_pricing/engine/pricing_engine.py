"""
Pricing Engine - Quote calculation over the breakpoint pricing tables.

Resolves a quote in a fixed order with an execution trace:
- Base product (Product → Tier → breakpoint price)
- Logos, with one-time mold charges for molded patches
- Premium fabrics (dual fabrics priced per part), closure, accessories
- Delivery, priced on the combined shipment quantity when larger
- Flat-rate services

Item lookups price single table rows in batches for the catalog screens.
"""
import logging
from typing import Optional

from ..config.settings import Settings, get_settings
from ..data import catalog as catalog_loader
from .breakpoints import calculate_savings, price_column, price_for_quantity, select_breakpoint
from .models import (
    ITEM_TYPES,
    CostBreakdown,
    CostLine,
    ItemPrice,
    ItemPriceRequest,
    LogoSelection,
    PricedRow,
    QuoteRequest,
    UnknownOptionError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIER = "Tier 1"
MAX_BATCH = 100

LEAD_TIME_BLANK = "15-20 business days"
LEAD_TIME_DECORATED = "20-25 business days"
LEAD_TIME_PREMIUM_FABRIC = "25-30 business days"


class PricingEngine:
    """
    Core pricing engine that turns a quote configuration into a cost breakdown.

    Every selected option is priced at the breakpoint reached by the order
    quantity; the total is the sum of all non-waived lines.
    """

    def __init__(self, settings: Optional[Settings] = None, catalog=None):
        """Initialize engine with the pricing catalog."""
        self.settings = settings or get_settings()
        self.catalog = catalog or catalog_loader.load_catalog(settings=self.settings)

    def reload_data(self):
        """Reload all pricing tables from disk."""
        self.catalog = catalog_loader.load_catalog(settings=self.settings)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _tiered_line(
        self,
        result: CostBreakdown,
        row: PricedRow,
        category: str,
        quantity: int,
        pricing_quantity: Optional[int] = None,
        name: Optional[str] = None,
        details: str = "",
    ) -> CostLine:
        """Price a tiered row at the breakpoint for pricing_quantity, billed for quantity."""
        pricing_quantity = pricing_quantity or quantity
        unit_price, used = price_for_quantity(row.prices, pricing_quantity)

        # Column exists but the cell is blank at this breakpoint
        expected = select_breakpoint(pricing_quantity)
        if used != expected and expected in row.prices:
            result.add_warning(
                f"{row.name}: no {price_column(expected)} price, using {price_column(used)}"
            )

        prices = row.prices
        factory_unit_price = None
        margin = self.catalog.find_margin(category) if result.margins_applied else None
        if margin:
            factory_unit_price = unit_price
            prices = {bp: margin.apply(p) for bp, p in row.prices.items() if p is not None}
            unit_price = round(margin.apply(unit_price), 2)
            result.add_trace(
                "Margin",
                f"{category}: +{margin.margin_percent:g}% +${margin.flat_margin:.2f} on ${factory_unit_price:.2f}",
                f"${unit_price:.2f}",
            )

        savings, _ = calculate_savings(prices, unit_price, quantity)
        line = CostLine(
            name=name or row.name,
            category=category,
            quantity=quantity,
            unit_price=unit_price,
            cost=round(unit_price * quantity, 2),
            breakpoint=used,
            details=details,
            savings=round(savings, 2),
            factory_unit_price=factory_unit_price,
        )
        result.add_trace(
            category.replace('_', ' ').title(),
            f"{line.name}: {quantity} × ${unit_price:.2f} ({price_column(used)})",
            f"${line.cost:.2f}",
        )
        return line

    @staticmethod
    def _unique_selections(result: CostBreakdown, category: str, names: list[str], finder) -> list:
        """Resolve selections to catalog records, dropping repeats of the same record."""
        records = []
        seen = set()
        for name in names:
            record = finder(name)
            if not record:
                raise UnknownOptionError(category, name)
            if id(record) in seen:
                result.add_warning(f"Duplicate {category.lower()} selection ignored: {name}")
                continue
            seen.add(id(record))
            records.append(record)
        return records

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    def resolve_tier(self, request: QuoteRequest, result: CostBreakdown):
        """Resolve the pricing tier from the product, an explicit tier, or the default."""
        if request.product_name:
            product = self.catalog.find_product(request.product_name)
            if not product:
                raise UnknownOptionError("Product", request.product_name)
            result.product_name = product.name
            result.add_trace("Product Lookup", f"Found product {product.name}", product.tier_name)
            tier_name = product.tier_name
        elif request.price_tier:
            tier_name = request.price_tier
            result.add_trace("Product Lookup", "No product given, using explicit tier", tier_name)
        else:
            tier_name = DEFAULT_TIER
            result.add_trace("Product Lookup", "No product or tier given, using default tier", tier_name)

        tier = self.catalog.find_tier(tier_name)
        if not tier:
            raise UnknownOptionError("Pricing tier", tier_name)
        result.price_tier = tier.name
        return tier

    def price_product(self, request: QuoteRequest, result: CostBreakdown, quantity: int) -> CostLine:
        tier = self.resolve_tier(request, result)
        label = result.product_name or "Blank Cap"
        line = self._tiered_line(
            result, tier, 'base_product', quantity,
            name=f"{label} - {quantity} units",
            details=f"{tier.name} pricing",
        )
        if line.unit_price == 0:
            result.add_warning(f"{tier.name} has a zero {price_column(line.breakpoint)} price")
        return line

    def price_logo(self, logo: LogoSelection, result: CostBreakdown, quantity: int) -> list[CostLine]:
        """Price one logo; adds a mold charge line when the method needs a mold."""
        method = self.catalog.find_logo_method(logo.name, logo.size, logo.application)
        if not method:
            raise UnknownOptionError("Logo method", logo.name, f"{logo.size}, {logo.application}")

        details = f"{logo.size} {method.name} ({method.application})"
        if logo.position:
            details = f"{details} @ {logo.position}"
        lines = [self._tiered_line(
            result, method, 'logo', quantity,
            name=f"{method.name} {method.size}",
            details=details,
        )]

        if method.mold_charge_type:
            lines.append(self.price_mold_charge(method.mold_charge_type, method.name, result))
        return lines

    def price_mold_charge(self, mold_type: str, logo_name: str, result: CostBreakdown) -> CostLine:
        """One-time mold fee; not multiplied by quantity."""
        mold = self.catalog.find_mold_charge(mold_type)
        if not mold:
            raise UnknownOptionError("Mold charge", mold_type)
        if not mold.is_numeric:
            raise ValueError(f"Mold charge '{mold.size}' is not numeric ('{mold.raw_amount}')")

        line = CostLine(
            name=f"{mold.size} Mold Charge ({logo_name})",
            category='mold_charge',
            quantity=1,
            unit_price=mold.amount,
            cost=round(mold.amount, 2),
            details=mold.size_example,
        )
        result.add_trace("Mold Charge", line.name, f"${line.cost:.2f}")
        return line

    def price_fabric(self, fabric_selection: str, result: CostBreakdown, quantity: int) -> list[CostLine]:
        """Price a fabric selection; "Polyester/Laser Cut" prices each part."""
        lines = []
        parts = [part.strip() for part in fabric_selection.split('/') if part.strip()]
        for fabric in self._unique_selections(result, "Fabric", parts, self.catalog.find_fabric):
            if fabric.is_free:
                result.add_trace("Premium Fabric", f"{fabric.name} is a free fabric", "$0.00")
                lines.append(CostLine(
                    name=fabric.name, category='premium_fabric', quantity=quantity,
                    unit_price=0.0, cost=0.0, details="Free Fabric",
                ))
                continue

            lines.append(self._tiered_line(
                result, fabric, 'premium_fabric', quantity, details="Premium Fabric",
            ))
        return lines

    def price_closure(self, closure_name: str, result: CostBreakdown, quantity: int) -> CostLine:
        closure = self.catalog.find_closure(closure_name)
        if not closure:
            raise UnknownOptionError("Closure", closure_name)
        return self._tiered_line(result, closure, 'closure', quantity, details=closure.closure_type)

    def price_accessory(self, accessory_name: str, result: CostBreakdown, quantity: int) -> CostLine:
        accessory = self.catalog.find_accessory(accessory_name)
        if not accessory:
            raise UnknownOptionError("Accessory", accessory_name)
        return self._tiered_line(result, accessory, 'accessory', quantity)

    def price_delivery(self, request: QuoteRequest, result: CostBreakdown, quantity: int) -> CostLine:
        """
        Price delivery for this order's units.

        When the order ships with others, the breakpoint comes from the
        combined shipment quantity; the cost still covers only this order.
        """
        method = self.catalog.find_delivery(request.delivery_method)
        if not method:
            raise UnknownOptionError("Delivery method", request.delivery_method)

        pricing_quantity = quantity
        if request.shipment_quantity and request.shipment_quantity > quantity:
            pricing_quantity = request.shipment_quantity
            result.add_trace("Bulk Shipment", "Using combined shipment quantity", str(pricing_quantity))

        if pricing_quantity < method.min_quantity:
            raise ValueError(
                f"{method.name} requires at least {method.min_quantity} units "
                f"(got {pricing_quantity})"
            )

        name = method.name
        if pricing_quantity != quantity:
            name = f"{method.name} (Bulk: {pricing_quantity} units)"
        return self._tiered_line(
            result, method, 'delivery', quantity,
            pricing_quantity=pricing_quantity,
            name=name,
            details=method.delivery_days,
        )

    def price_service(self, service_name: str, result: CostBreakdown) -> CostLine:
        service = self.catalog.find_service(service_name)
        if not service:
            raise UnknownOptionError("Service", service_name)
        result.add_trace("Service", f"{service.name} (flat rate)", f"${service.price:.2f}")
        return CostLine(
            name=service.name,
            category='service',
            quantity=1,
            unit_price=service.price,
            cost=round(service.price, 2),
        )

    # ------------------------------------------------------------------
    # Quote
    # ------------------------------------------------------------------

    def calculate(self, request: QuoteRequest) -> CostBreakdown:
        """
        Calculate a quote with full traceability.

        Args:
            request: QuoteRequest with product, quantity and selections

        Returns:
            CostBreakdown with lines, totals, trace and warnings
        """
        quantity = request.total_units()
        if quantity < 1:
            raise ValueError("quantity must be >= 1")

        result = CostBreakdown(
            total_units=quantity, product_name=None, price_tier="",
            margins_applied=request.apply_margins,
        )
        result.add_trace("Quantity", "Total units", str(quantity))

        result.add_line(self.price_product(request, result, quantity))

        for logo in request.logos:
            for line in self.price_logo(logo, result, quantity):
                result.add_line(line)

        if request.fabric:
            for line in self.price_fabric(request.fabric, result, quantity):
                result.add_line(line)

        if request.closure:
            result.add_line(self.price_closure(request.closure, result, quantity))

        accessories = self._unique_selections(
            result, "Accessory", request.accessories, self.catalog.find_accessory
        )
        for accessory in accessories:
            result.add_line(self.price_accessory(accessory.name, result, quantity))

        if request.delivery_method:
            result.add_line(self.price_delivery(request, result, quantity))

        for service in self._unique_selections(result, "Service", request.services, self.catalog.find_service):
            result.add_line(self.price_service(service.name, result))

        if request.previous_order_number:
            self._waive_mold_charges(result, request.previous_order_number)

        result.estimated_lead_time = self.estimate_lead_time(request, result)
        result.finalize()
        result.add_trace("Total", f"{len(result.lines)} lines", f"${result.total_cost:.2f}")

        logger.debug("Quote calculated: %s units, total %.2f", quantity, result.total_cost)
        return result

    @staticmethod
    def _waive_mold_charges(result: CostBreakdown, previous_order_number: str):
        """Reorders reuse the existing mold."""
        for line in result.lines_for('mold_charge'):
            line.waived = True
            line.waiver_reason = f"Waived due to previous order #{previous_order_number}"
            line.cost = 0.0
            line.quantity = 0
            result.add_trace("Mold Charge", f"{line.name} waived", previous_order_number)

    @staticmethod
    def estimate_lead_time(request: QuoteRequest, result: CostBreakdown) -> str:
        """Lead time from the decoration level of the order."""
        premium_fabric = any(line.cost > 0 for line in result.lines_for('premium_fabric'))
        if premium_fabric:
            return LEAD_TIME_PREMIUM_FABRIC
        if request.logos:
            return LEAD_TIME_DECORATED
        return LEAD_TIME_BLANK

    # ------------------------------------------------------------------
    # Item lookups
    # ------------------------------------------------------------------

    def _item_row(self, item: ItemPriceRequest) -> PricedRow:
        item_type = item.type.strip().lower()
        if item_type not in ITEM_TYPES:
            raise ValueError(f"Unknown item type '{item.type}' (expected one of {', '.join(ITEM_TYPES)})")

        if item_type == 'product':
            product = self.catalog.find_product(item.name)
            if not product:
                raise UnknownOptionError("Product", item.name)
            tier = self.catalog.find_tier(product.tier_name)
            if not tier:
                raise UnknownOptionError("Pricing tier", product.tier_name)
            return tier

        if item_type == 'logo':
            row = self.catalog.find_logo_method(item.name, item.size, item.application)
            if not row:
                raise UnknownOptionError("Logo method", item.name, f"{item.size}, {item.application}")
            return row

        finder = {
            'fabric': (self.catalog.find_fabric, "Fabric"),
            'closure': (self.catalog.find_closure, "Closure"),
            'accessory': (self.catalog.find_accessory, "Accessory"),
            'delivery': (self.catalog.find_delivery, "Delivery method"),
        }[item_type]
        row = finder[0](item.name)
        if not row:
            raise UnknownOptionError(finder[1], item.name)
        return row

    def price_item(self, item: ItemPriceRequest) -> ItemPrice:
        """Unit and extended price of one catalog item; failures land in .error."""
        price = ItemPrice(type=item.type, name=item.name, quantity=item.quantity)
        try:
            if item.quantity < 1:
                raise ValueError("quantity must be >= 1")
            row = self._item_row(item)
        except ValueError as e:
            price.error = str(e)
            return price

        unit_price, used = price_for_quantity(row.prices, item.quantity)
        price.unit_price = unit_price
        price.total = round(unit_price * item.quantity, 2)
        price.breakpoint = used
        return price

    def price_items(self, items: list[ItemPriceRequest]) -> list[ItemPrice]:
        """Price a batch of item lookups (at most MAX_BATCH per call)."""
        if not items:
            raise ValueError("At least one item is required")
        if len(items) > MAX_BATCH:
            raise ValueError(f"At most {MAX_BATCH} items per request (got {len(items)})")

        results = [self.price_item(item) for item in items]
        failed = sum(1 for r in results if r.error)
        logger.debug("Priced %s items, %s failed", len(results), failed)
        return results
