"""
Quote calculation tests against the bundled pricing tables.
"""
import os
import sys

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from cap_pricing.engine import LogoSelection, PricingEngine, QuoteRequest, UnknownOptionError


@pytest.fixture(scope="module")
def engine():
    return PricingEngine()


def full_request(**overrides):
    data = dict(
        product_name="6P AirFrame HSCS",
        quantity=144,
        logos=[
            LogoSelection(name="Flat Embroidery", size="Medium", position="Front"),
            LogoSelection(name="Rubber Patch", size="Medium", application="Sewn", position="Back"),
        ],
        fabric="Laser Cut",
        closure="Fitted",
        accessories=["Hang Tag"],
        delivery_method="regular",
        services=["graphics"],
    )
    data.update(overrides)
    return QuoteRequest(**data)


def test_full_quote(engine):
    """
    144 units of a Tier 1 cap with two logos and every option.
    Base 432.00, logos 115.20 + 216.00, mold 60.00, fabric 64.80,
    closure 72.00, tag 64.80, delivery 331.20, graphics 50.00.
    """
    result = engine.calculate(full_request())

    assert result.total_units == 144
    assert result.price_tier == "Tier 1"
    assert result.product_name == "6P AirFrame HSCS"

    totals = result.category_totals
    assert abs(totals['base_product'] - 432.00) < 0.01
    assert abs(totals['logo'] - 331.20) < 0.01
    assert abs(totals['mold_charge'] - 60.00) < 0.01
    assert abs(totals['premium_fabric'] - 64.80) < 0.01
    assert abs(totals['closure'] - 72.00) < 0.01
    assert abs(totals['accessory'] - 64.80) < 0.01
    assert abs(totals['delivery'] - 331.20) < 0.01
    assert abs(totals['service'] - 50.00) < 0.01

    assert abs(result.merchandise_subtotal - 964.80) < 0.01
    assert abs(result.total_cost - 1406.00) < 0.01, f"Expected $1406.00, got ${result.total_cost:.2f}"
    assert abs(result.total_savings - 288.00) < 0.01
    assert result.estimated_lead_time == "25-30 business days"
    assert result.warnings == []


def test_line_order_follows_components(engine):
    result = engine.calculate(full_request())
    categories = [line.category for line in result.lines]
    assert categories == [
        'base_product', 'logo', 'logo', 'mold_charge', 'premium_fabric',
        'closure', 'accessory', 'delivery', 'service',
    ]


def test_total_is_sum_of_lines(engine):
    result = engine.calculate(full_request(quantity=3000))
    assert abs(result.total_cost - sum(line.cost for line in result.lines)) < 0.01
    assert abs(sum(result.category_totals.values()) - result.total_cost) < 0.01


def test_mold_charge_is_flat(engine):
    small = engine.calculate(full_request(quantity=48))
    large = engine.calculate(full_request(quantity=5000))

    for result in (small, large):
        molds = result.lines_for('mold_charge')
        assert len(molds) == 1
        assert molds[0].quantity == 1
        assert abs(molds[0].cost - 60.00) < 0.01
        assert molds[0].name == "Medium Mold Charge (Rubber Patch)"


def test_mold_charge_waived_for_reorder(engine):
    result = engine.calculate(full_request(previous_order_number="1234"))

    mold = result.lines_for('mold_charge')[0]
    assert mold.waived
    assert mold.cost == 0.0
    assert mold.waiver_reason == "Waived due to previous order #1234"
    assert result.category_totals['mold_charge'] == 0.0
    assert abs(result.total_cost - 1346.00) < 0.01


def test_embroidery_has_no_mold_charge(engine):
    result = engine.calculate(QuoteRequest(
        quantity=144,
        logos=[LogoSelection(name="3D Embroidery", size="Medium")],
    ))
    assert result.lines_for('mold_charge') == []
    assert abs(result.category_totals['logo'] - 1.15 * 144) < 0.01


def test_logo_name_prefix_match(engine):
    result = engine.calculate(QuoteRequest(
        quantity=576,
        logos=[LogoSelection(name="Leather", size="Medium", application="Sewn")],
    ))
    logo = result.lines_for('logo')[0]
    assert logo.name == "Leather Patch Medium"
    assert abs(logo.unit_price - 1.25) < 0.01


def test_quantity_from_colors(engine):
    request = QuoteRequest(
        product_name="AirFrame",
        colors={"Black": {"S/M": 48, "L/XL": 48}, "Navy": {"OSFA": 48}},
    )
    result = engine.calculate(request)
    assert result.total_units == 144
    assert abs(result.lines[0].unit_price - 3.00) < 0.01


def test_dual_fabric_prices_each_part(engine):
    result = engine.calculate(QuoteRequest(
        product_name="6P AirFrame HSCS", quantity=144, fabric="Polyester/Laser Cut",
    ))
    fabrics = result.lines_for('premium_fabric')
    assert [f.name for f in fabrics] == ["Polyester", "Laser Cut"]
    assert fabrics[0].cost == 0.0
    assert fabrics[0].details == "Free Fabric"
    assert abs(fabrics[1].cost - 64.80) < 0.01


def test_free_fabric_keeps_standard_lead_time(engine):
    result = engine.calculate(QuoteRequest(quantity=144, fabric="Cotton"))
    assert result.estimated_lead_time == "15-20 business days"


def test_lead_time_with_logos(engine):
    result = engine.calculate(QuoteRequest(
        quantity=144, logos=[LogoSelection(name="Screen Print", size="Large")],
    ))
    assert result.estimated_lead_time == "20-25 business days"


def test_standard_closure_is_free(engine):
    result = engine.calculate(QuoteRequest(quantity=144, closure="Snapback"))
    closure = result.lines_for('closure')[0]
    assert closure.cost == 0.0
    assert closure.details == "Standard"


def test_blank_price20000_falls_back_with_warning(engine):
    result = engine.calculate(QuoteRequest(quantity=20000, delivery_method="Regular Delivery"))
    delivery = result.lines_for('delivery')[0]
    assert delivery.breakpoint == 10000
    assert abs(delivery.unit_price - 1.90) < 0.01
    assert "Regular Delivery: no price20000 price, using price10000" in result.warnings


def test_price20000_used_when_present(engine):
    result = engine.calculate(QuoteRequest(quantity=20000, accessories=["Hang Tag"]))
    tag = result.lines_for('accessory')[0]
    assert tag.breakpoint == 20000
    assert abs(tag.unit_price - 0.22) < 0.01


def test_bulk_shipment_prices_delivery_at_combined_quantity(engine):
    result = engine.calculate(QuoteRequest(
        quantity=144, delivery_method="regular", shipment_quantity=600,
    ))
    delivery = result.lines_for('delivery')[0]
    assert delivery.name == "Regular Delivery (Bulk: 600 units)"
    assert delivery.quantity == 144
    assert abs(delivery.unit_price - 2.20) < 0.01
    assert abs(delivery.cost - 316.80) < 0.01

    # The cap itself still prices on the order quantity
    assert abs(result.lines[0].unit_price - 3.00) < 0.01


def test_freight_minimum_quantity(engine):
    with pytest.raises(ValueError, match="requires at least 3168 units"):
        engine.calculate(QuoteRequest(quantity=144, delivery_method="air-freight"))


def test_freight_above_minimum(engine):
    result = engine.calculate(QuoteRequest(quantity=3200, delivery_method="Air Freight"))
    delivery = result.lines_for('delivery')[0]
    assert abs(delivery.unit_price - 1.20) < 0.01
    assert abs(delivery.cost - 3840.00) < 0.01


def test_freight_through_combined_shipment(engine):
    result = engine.calculate(QuoteRequest(
        quantity=144, delivery_method="sea-freight", shipment_quantity=5000,
    ))
    delivery = result.lines_for('delivery')[0]
    assert abs(delivery.unit_price - 0.80) < 0.01
    assert abs(delivery.cost - 115.20) < 0.01


def test_services_are_flat(engine):
    result = engine.calculate(QuoteRequest(quantity=5000, services=["sampling", "Digital Mockup"]))
    services = result.lines_for('service')
    assert [s.quantity for s in services] == [1, 1]
    assert abs(result.category_totals['service'] - 150.00) < 0.01


def test_zero_quantity_rejected(engine):
    with pytest.raises(ValueError):
        engine.calculate(QuoteRequest(product_name="6P AirFrame HSCS", quantity=0))


@pytest.mark.parametrize("overrides, category", [
    ({'product_name': "No Such Cap"}, "Product"),
    ({'product_name': None, 'price_tier': "Tier 9"}, "Pricing tier"),
    ({'logos': [LogoSelection(name="Hologram")]}, "Logo method"),
    ({'logos': [LogoSelection(name="Rubber Patch", size="Large", application="Sewn")]}, "Logo method"),
    ({'fabric': "Polyester/Silk"}, "Fabric"),
    ({'closure': "Zipper"}, "Closure"),
    ({'accessories': ["Pin"]}, "Accessory"),
    ({'delivery_method': "teleport"}, "Delivery method"),
    ({'services': ["embroidery-digitizing"]}, "Service"),
])
def test_unknown_selection_raises(engine, overrides, category):
    with pytest.raises(UnknownOptionError) as exc_info:
        engine.calculate(full_request(**overrides))
    assert exc_info.value.category == category


def test_trace_records_resolution(engine):
    result = engine.calculate(full_request())
    text = result.get_trace_text()
    assert "Product Lookup: Found product 6P AirFrame HSCS = Tier 1" in text
    assert result.trace[-1].step == "Total"
    assert result.trace[-1].value == "$1406.00"


def test_zero_priced_tier_warns():
    from cap_pricing.data.catalog import Catalog
    from cap_pricing.engine.models import PricingTier

    catalog = Catalog(tiers=[PricingTier(name="Tier 1", prices={48: 0.0, 144: 0.0})])
    result = PricingEngine(catalog=catalog).calculate(QuoteRequest(quantity=200))

    assert result.total_cost == 0.0
    assert "Tier 1 has a zero price144 price" in result.warnings


def test_duplicate_selections_are_charged_once(engine):
    single = engine.calculate(full_request())
    result = engine.calculate(full_request(
        fabric="Laser Cut/Laser Cut",
        accessories=["Hang Tag", "hang tag"],
        services=["graphics", "Graphics"],
    ))

    assert len(result.lines_for('premium_fabric')) == 1
    assert len(result.lines_for('accessory')) == 1
    assert len(result.lines_for('service')) == 1
    assert abs(result.category_totals['service'] - 50.00) < 0.01
    assert abs(result.total_cost - single.total_cost) < 0.01

    assert "Duplicate fabric selection ignored: Laser Cut" in result.warnings
    assert "Duplicate accessory selection ignored: hang tag" in result.warnings
    assert "Duplicate service selection ignored: Graphics" in result.warnings


def test_negative_color_quantity_rejected(engine):
    request = QuoteRequest(
        product_name="AirFrame",
        colors={"Black": {"S/M": 200, "L/XL": -56}},
    )
    with pytest.raises(ValueError, match="Negative quantity for Black L/XL: -56"):
        engine.calculate(request)


def test_non_numeric_mold_charge_raises():
    from cap_pricing.data.catalog import Catalog
    from cap_pricing.engine.models import LogoMethod, MoldCharge, PricingTier

    catalog = Catalog(
        tiers=[PricingTier(name="Tier 1", prices={48: 3.60})],
        logo_methods=[LogoMethod(
            name="Rubber Patch", prices={48: 1.50}, application="Sewn", size="Small",
            mold_charge_type="Small Mold Charge",
        )],
        mold_charges=[MoldCharge(size="Small", size_example="", amount=None, raw_amount="abc")],
    )
    request = QuoteRequest(
        quantity=48, logos=[LogoSelection(name="Rubber Patch", size="Small", application="Sewn")],
    )
    with pytest.raises(ValueError, match="Mold charge 'Small' is not numeric"):
        PricingEngine(catalog=catalog).calculate(request)


def test_margins_applied_to_factory_cost(engine):
    """
    AirFrame, 144 units, medium embroidery.
    Base 3.00 + 20% = 3.60; logo 0.80 + 35% + 0.05 = 1.13.
    """
    request = QuoteRequest(
        product_name="AirFrame",
        quantity=144,
        logos=[LogoSelection(name="Flat Embroidery", size="Medium")],
        apply_margins=True,
    )
    result = engine.calculate(request)

    base, logo = result.lines
    assert abs(base.unit_price - 3.60) < 0.01
    assert abs(base.factory_unit_price - 3.00) < 0.01
    assert abs(base.cost - 518.40) < 0.01
    assert abs(logo.unit_price - 1.13) < 0.01
    assert abs(logo.cost - 162.72) < 0.01

    assert result.margins_applied
    assert abs(result.total_cost - 681.12) < 0.01
    assert abs(result.total_margin - 133.92) < 0.01


def test_margins_skip_flat_fees_and_inactive_categories(engine):
    factory = engine.calculate(full_request())
    marked_up = engine.calculate(full_request(apply_margins=True))

    for category in ('mold_charge', 'delivery', 'service'):
        assert abs(marked_up.category_totals[category] - factory.category_totals[category]) < 0.01
    assert marked_up.total_cost > factory.total_cost
    assert abs(marked_up.total_cost - factory.total_cost - marked_up.total_margin) < 0.01

    # Off by default
    assert factory.total_margin == 0.0
    assert all(line.factory_unit_price is None for line in factory.lines)


def test_price_items(engine):
    from cap_pricing.engine.models import ItemPriceRequest

    results = engine.price_items([
        ItemPriceRequest(type="product", name="AirFrame", quantity=576),
        ItemPriceRequest(type="logo", name="Rubber Patch", quantity=144, size="Medium", application="Sewn"),
        ItemPriceRequest(type="accessory", name="Hang Tag", quantity=20000),
        ItemPriceRequest(type="fabric", name="Silk", quantity=144),
        ItemPriceRequest(type="hat", name="Bucket", quantity=144),
        ItemPriceRequest(type="closure", name="Fitted", quantity=0),
    ])

    product, logo, tag, silk, hat, fitted = results
    assert abs(product.unit_price - 2.90) < 0.01
    assert product.breakpoint == 576
    assert abs(product.total - 1670.40) < 0.01
    assert abs(logo.unit_price - 1.50) < 0.01
    assert abs(tag.unit_price - 0.22) < 0.01
    assert tag.breakpoint == 20000

    assert silk.error == "Fabric not found: Silk"
    assert silk.unit_price is None
    assert hat.error.startswith("Unknown item type 'hat'")
    assert fitted.error == "quantity must be >= 1"


def test_price_items_batch_limits(engine):
    from cap_pricing.engine.models import ItemPriceRequest

    item = ItemPriceRequest(type="accessory", name="Sticker", quantity=48)
    assert len(engine.price_items([item] * 100)) == 100

    with pytest.raises(ValueError, match="At most 100 items"):
        engine.price_items([item] * 101)
    with pytest.raises(ValueError, match="At least one item"):
        engine.price_items([])
