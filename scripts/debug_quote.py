import logging
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from cap_pricing.engine import PricingEngine, QuoteRequest, LogoSelection

def debug():
    logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    engine = PricingEngine()

    print("Loaded tables:")
    for table, count in engine.catalog.counts().items():
        print(f"  {table}: {count}")

    # Test Case: decorated cap with a patch, premium fabric and freight
    print("\n--- Testing 6P AirFrame HSCS x 3200 ---")
    req = QuoteRequest(
        product_name="6P AirFrame HSCS",
        quantity=3200,
        logos=[
            LogoSelection(name="Rubber Patch", size="Medium", application="Sewn", position="Front"),
            LogoSelection(name="Flat Embroidery", size="Small", position="Back"),
        ],
        fabric="Polyester/Laser Cut",
        closure="Fitted",
        accessories=["Hang Tag"],
        delivery_method="air-freight",
        services=["graphics"],
    )
    result = engine.calculate(req)

    print("\nLines:")
    for line in result.lines:
        print(f"  {line.category:<15} {line.name:<45} {line.quantity:>6} x ${line.unit_price:.2f} = ${line.cost:.2f}")

    print("\nCategory totals:")
    for category, total in result.category_totals.items():
        print(f"  {category}: ${total:.2f}")

    print(f"\nTotal: ${result.total_cost:.2f}  (saved ${result.total_savings:.2f})")
    print(f"Lead time: {result.estimated_lead_time}")

    if result.warnings:
        print("\nWarnings:")
        for warning in result.warnings:
            print(f"  {warning}")

    print("\nTrace:")
    print(result.get_trace_text())

if __name__ == "__main__":
    debug()
