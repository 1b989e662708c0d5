"""
Breakpoint pricing - picks the unit price column for an order quantity.

Every pricing table stores one unit price per volume breakpoint
(price48, price144, ... price20000). A quantity uses the largest
breakpoint it has reached; quantities under the first breakpoint
still pay the price48 rate.
"""
from dataclasses import dataclass
from typing import Iterable, Optional

from ..config.settings import BREAKPOINTS


def price_column(breakpoint: int) -> str:
    """Column name for a breakpoint, e.g. 576 -> 'price576'."""
    return f"price{breakpoint}"


def tier_label(breakpoint: int) -> str:
    """Display label for a breakpoint, e.g. 576 -> '576+'."""
    return f"{breakpoint}+"


def select_breakpoint(quantity: int, available: Iterable[int] = BREAKPOINTS) -> int:
    """
    Select the largest breakpoint <= quantity.

    Falls back to the smallest breakpoint when the quantity is below all of them.
    """
    points = sorted(available)
    if not points:
        raise ValueError("No breakpoints available")

    selected = points[0]
    for point in points:
        if quantity >= point:
            selected = point
        else:
            break
    return selected


def price_for_quantity(prices: dict[int, Optional[float]], quantity: int) -> tuple[float, int]:
    """
    Resolve the unit price for a quantity from a breakpoint → price map.

    Blank breakpoints are skipped by walking down to the nearest lower
    breakpoint that carries a price (a table without price20000 uses price10000).

    Returns (unit_price, breakpoint_used). A row with no prices gives (0.0, 48).
    """
    priced = sorted(bp for bp, price in prices.items() if price is not None)
    if not priced:
        return 0.0, BREAKPOINTS[0]

    target = select_breakpoint(quantity, BREAKPOINTS)
    candidates = [bp for bp in priced if bp <= target]
    if candidates:
        used = candidates[-1]
    else:
        # Row only offered at higher volumes (e.g. freight)
        used = priced[0]
    return float(prices[used]), used


def calculate_savings(prices: dict[int, Optional[float]], unit_price: float, quantity: int) -> tuple[float, float]:
    """
    Savings compared to the price48 rate.

    Returns (total_savings, discount_percent); both are never negative.
    """
    base_price = prices.get(BREAKPOINTS[0])
    if base_price is None:
        base_price = unit_price

    savings = (base_price - unit_price) * quantity
    discount_percent = ((base_price - unit_price) / base_price) * 100 if base_price > 0 else 0.0
    return max(0.0, savings), max(0.0, discount_percent)


@dataclass
class VolumeDiscount:
    """Volume discount information for display purposes."""
    regular_price: float
    discounted_price: float
    savings: float
    savings_percentage: float
    total_savings: float
    tier_name: str


def volume_discount(prices: dict[int, Optional[float]], quantity: int) -> Optional[VolumeDiscount]:
    """Volume discount at this quantity, or None while still on the 48+ rate."""
    regular_price = prices.get(BREAKPOINTS[0])
    if not regular_price:
        return None

    unit_price, used = price_for_quantity(prices, quantity)
    if used <= BREAKPOINTS[0]:
        return None

    savings = regular_price - unit_price
    return VolumeDiscount(
        regular_price=regular_price,
        discounted_price=unit_price,
        savings=savings,
        savings_percentage=(savings / regular_price) * 100,
        total_savings=savings * quantity,
        tier_name=tier_label(used),
    )


def is_non_increasing(prices: dict[int, Optional[float]]) -> bool:
    """True when prices never rise as the breakpoint rises (blanks ignored)."""
    ordered = [prices[bp] for bp in sorted(prices) if prices[bp] is not None]
    return all(later <= earlier for earlier, later in zip(ordered, ordered[1:]))
