"""
Pricing engine.

Pure functions over integer minor currency units (tiyn, cents). Percentages
may be fractional; every percentage step rounds half-up to a whole minor
unit through ``decimal`` so repeated composition never drifts.

Canonical composition used by :func:`quote`::

    subtotal -> - discount -> + delivery fee -> + tax -> + tip

Each step is rounded on its own before being accumulated.
"""
import math
from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import Iterable

from app.core.config import settings
from app.domain import geo
from app.domain.errors import EmptyOrder, InvalidDiscount, InvalidTotal
from app.domain.schemas import PriceBreakdown

HUNDRED = Decimal(100)


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _percent_of(price: int, percentage) -> int:
    return _round_half_up(Decimal(price) * Decimal(str(percentage)) / HUNDRED)


def line_unit_price(item) -> int:
    """Unit price plus the surcharge of every selected option."""
    return item.unit_price + sum(option.price for option in item.selected_options)


def subtotal(items) -> int:
    items = list(items)
    if not items:
        raise EmptyOrder("Order must contain at least one item")
    return sum(line_unit_price(item) * item.quantity for item in items)


def discount(price: int, percentage) -> int:
    if not (math.isfinite(percentage) and 0 <= percentage <= 100):
        raise InvalidDiscount(f"Discount percentage must be within [0, 100], got {percentage}")
    return _percent_of(price, percentage)


def bulk_discount(
    unit_price: int,
    quantity: int,
    threshold: int = settings.BULK_DISCOUNT_THRESHOLD,
    pct=settings.BULK_DISCOUNT_PERCENTAGE,
) -> int:
    if quantity >= threshold:
        return discount(unit_price, pct)
    return 0


def tax(price: int, rate=settings.TAX_RATE) -> int:
    if not (math.isfinite(rate) and rate >= 0):
        raise InvalidTotal(f"Tax rate must be a non-negative number, got {rate}")
    return _percent_of(price, rate)


def tip(price: int, pct) -> int:
    if not (math.isfinite(pct) and pct >= 0):
        raise InvalidTotal(f"Tip percentage must be a non-negative number, got {pct}")
    return _percent_of(price, pct)


def total(subtotal: int, delivery_fee: int, discount: int, tax: int = 0, tip: int = 0) -> int:
    amount = subtotal + delivery_fee - discount + tax + tip
    if amount < 0:
        # A negative total means the discount configuration is wrong upstream
        raise InvalidTotal(f"Computed total is negative ({amount})")
    return amount


def loyalty_points(price: int, rate=settings.LOYALTY_POINTS_RATE) -> int:
    return int((Decimal(price) * Decimal(str(rate))).to_integral_value(rounding=ROUND_FLOOR))


def format_price(amount: int, currency: str = settings.CURRENCY) -> str:
    grouped = f"{amount:,}".replace(",", " ")
    return f"{grouped} {currency}"


def quote(
    items: Iterable,
    distance_meters: int = 0,
    discount_percentage=0,
    tip_percentage=0,
    tax_rate=settings.TAX_RATE,
) -> PriceBreakdown:
    """Full price breakdown for a basket in the canonical composition order."""
    items = list(items)
    sub = subtotal(items)

    disc = discount(sub, discount_percentage)
    disc += sum(bulk_discount(line_unit_price(item), item.quantity) * item.quantity for item in items)

    fee = geo.delivery_fee(distance_meters)
    # Tax and tip share the discounted, fee-inclusive base
    taxable = sub - disc + fee
    tax_amount = tax(taxable, tax_rate)
    tip_amount = tip(taxable, tip_percentage)

    amount = total(sub, fee, disc, tax_amount, tip_amount)
    return PriceBreakdown(
        subtotal=sub,
        discount=disc,
        delivery_fee=fee,
        tax=tax_amount,
        tip=tip_amount,
        total=amount,
        loyalty_points=loyalty_points(amount),
    )
