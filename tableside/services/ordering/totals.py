"""Order total calculation."""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Union

from tableside.services.ordering.models import OrderTotals

CENT = Decimal("0.01")

Number = Union[Decimal, float, int, str]


def to_decimal(value: Number) -> Decimal:
    """Convert a price to Decimal without picking up float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(unit_price: Number, quantity: int) -> Decimal:
    return to_decimal(unit_price) * quantity


def subtotal_of(lines: Iterable) -> Decimal:
    """Sum of unit_price x quantity over objects exposing both attributes."""
    total = Decimal("0")
    for line in lines:
        total += line_total(line.unit_price, line.quantity)
    return total


def compute_totals(subtotal: Number, tax_rate_percent: Number) -> OrderTotals:
    """
    Compute tax and total for a subtotal.

    tax = subtotal * rate / 100, total = subtotal + tax, both rounded
    half-up to cents. The rate is returned alongside so callers can store
    the exact rate applied.
    """
    subtotal = to_decimal(subtotal)
    rate = to_decimal(tax_rate_percent)
    tax = quantize_money(subtotal * rate / Decimal(100))
    return OrderTotals(
        subtotal=quantize_money(subtotal),
        tax_rate_percent=rate,
        tax=tax,
        total=quantize_money(subtotal + tax),
    )
