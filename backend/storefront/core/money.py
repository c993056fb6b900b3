"""
Currency helpers.

Amounts cross the HTTP and database boundaries in rupees (two decimal places)
and are handled as integer paise everywhere in between.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

PAISE_PER_RUPEE = 100
TWO_PLACES = Decimal("0.01")

Number = Union[int, float, Decimal, str]


def _as_decimal(value: Number) -> Decimal:
    # float -> str first so 0.1 stays 0.1 instead of its binary expansion
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def to_paise(rupees: Number) -> int:
    """Convert a rupee amount to integer paise, rounding half up."""
    paise = _as_decimal(rupees) * PAISE_PER_RUPEE
    return int(paise.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_paise(paise: int) -> Decimal:
    """Convert integer paise back to rupees with two decimal places."""
    return (Decimal(paise) / PAISE_PER_RUPEE).quantize(TWO_PLACES)


def percent_of(paise: int, percent: Decimal) -> int:
    """`percent` % of an amount in paise, rounded half up to the paisa."""
    share = Decimal(paise) * _as_decimal(percent) / 100
    return int(share.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
