"""Exact rounding for cycle arithmetic.

Cycle counts are ints or ``decimal.Decimal``; both are arbitrary precision so
floor and ceil never go through a float.
"""

from __future__ import annotations

from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal
from typing import Union

Cycles = Union[int, Decimal]


def floor_div(numerator: Cycles, denominator: Cycles) -> Cycles:
    if isinstance(numerator, int) and isinstance(denominator, int):
        return numerator // denominator
    quotient = Decimal(numerator) / Decimal(denominator)
    return quotient.to_integral_value(rounding=ROUND_FLOOR)


def ceil_div(numerator: Cycles, denominator: Cycles) -> Cycles:
    if isinstance(numerator, int) and isinstance(denominator, int):
        return -(-numerator // denominator)
    quotient = Decimal(numerator) / Decimal(denominator)
    return quotient.to_integral_value(rounding=ROUND_CEILING)


__all__ = ["Cycles", "floor_div", "ceil_div"]
