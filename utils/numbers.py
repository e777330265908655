# utils/numbers.py
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Union

Number = Union[int, float]


def round_half_up(value: Number, digits: int = 0) -> Number:
    """Round .5 away from zero, the way the web client rounds, not banker's rounding"""
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return int(rounded) if digits == 0 else float(rounded)


def percent_of(part: int, whole: int) -> int:
    """Integer percentage of part/whole, half-up, clamped to [0, 100]; 0 when whole is 0"""
    if whole <= 0:
        return 0
    percent = (200 * part + whole) // (2 * whole)
    return max(0, min(100, percent))


def mean_rounded(values: Iterable[Number], digits: int = 1) -> Number:
    values = list(values)
    if not values:
        return 0
    return round_half_up(Decimal(str(sum(values))) / len(values), digits)
