from __future__ import annotations

from datetime import datetime, tzinfo
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

# 18-decimal token: one whole token is 10**18 base units
BASE_VALUE = 10**18
VALUE_PRECISION = 10**4

NAN = "NaN"

_Q4 = Decimal("0.0001")
_Q2 = Decimal("0.01")


def format_date(timestamp: int, tz: Optional[tzinfo] = None) -> str:
    """dd/mm/yy hh:mm, local time unless `tz` is given."""
    return datetime.fromtimestamp(timestamp, tz).strftime("%d/%m/%y %H:%M")


def token_value(divisor: int) -> str:
    """Displayed balance of one whole token under `divisor`, 4 dp (truncated); NaN for a zero divisor."""
    if divisor <= 0:
        return NAN
    scaled = BASE_VALUE * VALUE_PRECISION // divisor
    return str(Decimal(scaled).scaleb(-4).quantize(_Q4))


def ratio_percent(old: Decimal, new: Decimal, quantum: Decimal) -> str:
    """(new / old - 1) * 100 rounded to `quantum`; NaN when old is zero."""
    if old == 0:
        return NAN
    pct = (new / old - 1) * 100
    return str(pct.quantize(quantum, rounding=ROUND_HALF_UP))


def percent_increase(old_value: str, new_value: str) -> str:
    try:
        old, new = Decimal(old_value), Decimal(new_value)
    except InvalidOperation:
        return NAN
    if old.is_nan() or new.is_nan():
        return NAN
    return ratio_percent(old, new, _Q2)


def growth_percent(old_value: str, new_value: str) -> str:
    try:
        old, new = Decimal(old_value), Decimal(new_value)
    except InvalidOperation:
        return NAN
    if old.is_nan() or new.is_nan():
        return NAN
    return ratio_percent(old, new, _Q4)
