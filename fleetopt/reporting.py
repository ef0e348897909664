"""
Display formatting for optimization results.

The presentation layer renders these strings verbatim, so rounding is
half-up (2.5 -> 3, 1.25 -> 1.3) rather than Python's round-half-even.
"""

import math
from decimal import ROUND_HALF_UP, Decimal


def _fixed(value: float, digits: int = 0) -> str:
    """Format *value* with *digits* decimals, rounding half away from zero."""
    if not math.isfinite(value):
        return str(value)
    quantum = Decimal(1).scaleb(-digits)
    return str(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_currency(usd: float) -> str:
    """'$1.3M', '$4K' or '$850'."""
    if usd >= 1_000_000:
        return f"${_fixed(usd / 1_000_000, 1)}M"
    if usd >= 1000:
        return f"${_fixed(usd / 1000)}K"
    return f"${_fixed(usd)}"


def format_distance(nm: float) -> str:
    """Whole miles from 100 nm up, one decimal below."""
    if nm >= 100:
        return f"{_fixed(nm)} nm"
    return f"{_fixed(nm, 1)} nm"


def format_fuel(liters: float) -> str:
    if liters >= 1000:
        return f"{_fixed(liters / 1000, 1)}K L"
    return f"{_fixed(liters)} L"


def format_duration(hours: float) -> str:
    """'45m' under an hour, '5.5h' under a day, else '2d 3h'."""
    if not math.isfinite(hours):
        return "n/a"
    if hours < 1:
        return f"{_round_half_up(hours * 60)}m"
    if hours < 24:
        return f"{_fixed(hours, 1)}h"
    days = int(hours // 24)
    remaining_hours = _round_half_up(hours % 24)
    return f"{days}d {remaining_hours}h"
