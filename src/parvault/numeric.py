"""Integer arithmetic helpers.

All quantities are integers in the smallest unit of the asset or share.
No floats in accounting. Rounding direction is always explicit.
"""

from __future__ import annotations

BPS_SCALE = 10_000
MAX_PERFORMANCE_FEE_BPS = 5_000


def mul_div_down(x: int, y: int, denominator: int) -> int:
    """floor(x * y / denominator)."""
    if denominator == 0:
        raise ZeroDivisionError("mul_div_down denominator is zero")
    return (x * y) // denominator


def mul_div_up(x: int, y: int, denominator: int) -> int:
    """ceil(x * y / denominator)."""
    if denominator == 0:
        raise ZeroDivisionError("mul_div_up denominator is zero")
    return -((-x * y) // denominator)


def bps_floor(amount: int, bps: int) -> int:
    """Minimum acceptable amount after a tolerance of `bps` basis points."""
    return mul_div_down(amount, BPS_SCALE - bps, BPS_SCALE)


def check_bps(value: int, ceiling: int = BPS_SCALE) -> bool:
    return isinstance(value, int) and 0 <= value <= ceiling
