"""Vesting schedule — bounds how much of a position is par-redeemable.

The schedule is a reverse unlock over a fixed window:

    now <  vesting_start  → rate = 10000 bps (fully redeemable)
    now >  vesting_end    → rate = 0        (hard stop)
    otherwise             → rate = floor(10000 × (end − now) / (end − start))

The rate is applied to a position's *original* share count and whatever
was already redeemed or claimed is subtracted:

    redeemable = max(0, floor(rate × total_shares / 10000) − consumed)

Early redemptions therefore consume allowance that would otherwise have
remained later in the curve. Once the window has closed nothing is
par-redeemable at all; the vault is expected to move to terminal mode.

Time is measured in whole UTC seconds. The schedule is a pure function
of its window and the supplied `now`.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime

from parvault.errors import InvalidVestingSchedule
from parvault.models.position import Position
from parvault.numeric import BPS_SCALE, mul_div_down


def _epoch_seconds(moment: datetime) -> int:
    if moment.tzinfo is None:
        raise ValueError("Vesting timestamps must be timezone-aware")
    return calendar.timegm(moment.utctimetuple())


@dataclass(frozen=True)
class VestingSchedule:
    """Linear reverse-unlock window.

    Usage:
        schedule = VestingSchedule(start, end)
        schedule.vesting_rate(now)             # basis points
        schedule.redeemable_shares(position, now)
    """
    vesting_start: datetime
    vesting_end: datetime

    def __post_init__(self) -> None:
        if _epoch_seconds(self.vesting_end) < _epoch_seconds(self.vesting_start):
            raise InvalidVestingSchedule(
                f"vesting_end ({self.vesting_end.isoformat()}) precedes "
                f"vesting_start ({self.vesting_start.isoformat()})"
            )

    def has_started(self, now: datetime) -> bool:
        """True once the window has opened (now >= vesting_start)."""
        return _epoch_seconds(now) >= _epoch_seconds(self.vesting_start)

    def has_ended(self, now: datetime) -> bool:
        return _epoch_seconds(now) > _epoch_seconds(self.vesting_end)

    def vesting_rate(self, now: datetime) -> int:
        """Currently redeemable fraction of original shares, in basis points."""
        start = _epoch_seconds(self.vesting_start)
        end = _epoch_seconds(self.vesting_end)
        t = _epoch_seconds(now)
        if t < start:
            return BPS_SCALE
        if t > end:
            return 0
        if end == start:
            # Zero-length window: closed the instant it opens
            return 0
        return mul_div_down(BPS_SCALE, end - t, end - start)

    def redeemable_shares(self, position: Position, now: datetime) -> int:
        """Shares of `position` that may be par-redeemed at `now`."""
        unlocked = mul_div_down(
            self.vesting_rate(now), position.total_shares, BPS_SCALE
        )
        return max(0, unlocked - position.consumed_shares)
