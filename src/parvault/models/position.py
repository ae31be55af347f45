"""Position and redemption-mode models.

A position is a depositor's par-value claim on the vault. It records the
assets and shares locked at deposit time and shrinks as its owner redeems
or claims. Positions are never deleted: a fully drained position simply
reads zero.

Invariants enforced here:
- shares <= total_shares
- assets, shares and total_shares are never negative
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


class RedemptionMode(str, enum.Enum):
    """Vault redemption mode.

    Progression is one-way: INITIAL → TERMINAL. No regression.
    """
    INITIAL = "initial"    # Semi-redeemable: positional par redemption
    TERMINAL = "terminal"  # Fully redeemable: fungible NAV redemption


@dataclass
class Position:
    """A par-redeemable claim held by one owner.

    Mutable — shares and assets decrease as the owner redeems or claims.
    `total_shares` is the vesting denominator and only moves while the
    vesting window has not opened.
    """
    position_id: int
    owner: str
    assets: int
    shares: int
    total_shares: int
    created_utc: Optional[datetime] = None

    def __post_init__(self) -> None:
        if min(self.assets, self.shares, self.total_shares) < 0:
            raise ValueError("Position quantities must be non-negative")
        if self.shares > self.total_shares:
            raise ValueError(
                f"Position {self.position_id}: shares ({self.shares}) exceed "
                f"total_shares ({self.total_shares})"
            )

    @property
    def is_drained(self) -> bool:
        return self.shares == 0

    @property
    def consumed_shares(self) -> int:
        """Shares already redeemed or claimed against the vesting denominator."""
        return self.total_shares - self.shares

    def to_dict(self) -> dict:
        return {
            "position_id": self.position_id,
            "owner": self.owner,
            "assets": self.assets,
            "shares": self.shares,
            "total_shares": self.total_shares,
        }
