"""Fee computation records.

Every performance-fee assessment produces a full published breakdown, so
the treasury's take can always be traced back to the NAV that justified it.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FeeAssessment:
    """Result of one high-water-mark evaluation.

    When `nav_per_share <= hwm_before` there is no new high: `fee` is 0 and
    `hwm_after == hwm_before`.
    """
    nav_per_share: int
    hwm_before: int
    hwm_after: int
    total_supply: int
    total_profit: int
    fee: int

    @property
    def is_new_high(self) -> bool:
        return self.hwm_after > self.hwm_before

    def to_dict(self) -> dict:
        return {
            "nav_per_share": self.nav_per_share,
            "hwm_before": self.hwm_before,
            "hwm_after": self.hwm_after,
            "total_supply": self.total_supply,
            "total_profit": self.total_profit,
            "fee": self.fee,
        }


@dataclass(frozen=True)
class RedemptionBreakdown:
    """Asset split of a positional redemption.

    Invariant: to_receiver + fee == assets_received
    """
    assets_requested: int
    assets_received: int
    fee: int
    to_receiver: int
