"""Performance fee engine — high-water-mark fee on NAV per share.

The formula is fully deterministic:

    nav          = ceil((value(liquid) + value(yield)) × unit / supply)
    if nav > hwm:
        profit   = ceil((nav − hwm) × supply / unit)
        fee      = ceil(profit × performance_fee_bps / 10000)
        hwm      = nav                       (even when fee rounds to 0)

Fees round up (protocol-favourable). The NAV itself also rounds up, which
inflates apparent profit; this is kept for parity (see DESIGN.md).

The fee is paid in liquid-reserve shares: preview_withdraw(fee) shares are
transferred from the holder to the treasury. If the liquid reserve holds
too few shares the transfer fails and the whole call is rolled back, so
fee collection depends on vest()/liquidate() keeping the liquid reserve
funded.

Invariant: the high-water mark never decreases.
"""

from __future__ import annotations

import logging
from typing import Tuple

from parvault.models.fees import FeeAssessment
from parvault.numeric import BPS_SCALE, MAX_PERFORMANCE_FEE_BPS, check_bps, mul_div_up
from parvault.errors import InvalidFeeRate, ZeroAddress
from parvault.reserves.interface import Reserve, reserve_value
from parvault.tokens.interface import FungibleToken

_log = logging.getLogger(__name__)


class PerformanceFeeEngine:
    """Computes and extracts performance fees above the high-water mark.

    Usage:
        engine = PerformanceFeeEngine(
            holder="vault", treasury="treasury", share_token=shares,
            liquid_reserve=liquid, yield_reserve=yield_, fee_bps=2000,
            unit=10**18,
        )
        assessment, fee_shares = engine.take_fees()
    """

    def __init__(
        self,
        holder: str,
        treasury: str,
        share_token: FungibleToken,
        liquid_reserve: Reserve,
        yield_reserve: Reserve,
        fee_bps: int,
        unit: int,
    ) -> None:
        if not treasury:
            raise ZeroAddress("Treasury must be set")
        if not check_bps(fee_bps, MAX_PERFORMANCE_FEE_BPS):
            raise InvalidFeeRate(
                f"Performance fee must be within [0, {MAX_PERFORMANCE_FEE_BPS}] bps, "
                f"got {fee_bps}"
            )
        self._holder = holder
        self._treasury = treasury
        self._share_token = share_token
        self._liquid = liquid_reserve
        self._yield = yield_reserve
        self._fee_bps = fee_bps
        self._unit = unit
        self._high_water_mark = unit

    @property
    def high_water_mark(self) -> int:
        return self._high_water_mark

    @property
    def fee_bps(self) -> int:
        return self._fee_bps

    def combined_value(self) -> int:
        return (
            reserve_value(self._liquid, self._holder)
            + reserve_value(self._yield, self._holder)
        )

    def nav_per_share(self) -> int:
        """Combined reserve value per share, scaled by unit, rounded up.

        Returns 0 when no shares exist.
        """
        supply = self._share_token.total_supply()
        if supply == 0:
            return 0
        return mul_div_up(self.combined_value(), self._unit, supply)

    def assess(self) -> FeeAssessment:
        """Evaluate the fee due right now without changing any state."""
        supply = self._share_token.total_supply()
        nav = self.nav_per_share()
        hwm = self._high_water_mark
        if supply == 0 or nav <= hwm:
            return FeeAssessment(
                nav_per_share=nav,
                hwm_before=hwm,
                hwm_after=hwm,
                total_supply=supply,
                total_profit=0,
                fee=0,
            )
        total_profit = mul_div_up(nav - hwm, supply, self._unit)
        fee = mul_div_up(total_profit, self._fee_bps, BPS_SCALE)
        return FeeAssessment(
            nav_per_share=nav,
            hwm_before=hwm,
            hwm_after=nav,
            total_supply=supply,
            total_profit=total_profit,
            fee=fee,
        )

    def take_fees(self) -> Tuple[FeeAssessment, int]:
        """Ratchet the high-water mark and pay any fee to the treasury.

        Returns:
            Tuple of (assessment, liquid-reserve shares transferred).
        """
        assessment = self.assess()
        if not assessment.is_new_high:
            return assessment, 0

        self._high_water_mark = assessment.hwm_after
        fee_shares = 0
        if assessment.fee > 0:
            fee_shares = self._liquid.preview_withdraw(assessment.fee)
            self._liquid.transfer(self._holder, self._treasury, fee_shares)
        _log.info(
            "performance fee %d (%d reserve shares); hwm %d → %d",
            assessment.fee, fee_shares, assessment.hwm_before, assessment.hwm_after,
        )
        return assessment, fee_shares

    def snapshot(self) -> int:
        return self._high_water_mark

    def restore(self, state: int) -> None:
        self._high_water_mark = state
