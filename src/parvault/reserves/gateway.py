"""Safe reserve gateway — the single chokepoint for reserve interactions.

An externally supplied reserve is an unbounded trust assumption. The
gateway turns it into a bounded, numerically verified one:

deposit_to(reserve, assets):
    1. shares     = reserve.preview_deposit(assets)
    2. round_trip = reserve.preview_redeem(shares)
    3. require round_trip >= assets × (10000 − max_slippage_bps) / 10000
    4. deposit, measure the holder's share-balance delta
    5. require delta == shares exactly (no tolerance for deposit fees)

withdraw_from(reserve, assets_requested):
    1. withdraw, measure the holder's asset-balance delta
    2. require delta >= assets_requested × (10000 − max_slippage_bps) / 10000
    3. return the delta — callers must use it, never the requested amount

The gateway has no knowledge of positions or liabilities.
"""

from __future__ import annotations

import logging

from parvault.errors import (
    DepositPreviewMismatch,
    DepositShortfall,
    InvalidSlippage,
    NegativeValue,
    WithdrawShortfall,
    ZeroValue,
)
from parvault.numeric import BPS_SCALE, bps_floor, check_bps
from parvault.reserves.interface import Reserve
from parvault.tokens.interface import FungibleToken

_log = logging.getLogger(__name__)


class SafeReserveGateway:
    """Verified deposits into and withdrawals from reserves on behalf of `holder`.

    Usage:
        gateway = SafeReserveGateway("vault", asset, max_slippage_bps=10)
        shares = gateway.deposit_to(liquid, 1_000)
        received = gateway.withdraw_from(liquid, 500)
    """

    def __init__(
        self,
        holder: str,
        asset: FungibleToken,
        max_slippage_bps: int = 0,
    ) -> None:
        self._holder = holder
        self._asset = asset
        self._max_slippage_bps = 0
        self.max_slippage_bps = max_slippage_bps

    @property
    def holder(self) -> str:
        return self._holder

    @property
    def max_slippage_bps(self) -> int:
        return self._max_slippage_bps

    @max_slippage_bps.setter
    def max_slippage_bps(self, value: int) -> None:
        if not check_bps(value, BPS_SCALE):
            raise InvalidSlippage(
                f"Slippage must be within [0, {BPS_SCALE}] bps, got {value}"
            )
        self._max_slippage_bps = value

    def deposit_to(self, reserve: Reserve, assets: int) -> int:
        """Deposit `assets` into `reserve`; returns the shares received."""
        if assets < 0:
            raise NegativeValue(f"Reserve deposit of {assets} assets")
        if assets == 0:
            raise ZeroValue("Reserve deposit of zero assets")

        expected_shares = reserve.preview_deposit(assets)
        round_trip = reserve.preview_redeem(expected_shares)
        minimum = bps_floor(assets, self._max_slippage_bps)
        if round_trip < minimum:
            raise DepositShortfall(assets, round_trip, minimum)

        self._asset.approve(self._holder, reserve.address, assets)
        before = reserve.balance_of(self._holder)
        reserve.deposit(self._holder, assets, self._holder)
        received = reserve.balance_of(self._holder) - before
        if received != expected_shares:
            raise DepositPreviewMismatch(expected_shares, received)

        _log.debug(
            "deposited %d assets into %s for %d shares",
            assets, reserve.address, received,
        )
        return received

    def withdraw_from(self, reserve: Reserve, assets_requested: int) -> int:
        """Withdraw from `reserve`; returns the assets actually received."""
        if assets_requested < 0:
            raise NegativeValue(f"Reserve withdrawal of {assets_requested} assets")
        if assets_requested == 0:
            raise ZeroValue("Reserve withdrawal of zero assets")

        before = self._asset.balance_of(self._holder)
        reserve.withdraw(self._holder, assets_requested, self._holder, self._holder)
        received = self._asset.balance_of(self._holder) - before
        minimum = bps_floor(assets_requested, self._max_slippage_bps)
        if received < minimum:
            raise WithdrawShortfall(assets_requested, received, minimum)

        if received != assets_requested:
            _log.info(
                "withdrew %d of %d requested from %s",
                received, assets_requested, reserve.address,
            )
        return received
