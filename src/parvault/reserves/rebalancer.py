"""Reserve rebalancer — keeps the liquid reserve sized to the live liability.

vest():
    liquid_value = value of the holder's liquid-reserve shares
    if liquid_value <= liability: no-op, return 0
    received = gateway.withdraw_from(liquid, liquid_value − liability)
    gateway.deposit_to(yield, received)
    return received

liquidate():
    amount = yield.max_withdraw(holder)
    if amount == 0: return 0
    received = gateway.withdraw_from(yield, amount)
    gateway.deposit_to(liquid, received)
    return received

Each liquidate() is bounded by the yield reserve's momentary capacity, so
an illiquid or rate-limited venue is drained over repeated calls.
Mode gating and authorization are the vault's concern, not this module's.
"""

from __future__ import annotations

import logging

from parvault.ledger.positions import PositionLedger
from parvault.reserves.gateway import SafeReserveGateway
from parvault.reserves.interface import Reserve, reserve_value

_log = logging.getLogger(__name__)


class ReserveRebalancer:
    """Moves capital between the liquid and yield reserves through the gateway."""

    def __init__(
        self,
        ledger: PositionLedger,
        gateway: SafeReserveGateway,
        liquid_reserve: Reserve,
        yield_reserve: Reserve,
    ) -> None:
        self._ledger = ledger
        self._gateway = gateway
        self._liquid = liquid_reserve
        self._yield = yield_reserve

    def liquid_value(self) -> int:
        return reserve_value(self._liquid, self._gateway.holder)

    def yield_value(self) -> int:
        return reserve_value(self._yield, self._gateway.holder)

    def surplus(self) -> int:
        """Liquid value in excess of the redemption liability (never negative)."""
        return max(0, self.liquid_value() - self._ledger.total_redemption_liability)

    def vest(self) -> int:
        """Sweep liquid surplus into the yield reserve; returns assets moved."""
        surplus = self.surplus()
        if surplus == 0:
            return 0
        received = self._gateway.withdraw_from(self._liquid, surplus)
        self._gateway.deposit_to(self._yield, received)
        _log.info("vested %d assets (surplus %d) into yield reserve", received, surplus)
        return received

    def liquidate(self) -> int:
        """Pull what the yield reserve allows back into the liquid reserve."""
        amount = self._yield.max_withdraw(self._gateway.holder)
        if amount == 0:
            return 0
        received = self._gateway.withdraw_from(self._yield, amount)
        self._gateway.deposit_to(self._liquid, received)
        _log.info("liquidated %d assets (requested %d) into liquid reserve", received, amount)
        return received
