"""In-memory reserve — reference implementation of the Reserve contract.

Share pricing is proportional, 1:1 while the reserve is empty:

    shares = assets × supply / total_assets

with floor rounding for deposits and redemptions and ceiling rounding for
withdraw previews. The reserve's assets are simply its balance of the
underlying token.

Simulation knobs let tests and scenarios model misbehaving venues:

- accrue(assets) / impair(assets): yield or loss on the underlying.
- withdraw_limit: momentary withdrawable capacity (illiquid or rate-limited
  venue); consumed by withdrawals, None means unlimited.
- withdraw_haircut_bps: part of each withdrawal retained by the reserve.
- deposit_fee_bps: part of each deposit's shares withheld, which makes
  the reserve non-compliant with its own preview_deposit.
- on_call: hook invoked before deposit/withdraw with the operation name.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from parvault.errors import InsufficientBalance, ZeroValue
from parvault.numeric import BPS_SCALE, mul_div_down, mul_div_up
from parvault.tokens.ledger import TokenLedger

_log = logging.getLogger(__name__)


class InMemoryReserve:
    """Share-issuing reserve over a TokenLedger asset.

    Usage:
        asset = TokenLedger("usdc")
        reserve = InMemoryReserve("liquid", asset)
        asset.approve("vault", reserve.address, 1_000)
        shares = reserve.deposit("vault", 1_000, "vault")
    """

    def __init__(
        self,
        address: str,
        asset: TokenLedger,
        withdraw_limit: Optional[int] = None,
        withdraw_haircut_bps: int = 0,
        deposit_fee_bps: int = 0,
    ) -> None:
        self._asset = asset
        self._shares = TokenLedger(address, decimals=asset.decimals)
        self.withdraw_limit = withdraw_limit
        self.withdraw_haircut_bps = withdraw_haircut_bps
        self.deposit_fee_bps = deposit_fee_bps
        self.on_call: Optional[Callable[[str], None]] = None

    @property
    def address(self) -> str:
        return self._shares.address

    @property
    def asset(self) -> TokenLedger:
        return self._asset

    def total_assets(self) -> int:
        return self._asset.balance_of(self.address)

    def total_supply(self) -> int:
        return self._shares.total_supply()

    def balance_of(self, owner: str) -> int:
        return self._shares.balance_of(owner)

    def preview_deposit(self, assets: int) -> int:
        supply, total = self.total_supply(), self.total_assets()
        if supply == 0 or total == 0:
            return assets
        return mul_div_down(assets, supply, total)

    def preview_redeem(self, shares: int) -> int:
        supply = self.total_supply()
        if supply == 0:
            return shares
        return mul_div_down(shares, self.total_assets(), supply)

    def preview_withdraw(self, assets: int) -> int:
        supply, total = self.total_supply(), self.total_assets()
        if supply == 0 or total == 0:
            return assets
        return mul_div_up(assets, supply, total)

    def max_withdraw(self, owner: str) -> int:
        available = min(
            self.preview_redeem(self.balance_of(owner)), self.total_assets()
        )
        if self.withdraw_limit is not None:
            available = min(available, self.withdraw_limit)
        return available

    def deposit(self, caller: str, assets: int, receiver: str) -> int:
        if self.on_call is not None:
            self.on_call("deposit")
        if assets == 0:
            raise ZeroValue("Reserve deposit of zero assets")
        shares = self.preview_deposit(assets)
        shares -= mul_div_down(shares, self.deposit_fee_bps, BPS_SCALE)
        self._asset.transfer_from(self.address, caller, self.address, assets)
        self._shares.mint(receiver, shares)
        _log.debug("%s: deposit %d assets → %d shares for %s", self.address, assets, shares, receiver)
        return shares

    def withdraw(self, caller: str, assets: int, receiver: str, owner: str) -> int:
        if self.on_call is not None:
            self.on_call("withdraw")
        limit = self.max_withdraw(owner)
        if assets > limit:
            raise InsufficientBalance(owner, limit, assets)
        shares = self.preview_withdraw(assets)
        if caller != owner:
            self._shares.transfer_from(caller, owner, caller, shares)
            owner = caller
        self._shares.burn(owner, shares)
        if self.withdraw_limit is not None:
            self.withdraw_limit -= assets
        delivered = assets - mul_div_down(assets, self.withdraw_haircut_bps, BPS_SCALE)
        self._asset.transfer(self.address, receiver, delivered)
        _log.debug("%s: withdraw %d assets (%d delivered) burning %d shares", self.address, assets, delivered, shares)
        return shares

    def transfer(self, caller: str, to: str, shares: int) -> None:
        self._shares.transfer(caller, to, shares)

    def approve(self, caller: str, spender: str, shares: int) -> None:
        self._shares.approve(caller, spender, shares)

    def accrue(self, assets: int) -> None:
        """Simulate yield: new underlying appears in the reserve."""
        self._asset.mint(self.address, assets)

    def impair(self, assets: int) -> None:
        """Simulate a loss: underlying disappears from the reserve."""
        self._asset.burn(self.address, assets)

    def snapshot(self) -> tuple:
        return self._shares.snapshot(), self.withdraw_limit

    def restore(self, state: tuple) -> None:
        shares_state, withdraw_limit = state
        self._shares.restore(shares_state)
        self.withdraw_limit = withdraw_limit
