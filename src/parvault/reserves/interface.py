"""Reserve contract — the capability the vault requires of a yield venue.

The vault holds two reserves: a liquid reserve that backs par redemptions
and a yield reserve that receives swept surplus. Both are external and
untrusted. The vault never interacts with a reserve directly; every
movement passes through SafeReserveGateway, which verifies the reserve
against its own previews and the configured slippage tolerance.

Adding a new kind of reserve = implement this Protocol. Zero changes to
the ledger, rebalancer or fee engine.

`caller` is the identity performing the operation. Share amounts are in
the reserve's own share unit; asset amounts are in the vault's asset unit.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Reserve(Protocol):
    """Abstract contract for a single-asset share-issuing reserve."""

    @property
    def address(self) -> str:
        """Identity of the reserve (also the identity of its share token)."""
        ...

    def deposit(self, caller: str, assets: int, receiver: str) -> int:
        """Pull `assets` from caller, issue shares to receiver; returns shares."""
        ...

    def withdraw(self, caller: str, assets: int, receiver: str, owner: str) -> int:
        """Burn owner's shares, send `assets` to receiver; returns shares burned."""
        ...

    def preview_deposit(self, assets: int) -> int:
        ...

    def preview_redeem(self, shares: int) -> int:
        ...

    def preview_withdraw(self, assets: int) -> int:
        """Shares that withdrawing `assets` would burn (rounded up)."""
        ...

    def max_withdraw(self, owner: str) -> int:
        """Assets `owner` can withdraw right now."""
        ...

    def balance_of(self, owner: str) -> int:
        ...

    def transfer(self, caller: str, to: str, shares: int) -> None:
        ...


def reserve_value(reserve: Reserve, holder: str) -> int:
    """Asset value of `holder`'s shares in `reserve`, computed on demand."""
    return reserve.preview_redeem(reserve.balance_of(holder))
