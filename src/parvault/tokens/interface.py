"""Fungible token contract consumed by the vault.

The vault never implements token semantics itself. It mints and burns its
own shares, moves escrowed shares on claim, and moves the underlying asset
in and out — all through this interface. Both the share token and the
underlying asset satisfy it.

`caller` is the identity performing the operation (the spender for
delegated transfers). Implementations raise InsufficientBalance and
InsufficientAllowance from parvault.errors; the vault lets them propagate.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class FungibleToken(Protocol):
    """Abstract contract for a fungible balance ledger."""

    @property
    def address(self) -> str:
        """Identity of the token itself."""
        ...

    def total_supply(self) -> int:
        ...

    def balance_of(self, account: str) -> int:
        ...

    def allowance(self, owner: str, spender: str) -> int:
        ...

    def approve(self, caller: str, spender: str, amount: int) -> None:
        ...

    def transfer(self, caller: str, to: str, amount: int) -> None:
        ...

    def transfer_from(self, caller: str, owner: str, to: str, amount: int) -> None:
        """Move `amount` from `owner` to `to`, spending caller's allowance."""
        ...

    def mint(self, to: str, amount: int) -> None:
        ...

    def burn(self, owner: str, amount: int) -> None:
        ...
