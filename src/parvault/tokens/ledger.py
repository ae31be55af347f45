"""In-memory fungible token.

Reference implementation of the FungibleToken contract: balances, total
supply and allowances held in dictionaries. Used for the vault's share
token, for the underlying asset, and for miscellaneous reward tokens in
tests and simulations.

An allowance equal to UNLIMITED_ALLOWANCE is never decremented.
"""

from __future__ import annotations

from typing import Dict, Tuple

from parvault.errors import InsufficientAllowance, InsufficientBalance, ZeroAddress

UNLIMITED_ALLOWANCE = 2**256 - 1


class TokenLedger:
    """Balance and allowance ledger for a single token.

    Usage:
        usdc = TokenLedger("usdc")
        usdc.mint("alice", 1_000)
        usdc.approve("alice", "vault", 1_000)
        usdc.transfer_from("vault", "alice", "vault", 400)
    """

    def __init__(self, address: str, decimals: int = 18) -> None:
        if not address:
            raise ZeroAddress("Token address must be set")
        self._address = address
        self.decimals = decimals
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._total_supply = 0

    @property
    def address(self) -> str:
        return self._address

    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def approve(self, caller: str, spender: str, amount: int) -> None:
        if not spender:
            raise ZeroAddress("Spender must be set")
        self._require_amount(amount)
        self._allowances[(caller, spender)] = amount

    def transfer(self, caller: str, to: str, amount: int) -> None:
        self._move(caller, to, amount)

    def transfer_from(self, caller: str, owner: str, to: str, amount: int) -> None:
        if caller != owner:
            self._spend_allowance(owner, caller, amount)
        self._move(owner, to, amount)

    def mint(self, to: str, amount: int) -> None:
        if not to:
            raise ZeroAddress("Cannot mint to an empty account")
        self._require_amount(amount)
        self._balances[to] = self.balance_of(to) + amount
        self._total_supply += amount

    def burn(self, owner: str, amount: int) -> None:
        self._require_amount(amount)
        balance = self.balance_of(owner)
        if balance < amount:
            raise InsufficientBalance(owner, balance, amount)
        self._balances[owner] = balance - amount
        self._total_supply -= amount

    def snapshot(self) -> tuple:
        return dict(self._balances), dict(self._allowances), self._total_supply

    def restore(self, state: tuple) -> None:
        balances, allowances, supply = state
        self._balances = dict(balances)
        self._allowances = dict(allowances)
        self._total_supply = supply

    def _spend_allowance(self, owner: str, spender: str, amount: int) -> None:
        current = self.allowance(owner, spender)
        if current == UNLIMITED_ALLOWANCE:
            return
        if current < amount:
            raise InsufficientAllowance(owner, spender, current, amount)
        self._allowances[(owner, spender)] = current - amount

    def _move(self, sender: str, to: str, amount: int) -> None:
        if not to:
            raise ZeroAddress("Cannot transfer to an empty account")
        self._require_amount(amount)
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalance(sender, balance, amount)
        self._balances[sender] = balance - amount
        self._balances[to] = self.balance_of(to) + amount

    @staticmethod
    def _require_amount(amount: int) -> None:
        if not isinstance(amount, int) or amount < 0:
            raise ValueError(f"Token amount must be a non-negative int, got {amount!r}")
