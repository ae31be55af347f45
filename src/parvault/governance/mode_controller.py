"""Redemption mode controller — manages the one-way INITIAL → TERMINAL switch.

Rules:
- INITIAL: positional redeem, claim and vest are available; deposits
  create positions and the minted shares stay in vault custody.
- TERMINAL: fungible withdraw and redeem-by-shares are available;
  deposits mint shares straight to the receiver, no position is created.

Progression is one-way. No regression. Enabling TERMINAL twice is the
same as enabling it once.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from parvault.errors import WrongRedemptionMode
from parvault.models.position import RedemptionMode


class RedemptionModeController:
    """Holds the vault's redemption mode and gates operations on it."""

    def __init__(self, mode: RedemptionMode = RedemptionMode.INITIAL) -> None:
        self._mode = mode
        self._terminal_since: Optional[datetime] = None

    @property
    def mode(self) -> RedemptionMode:
        return self._mode

    @property
    def is_terminal(self) -> bool:
        return self._mode == RedemptionMode.TERMINAL

    @property
    def terminal_since(self) -> Optional[datetime]:
        return self._terminal_since

    def require(self, required: RedemptionMode) -> None:
        """Raise WrongRedemptionMode unless the vault is in `required`."""
        if self._mode != required:
            raise WrongRedemptionMode(required.value, self._mode.value)

    def enable_terminal(self, now: datetime) -> bool:
        """Switch to TERMINAL. Returns True only on the actual transition."""
        if self.is_terminal:
            return False
        self._mode = RedemptionMode.TERMINAL
        self._terminal_since = now
        return True

    def snapshot(self) -> tuple:
        return self._mode, self._terminal_since

    def restore(self, state: tuple) -> None:
        self._mode, self._terminal_since = state
