"""Error taxonomy for the vault engine.

Every failure raised by the engine derives from VaultError and belongs to
exactly one category:

- validation: the caller supplied a bad value and must correct it.
- state-gating: the operation is not available in the current vault state.
- authorization: the caller is not allowed to act on the target.
- capacity: the request exceeds what a position, balance or schedule allows.
- reserve-integrity: a reserve did not honour its own preview or exceeded
  the slippage tolerance.

An error aborts the whole entrypoint call. Nothing is retried internally.
"""

from __future__ import annotations


class VaultError(Exception):
    """Base class for every error raised by the vault engine."""


# --- Validation --------------------------------------------------------


class ValidationError(VaultError, ValueError):
    """Caller supplied an invalid value."""


class ZeroValue(ValidationError):
    """An amount that must be non-zero was zero."""


class NegativeValue(ValidationError):
    """An amount that must be positive was negative."""


class ZeroAddress(ValidationError):
    """An identity that must be set was empty."""


class InvalidFeeRate(ValidationError):
    """A fee rate is outside its permitted basis-point range."""


class InvalidVestingSchedule(ValidationError):
    """Vesting window is not ordered or starts before deployment."""


class InvalidSlippage(ValidationError):
    """Slippage tolerance is outside [0, 10000] basis points."""


class InvalidSweepToken(ValidationError):
    """The token cannot be swept because the vault accounts for it."""


class UnknownPosition(ValidationError):
    """No position exists with the requested id."""


# --- State gating ------------------------------------------------------


class StateError(VaultError):
    """Operation not permitted in the current vault state."""


class WrongRedemptionMode(StateError):
    """Operation requires the other redemption mode."""

    def __init__(self, required: str, current: str) -> None:
        super().__init__(
            f"Operation requires redemption mode {required}, vault is {current}"
        )
        self.required = required
        self.current = current


class DepositsDisabled(StateError):
    """Deposits and mints are switched off."""


class VaultPaused(StateError):
    """The vault is paused."""


class ReentrantCall(StateError):
    """An entrypoint was entered while another call was still running."""


# --- Authorization -----------------------------------------------------


class AuthorizationError(VaultError):
    """Caller is not allowed to perform the operation."""


class Unauthorized(AuthorizationError):
    """Caller is neither the required owner nor an authorized operator."""


class InsufficientAllowance(AuthorizationError):
    """Delegated spend exceeds the approved allowance."""

    def __init__(self, owner: str, spender: str, allowance: int, needed: int) -> None:
        super().__init__(
            f"Allowance of {spender} over {owner} is {allowance}, needed {needed}"
        )
        self.owner = owner
        self.spender = spender
        self.allowance = allowance
        self.needed = needed


# --- Capacity ----------------------------------------------------------


class CapacityError(VaultError):
    """Request exceeds the available quantity."""


class NotEnoughLockedShares(CapacityError):
    """Position holds fewer locked shares than requested."""


class NotEnoughRedeemableShares(CapacityError):
    """Vesting schedule allows fewer shares than requested."""


class InsufficientAssetsInPosition(CapacityError):
    """Computed asset return exceeds the position's remaining assets."""


class InsufficientBalance(CapacityError):
    """Account balance is lower than the amount being moved."""

    def __init__(self, account: str, balance: int, needed: int) -> None:
        super().__init__(f"Balance of {account} is {balance}, needed {needed}")
        self.account = account
        self.balance = balance
        self.needed = needed


# --- Reserve integrity -------------------------------------------------


class ReserveIntegrityError(VaultError):
    """A reserve interaction fell outside the verified bounds."""


class DepositShortfall(ReserveIntegrityError):
    """Previewed round-trip value is below the slippage floor."""

    def __init__(self, assets: int, round_trip: int, minimum: int) -> None:
        super().__init__(
            f"Deposit of {assets} previews back to {round_trip}, minimum {minimum}"
        )
        self.assets = assets
        self.round_trip = round_trip
        self.minimum = minimum


class DepositPreviewMismatch(ReserveIntegrityError):
    """Reserve issued a different share count than it previewed."""

    def __init__(self, previewed: int, received: int) -> None:
        super().__init__(
            f"Reserve previewed {previewed} shares but issued {received}"
        )
        self.previewed = previewed
        self.received = received


class WithdrawShortfall(ReserveIntegrityError):
    """Reserve delivered fewer assets than the slippage floor."""

    def __init__(self, requested: int, received: int, minimum: int) -> None:
        super().__init__(
            f"Withdrew {received} of {requested} requested, minimum {minimum}"
        )
        self.requested = requested
        self.received = received
        self.minimum = minimum
