"""Redeemable vault — unified facade over the reserve-accounting engine.

This is the primary interface for programmatic access to the vault. It
orchestrates all subsystems:
- Position ledger (par-value claims and total redemption liability)
- Vesting schedule (how much of a position is par-redeemable now)
- Safe reserve gateway (verified movements into and out of reserves)
- Reserve rebalancer (vest / liquidate)
- Performance fee engine (high-water-mark fees)
- Redemption mode controller (INITIAL → TERMINAL, one-way)

Every public mutating entrypoint takes the calling identity as its first
argument and runs under a reentrancy guard and an atomic scope: if any
step raises, the ledger, tokens, reserves, fee benchmark and vault flags
are restored and no audit event is written.

Entrypoints by mode:
    INITIAL   deposit, mint (positions), redeem (positional), claim, vest
    TERMINAL  deposit, mint (fungible), withdraw, redeem_shares
    any       liquidate, take_performance_fees, administrative operations
"""

from __future__ import annotations

import functools
import logging
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, TypeVar

from parvault.config import VaultConfig, format_utc
from parvault.errors import (
    DepositsDisabled,
    InvalidSweepToken,
    NegativeValue,
    NotEnoughRedeemableShares,
    VaultPaused,
    ZeroAddress,
    ZeroValue,
)
from parvault.fees.performance import PerformanceFeeEngine
from parvault.governance.authorization import (
    Authorizer,
    OwnerAuthorizer,
    require_authorized,
)
from parvault.governance.mode_controller import RedemptionModeController
from parvault.guard import AtomicScope, ReentrancyGuard
from parvault.ledger.positions import PositionLedger
from parvault.models.fees import FeeAssessment, RedemptionBreakdown
from parvault.models.position import Position, RedemptionMode
from parvault.numeric import BPS_SCALE, mul_div_down, mul_div_up
from parvault.persistence.event_log import EventKind, EventLog, EventRecord
from parvault.reserves.gateway import SafeReserveGateway
from parvault.reserves.interface import Reserve
from parvault.reserves.rebalancer import ReserveRebalancer
from parvault.tokens.interface import FungibleToken
from parvault.tokens.ledger import UNLIMITED_ALLOWANCE
from parvault.vesting.schedule import VestingSchedule

_log = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _entrypoint(func: F) -> F:
    """Run a public mutating operation exclusively and atomically."""

    @functools.wraps(func)
    def wrapper(self: "RedeemableVault", *args: Any, **kwargs: Any) -> Any:
        with self._guard.enter(func.__name__):
            self._pending_events = []
            try:
                with AtomicScope(self._participants()):
                    result = func(self, *args, **kwargs)
            except Exception as e:
                self._pending_events = []
                _log.debug("%s rolled back: %s", func.__name__, e)
                raise
            for event in self._pending_events:
                self._event_log.append(event)
            self._pending_events = []
            return result

    return wrapper  # type: ignore[return-value]


class RedeemableVault:
    """Single-asset vault with par-redeemable positions and two reserves.

    Usage:
        vault = RedeemableVault(config, asset, shares, liquid, yield_reserve)

        # Deposit in INITIAL mode creates a position
        asset.approve("alice", vault.address, 1_000)
        vault.deposit("alice", 1_000, "alice")

        # Par redemption within the vesting allowance
        vault.redeem("alice", position_id=1, shares=500, receiver="alice")

        # Keepers and owner
        vault.vest("keeper")
        vault.take_performance_fees("anyone")
        vault.enable_terminal_mode("owner")
    """

    def __init__(
        self,
        config: VaultConfig,
        asset: FungibleToken,
        share_token: FungibleToken,
        liquid_reserve: Reserve,
        yield_reserve: Reserve,
        address: str = "vault",
        authorizer: Optional[Authorizer] = None,
        event_log: Optional[EventLog] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if not address:
            raise ZeroAddress("Vault address must be set")
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        deployed = self._clock()
        config.validate(deployed)

        self._config = config
        self._address = address
        self._asset = asset
        self._share_token = share_token
        self._liquid = liquid_reserve
        self._yield = yield_reserve

        self._schedule = VestingSchedule(config.vesting_start, config.vesting_end)
        self._ledger = PositionLedger(self._schedule)
        self._gateway = SafeReserveGateway(address, asset, config.max_slippage_bps)
        self._rebalancer = ReserveRebalancer(
            self._ledger, self._gateway, liquid_reserve, yield_reserve,
        )
        self._fees = PerformanceFeeEngine(
            holder=address,
            treasury=config.treasury,
            share_token=share_token,
            liquid_reserve=liquid_reserve,
            yield_reserve=yield_reserve,
            fee_bps=config.performance_fee_bps,
            unit=config.unit,
        )
        self._modes = RedemptionModeController()
        self._authorizer: Authorizer = authorizer or OwnerAuthorizer(config.owner)
        self._guard = ReentrancyGuard()

        self._paused = False
        self._deposits_enabled = True

        self._event_log = event_log if event_log is not None else EventLog()
        # Event ids continue after any records already in a persisted log
        self._event_counter = self._event_log.count
        self._pending_events: List[EventRecord] = []

        self._emit(EventKind.VAULT_INITIALIZED, config.owner, {
            "config": config.to_dict(),
            "asset": asset.address,
            "share_token": share_token.address,
            "liquid_reserve": liquid_reserve.address,
            "yield_reserve": yield_reserve.address,
            "deployed_utc": format_utc(deployed),
        })
        for event in self._pending_events:
            self._event_log.append(event)
        self._pending_events = []

    # ------------------------------------------------------------------
    # Identity and configuration
    # ------------------------------------------------------------------

    @property
    def address(self) -> str:
        return self._address

    @property
    def config(self) -> VaultConfig:
        return self._config

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    @property
    def ledger(self) -> PositionLedger:
        return self._ledger

    @property
    def schedule(self) -> VestingSchedule:
        return self._schedule

    @property
    def mode(self) -> RedemptionMode:
        return self._modes.mode

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def deposits_enabled(self) -> bool:
        return self._deposits_enabled

    @property
    def max_slippage_bps(self) -> int:
        return self._gateway.max_slippage_bps

    @property
    def high_water_mark(self) -> int:
        return self._fees.high_water_mark

    @property
    def total_redemption_liability(self) -> int:
        return self._ledger.total_redemption_liability

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def liquid_value(self) -> int:
        return self._rebalancer.liquid_value()

    def yield_value(self) -> int:
        return self._rebalancer.yield_value()

    def total_assets(self) -> int:
        """Combined asset value of both reserves held by the vault."""
        return self.liquid_value() + self.yield_value()

    def total_supply(self) -> int:
        return self._share_token.total_supply()

    def convert_to_shares(self, assets: int) -> int:
        return mul_div_down(assets, self.total_supply() + 1, self.total_assets() + 1)

    def convert_to_assets(self, shares: int) -> int:
        return mul_div_down(shares, self.total_assets() + 1, self.total_supply() + 1)

    def preview_deposit(self, assets: int) -> int:
        return self.convert_to_shares(assets)

    def preview_mint(self, shares: int) -> int:
        return mul_div_up(shares, self.total_assets() + 1, self.total_supply() + 1)

    def preview_withdraw(self, assets: int) -> int:
        return mul_div_up(assets, self.total_supply() + 1, self.total_assets() + 1)

    def preview_redeem(self, shares: int) -> int:
        return self.convert_to_assets(shares)

    def max_deposit(self, receiver: str) -> int:
        if self._paused or not self._deposits_enabled:
            return 0
        return UNLIMITED_ALLOWANCE

    def max_mint(self, receiver: str) -> int:
        return self.max_deposit(receiver)

    def max_withdraw(self, owner: str) -> int:
        if self._paused or not self._modes.is_terminal:
            return 0
        owned = self.convert_to_assets(self._share_token.balance_of(owner))
        return min(owned, self.liquid_value())

    def max_redeem(self, owner: str) -> int:
        if self._paused or not self._modes.is_terminal:
            return 0
        owned = self._share_token.balance_of(owner)
        return min(owned, self.convert_to_shares(self.liquid_value()))

    def position(self, position_id: int) -> Position:
        return self._ledger.get_position(position_id)

    def positions_of(self, owner: str) -> List[Position]:
        return self._ledger.positions_of(owner)

    def vesting_rate(self) -> int:
        return self._schedule.vesting_rate(self._clock())

    def redeemable_shares(self, position_id: int) -> int:
        return self._ledger.redeemable_shares(position_id, self._clock())

    def nav_per_share(self) -> int:
        return self._fees.nav_per_share()

    def assess_performance_fee(self) -> FeeAssessment:
        return self._fees.assess()

    def state(self) -> dict[str, Any]:
        """Observable vault state for reporting."""
        return {
            "mode": self.mode.value,
            "paused": self._paused,
            "deposits_enabled": self._deposits_enabled,
            "max_slippage_bps": self.max_slippage_bps,
            "total_supply": self.total_supply(),
            "total_assets": self.total_assets(),
            "liquid_value": self.liquid_value(),
            "yield_value": self.yield_value(),
            "total_redemption_liability": self.total_redemption_liability,
            "high_water_mark": self.high_water_mark,
            "nav_per_share": self.nav_per_share(),
            "vesting_rate_bps": self.vesting_rate(),
            "positions": [p.to_dict() for p in self._ledger],
            "event_count": self._event_log.count,
        }

    # ------------------------------------------------------------------
    # Deposits
    # ------------------------------------------------------------------

    @_entrypoint
    def deposit(self, caller: str, assets: int, receiver: str) -> int:
        """Deposit `assets` from caller; returns shares minted."""
        self._require_deposits_open()
        if assets < 0:
            raise NegativeValue(f"Cannot deposit {assets} assets")
        if assets == 0:
            raise ZeroValue("Cannot deposit zero assets")
        shares = self.preview_deposit(assets)
        if shares == 0:
            raise ZeroValue(f"Deposit of {assets} assets mints zero shares")
        self._deposit(caller, receiver, assets, shares)
        return shares

    @_entrypoint
    def mint(self, caller: str, shares: int, receiver: str) -> int:
        """Mint exactly `shares` for the assets required; returns assets paid."""
        self._require_deposits_open()
        if shares < 0:
            raise NegativeValue(f"Cannot mint {shares} shares")
        if shares == 0:
            raise ZeroValue("Cannot mint zero shares")
        assets = self.preview_mint(shares)
        self._deposit(caller, receiver, assets, shares)
        return assets

    def _deposit(self, caller: str, receiver: str, assets: int, shares: int) -> None:
        if not receiver:
            raise ZeroAddress("Deposit receiver must be set")
        now = self._clock()
        self._asset.transfer_from(self._address, caller, self._address, assets)

        if self._modes.is_terminal:
            self._share_token.mint(receiver, shares)
            self._emit(EventKind.SHARES_DEPOSITED, caller, {
                "receiver": receiver,
                "assets": assets,
                "shares": shares,
            })
        else:
            self._share_token.mint(self._address, shares)
            position_id = self._ledger.create_position(receiver, assets, shares, now)
            self._emit(EventKind.POSITION_DEPOSITED, caller, {
                "position_id": position_id,
                "receiver": receiver,
                "assets": assets,
                "shares": shares,
            })

        self._gateway.deposit_to(self._liquid, assets)

    # ------------------------------------------------------------------
    # Positional redemption (INITIAL mode)
    # ------------------------------------------------------------------

    @_entrypoint
    def redeem(
        self,
        caller: str,
        position_id: int,
        shares: int,
        receiver: str,
    ) -> int:
        """Par-redeem `shares` of a position; returns assets paid to receiver.

        The redemption fee is charged on the assets actually withdrawn from
        the liquid reserve, rounded up, and paid to the treasury.
        """
        self._require_not_paused()
        self._modes.require(RedemptionMode.INITIAL)
        if not receiver:
            raise ZeroAddress("Redemption receiver must be set")
        if shares < 0:
            raise NegativeValue(f"Cannot redeem {shares} shares")
        if shares == 0:
            raise ZeroValue("Cannot redeem zero shares")
        now = self._clock()

        redeemable = self._ledger.redeemable_shares(position_id, now)
        if shares > redeemable:
            raise NotEnoughRedeemableShares(
                f"Position {position_id}: {redeemable} shares redeemable now, "
                f"requested {shares}"
            )

        assets_requested = self._ledger.redeem_position(caller, position_id, shares, now)
        assets_received = self._gateway.withdraw_from(self._liquid, assets_requested)
        breakdown = self._split_redemption(assets_requested, assets_received)

        self._share_token.burn(self._address, shares)
        if breakdown.to_receiver > 0:
            self._asset.transfer(self._address, receiver, breakdown.to_receiver)
        if breakdown.fee > 0:
            self._asset.transfer(self._address, self._config.treasury, breakdown.fee)

        self._emit(EventKind.POSITION_REDEEMED, caller, {
            "position_id": position_id,
            "receiver": receiver,
            "shares": shares,
            "assets_requested": breakdown.assets_requested,
            "assets_received": breakdown.assets_received,
            "fee": breakdown.fee,
            "to_receiver": breakdown.to_receiver,
        })
        return breakdown.to_receiver

    def _split_redemption(self, requested: int, received: int) -> RedemptionBreakdown:
        fee = mul_div_up(received, self._config.redemption_fee_bps, BPS_SCALE)
        return RedemptionBreakdown(
            assets_requested=requested,
            assets_received=received,
            fee=fee,
            to_receiver=received - fee,
        )

    @_entrypoint
    def claim(
        self,
        caller: str,
        position_id: int,
        shares: int,
        receiver: str,
    ) -> int:
        """Release escrowed shares to `receiver`, forfeiting their par right.

        Not vesting-gated. No underlying asset moves. Returns the par assets
        removed from the position (and from the redemption liability).
        """
        self._require_not_paused()
        self._modes.require(RedemptionMode.INITIAL)
        if not receiver:
            raise ZeroAddress("Claim receiver must be set")
        if shares < 0:
            raise NegativeValue(f"Cannot claim {shares} shares")
        if shares == 0:
            raise ZeroValue("Cannot claim zero shares")

        released = self._ledger.redeem_position(
            caller, position_id, shares, self._clock()
        )
        self._share_token.transfer(self._address, receiver, shares)

        self._emit(EventKind.POSITION_CLAIMED, caller, {
            "position_id": position_id,
            "receiver": receiver,
            "shares": shares,
            "assets_released": released,
        })
        return released

    # ------------------------------------------------------------------
    # Fungible redemption (TERMINAL mode)
    # ------------------------------------------------------------------

    @_entrypoint
    def withdraw(self, caller: str, assets: int, receiver: str, owner: str) -> int:
        """Withdraw `assets` by burning owner's shares; returns shares burned."""
        self._require_not_paused()
        self._modes.require(RedemptionMode.TERMINAL)
        if assets < 0:
            raise NegativeValue(f"Cannot withdraw {assets} assets")
        if assets == 0:
            raise ZeroValue("Cannot withdraw zero assets")
        shares = self.preview_withdraw(assets)
        self._withdraw(caller, receiver, owner, assets, shares)
        return shares

    @_entrypoint
    def redeem_shares(self, caller: str, shares: int, receiver: str, owner: str) -> int:
        """Redeem `shares` of owner at NAV; returns assets delivered."""
        self._require_not_paused()
        self._modes.require(RedemptionMode.TERMINAL)
        if shares < 0:
            raise NegativeValue(f"Cannot redeem {shares} shares")
        if shares == 0:
            raise ZeroValue("Cannot redeem zero shares")
        assets = self.preview_redeem(shares)
        if assets == 0:
            raise ZeroValue(f"Redeeming {shares} shares returns zero assets")
        return self._withdraw(caller, receiver, owner, assets, shares)

    def _withdraw(
        self,
        caller: str,
        receiver: str,
        owner: str,
        assets: int,
        shares: int,
    ) -> int:
        if not receiver or not owner:
            raise ZeroAddress("Withdrawal receiver and owner must be set")
        # Spends caller's allowance when acting for another owner
        self._share_token.transfer_from(caller, owner, self._address, shares)
        self._share_token.burn(self._address, shares)

        received = self._gateway.withdraw_from(self._liquid, assets)
        self._asset.transfer(self._address, receiver, received)

        self._emit(EventKind.SHARES_WITHDRAWN, caller, {
            "owner": owner,
            "receiver": receiver,
            "shares": shares,
            "assets_requested": assets,
            "assets_received": received,
        })
        return received

    # ------------------------------------------------------------------
    # Rebalancing and fees
    # ------------------------------------------------------------------

    @_entrypoint
    def vest(self, caller: str) -> int:
        """Sweep liquid surplus over the liability into the yield reserve."""
        self._require_not_paused()
        self._modes.require(RedemptionMode.INITIAL)
        liability = self._ledger.total_redemption_liability
        moved = self._rebalancer.vest()
        if moved > 0:
            self._emit(EventKind.VESTED, caller, {
                "assets": moved,
                "liability": liability,
            })
        return moved

    @_entrypoint
    def liquidate(self, caller: str) -> int:
        """Pull what the yield reserve allows back into the liquid reserve."""
        require_authorized(self._authorizer, caller, "liquidate")
        moved = self._rebalancer.liquidate()
        if moved > 0:
            self._emit(EventKind.LIQUIDATED, caller, {"assets": moved})
        return moved

    @_entrypoint
    def take_performance_fees(self, caller: str) -> int:
        """Charge the performance fee on any new NAV high; returns the fee."""
        assessment, fee_shares = self._fees.take_fees()
        if assessment.is_new_high:
            payload = assessment.to_dict()
            payload["fee_reserve_shares"] = fee_shares
            payload["treasury"] = self._config.treasury
            self._emit(EventKind.PERFORMANCE_FEE_TAKEN, caller, payload)
        return assessment.fee

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    @_entrypoint
    def enable_terminal_mode(self, caller: str) -> None:
        """Switch permanently to TERMINAL mode. Idempotent."""
        require_authorized(self._authorizer, caller, "enable_terminal_mode")
        if self._modes.enable_terminal(self._clock()):
            self._emit(EventKind.TERMINAL_MODE_ENABLED, caller, {
                "total_redemption_liability": self._ledger.total_redemption_liability,
            })

    @_entrypoint
    def pause(self, caller: str) -> None:
        require_authorized(self._authorizer, caller, "pause")
        if not self._paused:
            self._paused = True
            self._emit(EventKind.PAUSED, caller, {})

    @_entrypoint
    def unpause(self, caller: str) -> None:
        require_authorized(self._authorizer, caller, "unpause")
        if self._paused:
            self._paused = False
            self._emit(EventKind.UNPAUSED, caller, {})

    @_entrypoint
    def set_deposits_enabled(self, caller: str, enabled: bool) -> None:
        require_authorized(self._authorizer, caller, "set_deposits_enabled")
        self._deposits_enabled = bool(enabled)
        self._emit(EventKind.DEPOSITS_TOGGLED, caller, {"enabled": self._deposits_enabled})

    @_entrypoint
    def set_max_slippage(self, caller: str, bps: int) -> None:
        require_authorized(self._authorizer, caller, "set_max_slippage")
        previous = self._gateway.max_slippage_bps
        self._gateway.max_slippage_bps = bps
        self._emit(EventKind.MAX_SLIPPAGE_UPDATED, caller, {
            "previous_bps": previous,
            "bps": bps,
        })

    @_entrypoint
    def sweep_rewards(self, caller: str, token: FungibleToken) -> int:
        """Send the vault's whole balance of a stray token to the treasury."""
        require_authorized(self._authorizer, caller, "sweep_rewards")
        protected = {
            self._asset.address,
            self._share_token.address,
            self._liquid.address,
            self._yield.address,
        }
        if token.address in protected:
            raise InvalidSweepToken(
                f"{token.address} is accounted for by the vault and cannot be swept"
            )
        amount = token.balance_of(self._address)
        if amount > 0:
            token.transfer(self._address, self._config.treasury, amount)
        self._emit(EventKind.REWARDS_SWEPT, caller, {
            "token": token.address,
            "amount": amount,
            "treasury": self._config.treasury,
        })
        return amount

    @_entrypoint
    def set_authorizer(self, caller: str, authorizer: Authorizer) -> None:
        """Replace the authorization predicate (e.g. with a multi-party one)."""
        require_authorized(self._authorizer, caller, "set_authorizer")
        self._authorizer = authorizer
        self._emit(EventKind.AUTHORIZER_CHANGED, caller, {
            "authorizer": type(authorizer).__name__,
        })

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_not_paused(self) -> None:
        if self._paused:
            raise VaultPaused("Vault is paused")

    def _require_deposits_open(self) -> None:
        self._require_not_paused()
        if not self._deposits_enabled:
            raise DepositsDisabled("Deposits are disabled")

    def _emit(self, kind: EventKind, actor_id: str, payload: dict[str, Any]) -> None:
        """Buffer an audit event; written to the log when the call commits."""
        self._event_counter += 1
        self._pending_events.append(EventRecord.create(
            event_id=f"evt_{self._event_counter:08d}",
            event_kind=kind,
            actor_id=actor_id,
            payload=payload,
            timestamp_utc=self._clock(),
        ))

    def _participants(self) -> list:
        return [
            self,
            self._ledger,
            self._modes,
            self._fees,
            self._asset,
            self._share_token,
            self._liquid,
            self._yield,
        ]

    def snapshot(self) -> tuple:
        return (
            self._paused,
            self._deposits_enabled,
            self._gateway.max_slippage_bps,
            self._authorizer,
            self._event_counter,
        )

    def restore(self, state: tuple) -> None:
        (
            self._paused,
            self._deposits_enabled,
            slippage,
            self._authorizer,
            self._event_counter,
        ) = state
        self._gateway.max_slippage_bps = slippage
