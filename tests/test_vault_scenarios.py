"""Tests for the redeemable vault — proves the end-to-end accounting scenarios."""

import pytest
from datetime import datetime, timedelta, timezone

from parvault.config import VaultConfig
from parvault.errors import (
    DepositsDisabled,
    InvalidSlippage,
    InvalidSweepToken,
    NegativeValue,
    NotEnoughRedeemableShares,
    Unauthorized,
    ValidationError,
    VaultPaused,
    WrongRedemptionMode,
    ZeroAddress,
    ZeroValue,
)
from parvault.governance.authorization import RoleAuthorizer
from parvault.models.position import RedemptionMode
from parvault.persistence.event_log import EventKind
from parvault.simulation import Simulation
from parvault.tokens.ledger import TokenLedger


T0 = datetime(2027, 1, 1, tzinfo=timezone.utc)
DEPLOYED = T0 - timedelta(days=31)
UNIT = 10**18


def _config(**overrides) -> VaultConfig:
    params = dict(
        owner="owner",
        treasury="treasury",
        performance_fee_bps=2_000,
        redemption_fee_bps=0,
        max_slippage_bps=0,
        vesting_start=T0,
        vesting_end=T0 + timedelta(days=30),
    )
    params.update(overrides)
    return VaultConfig(**params)


def _sim(**overrides) -> Simulation:
    sim = Simulation(_config(**overrides), DEPLOYED)
    sim.fund("alice", 10_000)
    sim.fund("bob", 10_000)
    return sim


class TestScenarios:
    def test_a_par_redemption_before_vesting(self) -> None:
        sim = _sim()
        vault = sim.vault
        assert vault.deposit("alice", 1_000, "alice") == 1_000
        position = vault.position(1)
        assert (position.assets, position.shares, position.total_shares) == (1_000, 1_000, 1_000)
        assert vault.total_redemption_liability == 1_000

        assert vault.redeem("alice", 1, 500, "alice") == 500
        position = vault.position(1)
        assert (position.assets, position.shares, position.total_shares) == (500, 500, 500)
        assert vault.total_redemption_liability == 500
        assert sim.asset.balance_of("alice") == 9_500
        assert vault.total_supply() == 500

    def test_b_half_vested_at_midpoint(self) -> None:
        sim = _sim()
        vault = sim.vault
        vault.deposit("alice", 1_000, "alice")
        sim.clock.set(T0 + timedelta(days=15))
        assert vault.vesting_rate() == 5_000
        assert vault.redeemable_shares(1) == 500

        with pytest.raises(NotEnoughRedeemableShares):
            vault.redeem("alice", 1, 501, "alice")
        assert vault.redeem("alice", 1, 500, "alice") == 500
        assert vault.position(1).total_shares == 1_000
        assert vault.redeemable_shares(1) == 0

    def test_c_redemption_fee_rounds_up(self) -> None:
        sim = _sim(redemption_fee_bps=100)
        vault = sim.vault
        vault.deposit("alice", 1_000, "alice")
        assert vault.redeem("alice", 1, 100, "alice") == 99
        assert sim.asset.balance_of("treasury") == 1
        assert sim.asset.balance_of("alice") == 9_099
        event = vault.event_log.last_event
        assert event.event_kind == EventKind.POSITION_REDEEMED
        assert (event.payload["fee"], event.payload["to_receiver"]) == (1, 99)

    def test_d_terminal_mode_switches_redemption_path(self) -> None:
        sim = _sim()
        vault = sim.vault
        vault.deposit("alice", 1_000, "alice")
        vault.enable_terminal_mode("owner")
        assert vault.mode == RedemptionMode.TERMINAL

        with pytest.raises(WrongRedemptionMode):
            vault.vest("keeper")
        with pytest.raises(WrongRedemptionMode):
            vault.redeem("alice", 1, 100, "alice")
        with pytest.raises(WrongRedemptionMode):
            vault.claim("alice", 1, 100, "alice")

        # Deposits now mint freely held shares and create no position
        assert vault.deposit("bob", 500, "bob") == 500
        assert sim.shares.balance_of("bob") == 500
        assert len(vault.ledger) == 1

        assert vault.redeem_shares("bob", 200, "bob", "bob") == 200
        assert vault.withdraw("bob", 100, "bob", "bob") == 100
        assert sim.shares.balance_of("bob") == 200
        assert sim.asset.balance_of("bob") == 9_800

    def test_e_performance_fee_on_doubled_nav(self) -> None:
        sim = _sim()
        vault = sim.vault
        vault.deposit("alice", 1_000, "alice")
        sim.liquid.accrue(1_000)
        assert vault.nav_per_share() == 2 * UNIT

        assert vault.take_performance_fees("anyone") == 200
        assert vault.high_water_mark == 2 * UNIT
        assert sim.liquid.balance_of("treasury") == 100

        assert vault.take_performance_fees("anyone") == 0
        assert vault.high_water_mark == 2 * UNIT
        assert len(vault.event_log.events(EventKind.PERFORMANCE_FEE_TAKEN)) == 1


class TestProperties:
    def test_full_round_trip_returns_deposit(self) -> None:
        sim = _sim()
        sim.vault.deposit("alice", 777, "alice")
        assert sim.vault.redeem("alice", 1, 777, "alice") == 777
        assert sim.asset.balance_of("alice") == 10_000
        assert sim.vault.total_redemption_liability == 0

    def test_liability_tracks_live_positions(self) -> None:
        sim = _sim()
        vault = sim.vault
        vault.deposit("alice", 1_000, "alice")
        vault.deposit("bob", 2_500, "bob")
        vault.redeem("alice", 1, 300, "alice")
        vault.claim("bob", 2, 1_000, "bob")
        sim.clock.set(T0 + timedelta(days=10))
        vault.redeem("bob", 2, 100, "bob")
        assert vault.total_redemption_liability == vault.ledger.live_assets() == 2_100

    def test_enable_terminal_twice_is_same_as_once(self) -> None:
        sim = _sim()
        sim.vault.enable_terminal_mode("owner")
        sim.vault.enable_terminal_mode("owner")
        assert sim.vault.mode == RedemptionMode.TERMINAL
        assert len(sim.vault.event_log.events(EventKind.TERMINAL_MODE_ENABLED)) == 1

    def test_nothing_redeemable_after_window(self) -> None:
        sim = _sim()
        sim.vault.deposit("alice", 1_000, "alice")
        sim.clock.set(T0 + timedelta(days=30, seconds=1))
        assert sim.vault.redeemable_shares(1) == 0
        with pytest.raises(NotEnoughRedeemableShares):
            sim.vault.redeem("alice", 1, 1, "alice")

    def test_vest_noop_when_liquid_covers_only_liability(self) -> None:
        sim = _sim()
        sim.vault.deposit("alice", 1_000, "alice")
        assert sim.vault.vest("keeper") == 0
        assert sim.vault.event_log.events(EventKind.VESTED) == []

    def test_vest_sweeps_surplus(self) -> None:
        sim = _sim()
        vault = sim.vault
        vault.deposit("alice", 1_000, "alice")
        sim.liquid.accrue(250)
        assert vault.vest("keeper") == 250
        assert vault.liquid_value() == 1_000
        assert vault.yield_value() == 250
        assert vault.total_assets() == 1_250

    def test_liability_drifts_below_delivered_on_slippage(self) -> None:
        sim = _sim(max_slippage_bps=100)
        sim.liquid.withdraw_haircut_bps = 100
        sim.vault.deposit("alice", 1_000, "alice")
        assert sim.vault.redeem("alice", 1, 1_000, "alice") == 990
        assert sim.vault.total_redemption_liability == 0


class TestClaim:
    def test_claim_releases_shares_without_moving_assets(self) -> None:
        sim = _sim()
        vault = sim.vault
        vault.deposit("alice", 1_000, "alice")
        assert vault.claim("alice", 1, 400, "carol") == 400
        assert sim.shares.balance_of("carol") == 400
        assert sim.shares.balance_of(vault.address) == 600
        assert vault.total_redemption_liability == 600
        assert vault.liquid_value() == 1_000

    def test_claim_is_not_vesting_gated(self) -> None:
        sim = _sim()
        sim.vault.deposit("alice", 1_000, "alice")
        sim.clock.set(T0 + timedelta(days=45))
        assert sim.vault.claim("alice", 1, 1_000, "alice") == 1_000
        assert sim.shares.balance_of("alice") == 1_000

    def test_claim_by_non_owner_rejected(self) -> None:
        sim = _sim()
        sim.vault.deposit("alice", 1_000, "alice")
        with pytest.raises(Unauthorized):
            sim.vault.claim("bob", 1, 10, "bob")


class TestDeposits:
    def test_mint_charges_rounded_up_assets(self) -> None:
        sim = _sim()
        vault = sim.vault
        assert vault.mint("alice", 500, "alice") == 500
        assert vault.position(1).shares == 500

    def test_position_owner_is_receiver(self) -> None:
        sim = _sim()
        sim.vault.deposit("alice", 100, "carol")
        assert sim.vault.position(1).owner == "carol"
        assert sim.asset.balance_of("alice") == 9_900

    def test_zero_deposit_rejected(self) -> None:
        with pytest.raises(ZeroValue):
            _sim().vault.deposit("alice", 0, "alice")

    def test_empty_receiver_rejected(self) -> None:
        with pytest.raises(ZeroAddress):
            _sim().vault.deposit("alice", 10, "")

    def test_deposit_event_carries_position_id(self) -> None:
        sim = _sim()
        sim.vault.deposit("alice", 10, "alice")
        sim.vault.deposit("alice", 20, "alice")
        event = sim.vault.event_log.last_event
        assert event.event_kind == EventKind.POSITION_DEPOSITED
        assert event.payload["position_id"] == 2

    def test_previews_round_against_caller(self) -> None:
        sim = _sim()
        vault = sim.vault
        vault.deposit("alice", 1_000, "alice")
        sim.liquid.accrue(1_000)
        assert vault.preview_deposit(100) == 50
        assert vault.preview_mint(50) == 100
        assert vault.preview_withdraw(100) == 51
        assert vault.preview_redeem(50) == 99


class TestNegativeAmounts:
    def test_negative_position_operations_rejected(self) -> None:
        sim = _sim()
        vault = sim.vault
        vault.deposit("alice", 1_000, "alice")
        before = vault.state()

        with pytest.raises(NegativeValue):
            vault.redeem("alice", 1, -100, "alice")
        with pytest.raises(NegativeValue):
            vault.claim("alice", 1, -100, "alice")
        with pytest.raises(NegativeValue):
            vault.deposit("alice", -5, "alice")
        with pytest.raises(NegativeValue):
            vault.mint("alice", -5, "alice")

        assert vault.state() == before
        position = vault.position(1)
        assert (position.assets, position.shares, position.total_shares) == (1_000, 1_000, 1_000)
        assert sim.asset.balance_of("alice") == 9_000

    def test_negative_fungible_operations_rejected(self) -> None:
        sim = _sim()
        vault = sim.vault
        vault.enable_terminal_mode("owner")
        vault.deposit("alice", 1_000, "alice")
        with pytest.raises(NegativeValue):
            vault.withdraw("alice", -1, "alice", "alice")
        with pytest.raises(NegativeValue):
            vault.redeem_shares("alice", -1, "alice", "alice")
        assert sim.shares.balance_of("alice") == 1_000

    def test_negative_amount_is_a_validation_error(self) -> None:
        with pytest.raises(ValidationError):
            _sim().vault.deposit("alice", -1, "alice")


class TestAdministration:
    def test_pause_gates_user_operations(self) -> None:
        sim = _sim()
        vault = sim.vault
        vault.deposit("alice", 1_000, "alice")
        vault.pause("owner")
        assert vault.max_deposit("alice") == 0
        with pytest.raises(VaultPaused):
            vault.deposit("alice", 1, "alice")
        with pytest.raises(VaultPaused):
            vault.redeem("alice", 1, 1, "alice")
        with pytest.raises(VaultPaused):
            vault.claim("alice", 1, 1, "alice")
        with pytest.raises(VaultPaused):
            vault.vest("keeper")
        # Not gated
        assert vault.liquidate("owner") == 0
        assert vault.take_performance_fees("keeper") == 0

        vault.unpause("owner")
        assert vault.redeem("alice", 1, 1, "alice") == 1

    def test_pause_requires_authorization(self) -> None:
        with pytest.raises(Unauthorized):
            _sim().vault.pause("mallory")

    def test_disabled_deposits(self) -> None:
        sim = _sim()
        sim.vault.set_deposits_enabled("owner", False)
        assert sim.vault.max_mint("alice") == 0
        with pytest.raises(DepositsDisabled):
            sim.vault.mint("alice", 10, "alice")
        sim.vault.set_deposits_enabled("owner", True)
        assert sim.vault.deposit("alice", 10, "alice") == 10

    def test_set_max_slippage(self) -> None:
        sim = _sim()
        sim.vault.set_max_slippage("owner", 50)
        assert sim.vault.max_slippage_bps == 50
        with pytest.raises(InvalidSlippage):
            sim.vault.set_max_slippage("owner", 10_001)
        assert sim.vault.max_slippage_bps == 50

    def test_liquidate_requires_authorization(self) -> None:
        with pytest.raises(Unauthorized):
            _sim().vault.liquidate("keeper")

    def test_swapped_authorizer_delegates_liquidate(self) -> None:
        sim = _sim()
        vault = sim.vault
        vault.set_authorizer("owner", RoleAuthorizer({"liquidate": {"keeper"}}, admin="owner"))
        vault.deposit("alice", 1_000, "alice")
        vault.claim("alice", 1, 1_000, "alice")
        vault.vest("keeper")
        assert vault.liquidate("keeper") == 1_000
        assert vault.liquid_value() == 1_000

    def test_sweep_rewards_to_treasury(self) -> None:
        sim = _sim()
        reward = TokenLedger("reward")
        reward.mint(sim.vault.address, 42)
        assert sim.vault.sweep_rewards("owner", reward) == 42
        assert reward.balance_of("treasury") == 42
        assert reward.balance_of(sim.vault.address) == 0

    def test_sweep_refuses_accounted_tokens(self) -> None:
        sim = _sim()
        for token in (sim.asset, sim.shares, sim.liquid, sim.yield_reserve):
            with pytest.raises(InvalidSweepToken):
                sim.vault.sweep_rewards("owner", token)


class TestFungibleViews:
    def test_max_withdraw_zero_in_initial_mode(self) -> None:
        sim = _sim()
        sim.vault.deposit("alice", 1_000, "alice")
        sim.vault.claim("alice", 1, 1_000, "alice")
        assert sim.vault.max_withdraw("alice") == 0
        assert sim.vault.max_redeem("alice") == 0

    def test_max_withdraw_bounded_by_liquid_value(self) -> None:
        sim = _sim()
        vault = sim.vault
        vault.deposit("alice", 1_000, "alice")
        vault.claim("alice", 1, 1_000, "alice")
        vault.vest("keeper")
        vault.enable_terminal_mode("owner")
        assert vault.max_withdraw("alice") == 0
        vault.liquidate("owner")
        assert vault.max_withdraw("alice") == 1_000
        assert vault.max_redeem("alice") == 1_000

    def test_delegated_withdraw_spends_share_allowance(self) -> None:
        sim = _sim()
        vault = sim.vault
        vault.enable_terminal_mode("owner")
        vault.deposit("alice", 1_000, "alice")
        sim.shares.approve("alice", "bob", 300)
        assert vault.redeem_shares("bob", 300, "bob", "alice") == 300
        assert sim.shares.allowance("alice", "bob") == 0
        assert sim.asset.balance_of("bob") == 10_300
