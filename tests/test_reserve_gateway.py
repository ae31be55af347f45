"""Tests for the safe reserve gateway — proves reserves are held to their previews."""

import pytest

from parvault.errors import (
    DepositPreviewMismatch,
    DepositShortfall,
    InsufficientBalance,
    InvalidSlippage,
    NegativeValue,
    WithdrawShortfall,
    ZeroValue,
)
from parvault.reserves.gateway import SafeReserveGateway
from parvault.reserves.interface import Reserve
from parvault.reserves.memory import InMemoryReserve
from parvault.tokens.ledger import TokenLedger


def _setup(max_slippage_bps: int = 0, **reserve_kwargs):
    asset = TokenLedger("asset")
    asset.mint("vault", 10_000)
    reserve = InMemoryReserve("liquid", asset, **reserve_kwargs)
    gateway = SafeReserveGateway("vault", asset, max_slippage_bps=max_slippage_bps)
    return asset, reserve, gateway


class TestInMemoryReserve:
    def test_satisfies_protocol(self) -> None:
        _, reserve, _ = _setup()
        assert isinstance(reserve, Reserve)

    def test_prices_one_to_one_when_empty(self) -> None:
        _, reserve, _ = _setup()
        assert reserve.preview_deposit(123) == 123
        assert reserve.preview_redeem(123) == 123
        assert reserve.preview_withdraw(123) == 123

    def test_prices_proportionally_after_accrual(self) -> None:
        _, reserve, gateway = _setup()
        gateway.deposit_to(reserve, 1_000)
        reserve.accrue(1_000)
        assert reserve.preview_redeem(100) == 200
        assert reserve.preview_deposit(200) == 100
        assert reserve.preview_withdraw(3) == 2  # ceil(1.5)


class TestDepositTo:
    def test_deposit_returns_verified_shares(self) -> None:
        asset, reserve, gateway = _setup()
        assert gateway.deposit_to(reserve, 1_000) == 1_000
        assert reserve.balance_of("vault") == 1_000
        assert asset.balance_of("vault") == 9_000
        assert asset.allowance("vault", reserve.address) == 0

    def test_zero_deposit_rejected(self) -> None:
        _, reserve, gateway = _setup()
        with pytest.raises(ZeroValue):
            gateway.deposit_to(reserve, 0)

    def test_preview_round_trip_below_floor_rejected(self) -> None:
        _, reserve, gateway = _setup()
        gateway.deposit_to(reserve, 1_000)
        reserve.accrue(2_000)
        # 10 assets → floor(10/3) = 3 shares → previews back to 9
        with pytest.raises(DepositShortfall) as exc:
            gateway.deposit_to(reserve, 10)
        assert (exc.value.round_trip, exc.value.minimum) == (9, 10)

    def test_round_trip_within_tolerance_accepted(self) -> None:
        _, reserve, gateway = _setup(max_slippage_bps=1_000)
        gateway.deposit_to(reserve, 1_000)
        reserve.accrue(2_000)
        assert gateway.deposit_to(reserve, 10) == 3

    def test_share_shortfall_against_preview_rejected(self) -> None:
        # Slippage tolerance does not excuse a reserve breaking its preview
        _, reserve, gateway = _setup(max_slippage_bps=10_000, deposit_fee_bps=100)
        with pytest.raises(DepositPreviewMismatch) as exc:
            gateway.deposit_to(reserve, 1_000)
        assert (exc.value.previewed, exc.value.received) == (1_000, 990)


class TestWithdrawFrom:
    def test_returns_assets_received(self) -> None:
        asset, reserve, gateway = _setup()
        gateway.deposit_to(reserve, 1_000)
        assert gateway.withdraw_from(reserve, 400) == 400
        assert asset.balance_of("vault") == 9_400
        assert reserve.balance_of("vault") == 600

    def test_zero_withdrawal_rejected(self) -> None:
        _, reserve, gateway = _setup()
        with pytest.raises(ZeroValue):
            gateway.withdraw_from(reserve, 0)

    def test_negative_amounts_rejected(self) -> None:
        asset, reserve, gateway = _setup()
        with pytest.raises(NegativeValue):
            gateway.deposit_to(reserve, -1)
        with pytest.raises(NegativeValue):
            gateway.withdraw_from(reserve, -1)
        assert asset.balance_of("vault") == 10_000

    def test_haircut_beyond_tolerance_rejected(self) -> None:
        _, reserve, gateway = _setup(withdraw_haircut_bps=100)
        gateway.deposit_to(reserve, 1_000)
        with pytest.raises(WithdrawShortfall) as exc:
            gateway.withdraw_from(reserve, 1_000)
        assert exc.value.requested == 1_000
        assert exc.value.received == 990
        assert exc.value.minimum == 1_000

    def test_haircut_within_tolerance_returns_actual(self) -> None:
        _, reserve, gateway = _setup(max_slippage_bps=100, withdraw_haircut_bps=100)
        gateway.deposit_to(reserve, 1_000)
        assert gateway.withdraw_from(reserve, 1_000) == 990

    def test_reserve_capacity_error_propagates(self) -> None:
        _, reserve, gateway = _setup(withdraw_limit=100)
        gateway.deposit_to(reserve, 1_000)
        with pytest.raises(InsufficientBalance):
            gateway.withdraw_from(reserve, 101)


class TestSlippageSetting:
    def test_accepts_bounds(self) -> None:
        _, _, gateway = _setup()
        gateway.max_slippage_bps = 10_000
        assert gateway.max_slippage_bps == 10_000
        gateway.max_slippage_bps = 0
        assert gateway.max_slippage_bps == 0

    def test_rejects_above_scale(self) -> None:
        _, _, gateway = _setup()
        with pytest.raises(InvalidSlippage):
            gateway.max_slippage_bps = 10_001

    def test_rejects_at_construction(self) -> None:
        with pytest.raises(InvalidSlippage):
            SafeReserveGateway("vault", TokenLedger("asset"), max_slippage_bps=-1)
