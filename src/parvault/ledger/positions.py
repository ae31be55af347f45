"""Position ledger — per-user positions and the global redemption liability.

The ledger is the single owned store of positions. Ids are assigned from a
monotonically increasing counter starting at 1 and are never reused. The
ledger performs no token or reserve movement; the vault composes those
around the primitives here.

Liability accounting:
    create_position   → liability += assets
    redeem_position   → liability -= assets_to_return

The liability is decremented by the *requested* par amount. When the
subsequent reserve withdrawal delivers less (slippage), the liability
drifts below the true outstanding obligation. This is preserved as-is;
see DESIGN.md.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime
from typing import Dict, Iterator, List, Optional

from parvault.errors import (
    InsufficientAssetsInPosition,
    NegativeValue,
    NotEnoughLockedShares,
    Unauthorized,
    UnknownPosition,
    ZeroAddress,
    ZeroValue,
)
from parvault.models.position import Position
from parvault.vesting.schedule import VestingSchedule
from parvault.numeric import mul_div_down

_log = logging.getLogger(__name__)


class PositionLedger:
    """In-memory ledger of positions and total redemption liability.

    Usage:
        ledger = PositionLedger(schedule)
        pid = ledger.create_position("alice", 1000, 1000)
        returned = ledger.redeem_position("alice", pid, 500, now)
    """

    def __init__(self, schedule: VestingSchedule) -> None:
        self._schedule = schedule
        self._positions: Dict[int, Position] = {}
        self._total_redemption_liability = 0
        self._next_position_id = 1

    @property
    def schedule(self) -> VestingSchedule:
        return self._schedule

    @property
    def total_redemption_liability(self) -> int:
        return self._total_redemption_liability

    @property
    def next_position_id(self) -> int:
        return self._next_position_id

    def create_position(
        self,
        receiver: str,
        assets: int,
        shares: int,
        now: Optional[datetime] = None,
    ) -> int:
        """Record a new position and return its id."""
        if not receiver:
            raise ZeroAddress("Position receiver must be set")
        if assets < 0 or shares < 0:
            raise NegativeValue(
                f"Position assets and shares must be positive, got {assets}/{shares}"
            )
        if assets == 0 or shares == 0:
            raise ZeroValue("Position assets and shares must be non-zero")

        position_id = self._next_position_id
        self._positions[position_id] = Position(
            position_id=position_id,
            owner=receiver,
            assets=assets,
            shares=shares,
            total_shares=shares,
            created_utc=now,
        )
        self._next_position_id += 1
        self._total_redemption_liability += assets
        _log.debug(
            "position %d created for %s: assets=%d shares=%d",
            position_id, receiver, assets, shares,
        )
        return position_id

    def redeem_position(
        self,
        caller: str,
        position_id: int,
        shares_to_burn: int,
        now: datetime,
    ) -> int:
        """Remove `shares_to_burn` from a position at its par ratio.

        Shared primitive behind positional redeem and claim. Not vesting-gated
        itself; callers that need the vesting bound check it first.

        Returns:
            The par assets released from the position.
        """
        if shares_to_burn < 0:
            raise NegativeValue(f"Cannot burn {shares_to_burn} shares")
        position = self._get(position_id)
        if position.owner != caller:
            raise Unauthorized(
                f"{caller} does not own position {position_id}"
            )
        if shares_to_burn > position.shares:
            raise NotEnoughLockedShares(
                f"Position {position_id} has {position.shares} locked shares, "
                f"requested {shares_to_burn}"
            )
        if position.shares == 0:
            raise ZeroValue(f"Position {position_id} is drained")

        assets_to_return = mul_div_down(
            shares_to_burn, position.assets, position.shares
        )
        if assets_to_return == 0:
            raise ZeroValue(
                f"Redeeming {shares_to_burn} shares of position {position_id} "
                f"returns zero assets"
            )
        if assets_to_return > position.assets:
            raise InsufficientAssetsInPosition(
                f"Position {position_id} holds {position.assets} assets, "
                f"computed return {assets_to_return}"
            )

        position.shares -= shares_to_burn
        position.assets -= assets_to_return
        self._total_redemption_liability -= assets_to_return
        # After the window opens the decay curve, not the denominator, governs
        if not self._schedule.has_started(now):
            position.total_shares -= shares_to_burn
        return assets_to_return

    def redeemable_shares(self, position_id: int, now: datetime) -> int:
        return self._schedule.redeemable_shares(self._get(position_id), now)

    def get_position(self, position_id: int) -> Position:
        """Return a copy of the position; mutate through the ledger only."""
        return copy.copy(self._get(position_id))

    def positions_of(self, owner: str) -> List[Position]:
        return [copy.copy(p) for p in self._positions.values() if p.owner == owner]

    def __iter__(self) -> Iterator[Position]:
        return iter([copy.copy(p) for p in self._positions.values()])

    def __len__(self) -> int:
        return len(self._positions)

    def live_assets(self) -> int:
        """Sum of remaining par assets over all positions."""
        return sum(p.assets for p in self._positions.values())

    def snapshot(self) -> tuple:
        return (
            copy.deepcopy(self._positions),
            self._total_redemption_liability,
            self._next_position_id,
        )

    def restore(self, state: tuple) -> None:
        positions, liability, next_id = state
        self._positions = positions
        self._total_redemption_liability = liability
        self._next_position_id = next_id

    def _get(self, position_id: int) -> Position:
        """Internal lookup with clear error on missing ID."""
        position = self._positions.get(position_id)
        if position is None:
            raise UnknownPosition(f"Unknown position ID: {position_id}")
        return position
