"""Vault configuration — fixed at construction except max slippage.

Loaded from config/vault_params.json:

    {
      "owner": "owner",
      "treasury": "treasury",
      "performance_fee_bps": 2000,
      "redemption_fee_bps": 0,
      "max_slippage_bps": 0,
      "vesting_start_utc": "2026-01-01T00:00:00Z",
      "vesting_end_utc": "2026-01-31T00:00:00Z",
      "decimals": 18
    }

Validation (at deployment time):
- owner and treasury are set
- performance_fee_bps <= 5000
- redemption_fee_bps <= 10000
- max_slippage_bps <= 10000
- vesting_start >= deployment time, vesting_end >= vesting_start
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from parvault.errors import (
    InvalidFeeRate,
    InvalidSlippage,
    InvalidVestingSchedule,
    ZeroAddress,
)
from parvault.numeric import BPS_SCALE, MAX_PERFORMANCE_FEE_BPS, check_bps

PARAMS_FILENAME = "vault_params.json"


def parse_utc(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; a trailing Z or missing offset means UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_utc(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class VaultConfig:
    """Construction parameters of a RedeemableVault."""

    owner: str
    treasury: str
    performance_fee_bps: int
    redemption_fee_bps: int
    max_slippage_bps: int
    vesting_start: datetime
    vesting_end: datetime
    decimals: int = 18

    @property
    def unit(self) -> int:
        """One whole share (or asset) in base units."""
        return 10 ** self.decimals

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> VaultConfig:
        return cls(
            owner=data["owner"],
            treasury=data["treasury"],
            performance_fee_bps=int(data["performance_fee_bps"]),
            redemption_fee_bps=int(data.get("redemption_fee_bps", 0)),
            max_slippage_bps=int(data.get("max_slippage_bps", 0)),
            vesting_start=parse_utc(data["vesting_start_utc"]),
            vesting_end=parse_utc(data["vesting_end_utc"]),
            decimals=int(data.get("decimals", 18)),
        )

    @classmethod
    def from_file(cls, path: Path) -> VaultConfig:
        return cls.from_dict(json.loads(path.read_text(encoding="utf-8")))

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> VaultConfig:
        return cls.from_file(config_dir / PARAMS_FILENAME)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "treasury": self.treasury,
            "performance_fee_bps": self.performance_fee_bps,
            "redemption_fee_bps": self.redemption_fee_bps,
            "max_slippage_bps": self.max_slippage_bps,
            "vesting_start_utc": format_utc(self.vesting_start),
            "vesting_end_utc": format_utc(self.vesting_end),
            "decimals": self.decimals,
        }

    def validate(self, deployed_utc: datetime) -> None:
        """Raise the first violated construction rule."""
        if not self.owner:
            raise ZeroAddress("Owner must be set")
        if not self.treasury:
            raise ZeroAddress("Treasury must be set")
        if not check_bps(self.performance_fee_bps, MAX_PERFORMANCE_FEE_BPS):
            raise InvalidFeeRate(
                f"performance_fee_bps must be within [0, {MAX_PERFORMANCE_FEE_BPS}], "
                f"got {self.performance_fee_bps}"
            )
        if not check_bps(self.redemption_fee_bps, BPS_SCALE):
            raise InvalidFeeRate(
                f"redemption_fee_bps must be within [0, {BPS_SCALE}], "
                f"got {self.redemption_fee_bps}"
            )
        if not check_bps(self.max_slippage_bps, BPS_SCALE):
            raise InvalidSlippage(
                f"max_slippage_bps must be within [0, {BPS_SCALE}], "
                f"got {self.max_slippage_bps}"
            )
        if self.vesting_start < deployed_utc:
            raise InvalidVestingSchedule(
                f"vesting_start ({format_utc(self.vesting_start)}) precedes "
                f"deployment ({format_utc(deployed_utc)})"
            )
        if self.vesting_end < self.vesting_start:
            raise InvalidVestingSchedule(
                f"vesting_end ({format_utc(self.vesting_end)}) precedes "
                f"vesting_start ({format_utc(self.vesting_start)})"
            )
        if self.decimals < 0:
            raise ValueError(f"decimals must be non-negative, got {self.decimals}")
