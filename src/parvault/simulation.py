"""Scripted simulation against the in-memory collaborators.

A script is a JSON document:

    {
      "start_utc": "2026-12-01T00:00:00Z",
      "config": {... optional overrides of vault_params.json ...},
      "balances": {"alice": 1000},
      "reserves": {"yield": {"withdraw_limit": 500}},
      "steps": [
        {"op": "deposit", "caller": "alice", "assets": 1000},
        {"op": "advance", "days": 15},
        {"op": "redeem", "caller": "alice", "position_id": 1, "shares": 100},
        {"op": "accrue", "reserve": "yield", "assets": 50},
        {"op": "vest"},
        {"op": "take-fees"}
      ]
    }

Every step runs as one vault call. A failing step is recorded with its
error and, because vault calls are atomic, leaves state unchanged; the
run continues unless stop_on_error is set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from parvault.config import VaultConfig, parse_utc
from parvault.errors import VaultError
from parvault.persistence.event_log import EventLog
from parvault.reserves.memory import InMemoryReserve
from parvault.tokens.ledger import UNLIMITED_ALLOWANCE, TokenLedger
from parvault.vault import RedeemableVault

_log = logging.getLogger(__name__)


class SimulatedClock:
    """Manually advanced UTC clock."""

    def __init__(self, now: datetime) -> None:
        self._now = now

    def __call__(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> None:
        self._now = self._now + delta

    def set(self, now: datetime) -> None:
        self._now = now


@dataclass
class StepResult:
    index: int
    op: str
    ok: bool
    result: Any = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"index": self.index, "op": self.op, "ok": self.ok}
        if self.ok:
            data["result"] = self.result
        else:
            data["error"] = self.error
        return data


@dataclass
class SimulationReport:
    steps: List[StepResult] = field(default_factory=list)
    final_state: Dict[str, Any] = field(default_factory=dict)
    balances: Dict[str, int] = field(default_factory=dict)

    @property
    def failures(self) -> List[StepResult]:
        return [s for s in self.steps if not s.ok]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "steps": [s.to_dict() for s in self.steps],
            "final_state": self.final_state,
            "balances": self.balances,
        }


class Simulation:
    """Wires a vault to in-memory tokens and reserves and replays steps.

    Usage:
        sim = Simulation.from_script(script, base_config)
        report = sim.run()
    """

    def __init__(
        self,
        config: VaultConfig,
        start: datetime,
        event_log: Optional[EventLog] = None,
    ) -> None:
        self.clock = SimulatedClock(start)
        self.asset = TokenLedger("asset", decimals=config.decimals)
        self.shares = TokenLedger("vault-shares", decimals=config.decimals)
        self.liquid = InMemoryReserve("liquid-reserve", self.asset)
        self.yield_reserve = InMemoryReserve("yield-reserve", self.asset)
        self.vault = RedeemableVault(
            config,
            asset=self.asset,
            share_token=self.shares,
            liquid_reserve=self.liquid,
            yield_reserve=self.yield_reserve,
            event_log=event_log,
            clock=self.clock,
        )
        self._steps: List[Dict[str, Any]] = []
        self._accounts: set = {config.owner, config.treasury}

    @classmethod
    def from_script(
        cls,
        script: Dict[str, Any],
        base_config: VaultConfig,
        event_log: Optional[EventLog] = None,
    ) -> Simulation:
        overrides = script.get("config", {})
        config = VaultConfig.from_dict({**base_config.to_dict(), **overrides})
        start = parse_utc(script["start_utc"])
        sim = cls(config, start, event_log=event_log)
        for account, amount in script.get("balances", {}).items():
            sim.fund(account, int(amount))
        for name, knobs in script.get("reserves", {}).items():
            reserve = sim.reserve(name)
            for knob, value in knobs.items():
                if knob not in ("withdraw_limit", "withdraw_haircut_bps", "deposit_fee_bps"):
                    raise ValueError(f"Unknown reserve setting: {knob}")
                setattr(reserve, knob, value)
        sim._steps = list(script.get("steps", []))
        return sim

    def fund(self, account: str, amount: int) -> None:
        """Mint assets to `account` and approve the vault to pull them."""
        self.asset.mint(account, amount)
        self.asset.approve(account, self.vault.address, UNLIMITED_ALLOWANCE)
        self._accounts.add(account)

    def reserve(self, name: str) -> InMemoryReserve:
        if name == "liquid":
            return self.liquid
        if name == "yield":
            return self.yield_reserve
        raise ValueError(f"Unknown reserve: {name}")

    def run(self, stop_on_error: bool = False) -> SimulationReport:
        report = SimulationReport()
        for index, step in enumerate(self._steps):
            result = self.apply(index, step)
            report.steps.append(result)
            if not result.ok:
                _log.warning("step %d (%s) failed: %s", index, result.op, result.error)
                if stop_on_error:
                    break
        report.final_state = self.vault.state()
        report.balances = {
            account: self.asset.balance_of(account)
            for account in sorted(self._accounts)
        }
        return report

    def apply(self, index: int, step: Dict[str, Any]) -> StepResult:
        op = step.get("op", "")
        handler = self._handlers().get(op)
        if handler is None:
            return StepResult(index, op, ok=False, error=f"Unknown op: {op!r}")
        try:
            return StepResult(index, op, ok=True, result=handler(step))
        except (VaultError, KeyError, ValueError) as e:
            return StepResult(index, op, ok=False, error=f"{type(e).__name__}: {e}")

    def _handlers(self) -> Dict[str, Callable[[Dict[str, Any]], Any]]:
        v = self.vault
        owner = v.config.owner
        return {
            "deposit": lambda s: v.deposit(
                s["caller"], int(s["assets"]), s.get("receiver", s["caller"])),
            "mint": lambda s: v.mint(
                s["caller"], int(s["shares"]), s.get("receiver", s["caller"])),
            "redeem": lambda s: v.redeem(
                s["caller"], int(s["position_id"]), int(s["shares"]),
                s.get("receiver", s["caller"])),
            "claim": lambda s: v.claim(
                s["caller"], int(s["position_id"]), int(s["shares"]),
                s.get("receiver", s["caller"])),
            "withdraw": lambda s: v.withdraw(
                s["caller"], int(s["assets"]), s.get("receiver", s["caller"]),
                s.get("owner", s["caller"])),
            "redeem-shares": lambda s: v.redeem_shares(
                s["caller"], int(s["shares"]), s.get("receiver", s["caller"]),
                s.get("owner", s["caller"])),
            "vest": lambda s: v.vest(s.get("caller", "keeper")),
            "liquidate": lambda s: v.liquidate(s.get("caller", owner)),
            "take-fees": lambda s: v.take_performance_fees(s.get("caller", "keeper")),
            "terminal": lambda s: v.enable_terminal_mode(s.get("caller", owner)),
            "pause": lambda s: v.pause(s.get("caller", owner)),
            "unpause": lambda s: v.unpause(s.get("caller", owner)),
            "set-slippage": lambda s: v.set_max_slippage(
                s.get("caller", owner), int(s["bps"])),
            "accrue": lambda s: self.reserve(s["reserve"]).accrue(int(s["assets"])),
            "impair": lambda s: self.reserve(s["reserve"]).impair(int(s["assets"])),
            "advance": lambda s: self._advance(s),
        }

    def _advance(self, step: Dict[str, Any]) -> str:
        self.clock.advance(timedelta(
            days=step.get("days", 0),
            hours=step.get("hours", 0),
            seconds=step.get("seconds", 0),
        ))
        return self.clock().strftime("%Y-%m-%dT%H:%M:%SZ")
