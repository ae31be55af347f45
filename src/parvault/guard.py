"""Call guards — reentrancy exclusion and all-or-nothing execution.

Every public mutating vault entrypoint runs inside both guards:

    with guard.enter("deposit"), AtomicScope(participants):
        ...

ReentrancyGuard is an entry-scoped flag: set on entry, cleared on exit.
A reserve or token that calls back into the vault mid-operation finds the
flag set and gets ReentrantCall, which unwinds the outer call as well.

AtomicScope snapshots every participant that supports snapshot()/restore()
on entry and restores them, newest first, if the body raises. The
exception always propagates. Participants without snapshot support are
external and cannot be rolled back by the vault.
"""

from __future__ import annotations

from types import TracebackType
from typing import Any, Iterable, List, Optional, Protocol, Tuple, Type, runtime_checkable

from parvault.errors import ReentrantCall


@runtime_checkable
class Snapshottable(Protocol):
    """State holder that can be captured and put back."""

    def snapshot(self) -> Any:
        ...

    def restore(self, state: Any) -> None:
        ...


class ReentrancyGuard:
    """Mutual-exclusion flag held for the duration of one entrypoint call."""

    def __init__(self) -> None:
        self._entered = False
        self._entrypoint: Optional[str] = None

    @property
    def entered(self) -> bool:
        return self._entered

    def enter(self, entrypoint: str) -> "ReentrancyGuard":
        if self._entered:
            raise ReentrantCall(
                f"{entrypoint} called while {self._entrypoint} is in progress"
            )
        self._entered = True
        self._entrypoint = entrypoint
        return self

    def __enter__(self) -> "ReentrancyGuard":
        if not self._entered:
            raise RuntimeError("Use `with guard.enter(name):` to hold the guard")
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> bool:
        self._entered = False
        self._entrypoint = None
        return False


class AtomicScope:
    """Restore all participants if the enclosed block raises."""

    def __init__(self, participants: Iterable[object]) -> None:
        self._participants = [
            p for p in participants if isinstance(p, Snapshottable)
        ]
        self._saved: List[Tuple[Snapshottable, Any]] = []

    def __enter__(self) -> "AtomicScope":
        self._saved = [(p, p.snapshot()) for p in self._participants]
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> bool:
        if exc_type is not None:
            for participant, state in reversed(self._saved):
                participant.restore(state)
        self._saved = []
        return False
