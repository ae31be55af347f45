"""Authorization predicate for privileged vault operations.

The vault does not bake in any particular control mechanism. It asks an
Authorizer whether `caller` may perform `action`, and raises Unauthorized
if not. The default is a single owner; a multi-signature or time-locked
authorizer can be swapped in without touching core invariants.

Actions are the administrative entrypoint names: "pause", "unpause",
"set_max_slippage", "set_deposits_enabled", "enable_terminal_mode",
"sweep_rewards", "liquidate", "set_authorizer".
"""

from __future__ import annotations

from typing import FrozenSet, Optional, Protocol, runtime_checkable

from parvault.errors import Unauthorized, ZeroAddress

ADMIN_ACTIONS: FrozenSet[str] = frozenset({
    "pause",
    "unpause",
    "set_max_slippage",
    "set_deposits_enabled",
    "enable_terminal_mode",
    "sweep_rewards",
    "liquidate",
    "set_authorizer",
})


@runtime_checkable
class Authorizer(Protocol):
    """Decides whether an identity may perform an administrative action."""

    def is_authorized(self, caller: str, action: str) -> bool:
        ...


class OwnerAuthorizer:
    """Single privileged identity allowed every administrative action."""

    def __init__(self, owner: str) -> None:
        if not owner:
            raise ZeroAddress("Owner must be set")
        self._owner = owner

    @property
    def owner(self) -> str:
        return self._owner

    def is_authorized(self, caller: str, action: str) -> bool:
        return caller == self._owner


class RoleAuthorizer:
    """Per-action grants, for operators that hold only some powers.

    Usage:
        auth = RoleAuthorizer({"liquidate": {"keeper"}, "pause": {"guardian"}},
                              admin="owner")
    """

    def __init__(
        self,
        grants: dict,
        admin: Optional[str] = None,
    ) -> None:
        unknown = set(grants) - ADMIN_ACTIONS
        if unknown:
            raise ValueError(f"Unknown actions in grants: {sorted(unknown)}")
        self._grants = {action: frozenset(ids) for action, ids in grants.items()}
        self._admin = admin

    def holders(self, action: str) -> FrozenSet[str]:
        return self._grants.get(action, frozenset())

    def is_authorized(self, caller: str, action: str) -> bool:
        if self._admin is not None and caller == self._admin:
            return True
        return caller in self.holders(action)


def require_authorized(authorizer: Authorizer, caller: str, action: str) -> None:
    """Raise Unauthorized unless `caller` may perform `action`."""
    if not authorizer.is_authorized(caller, action):
        raise Unauthorized(f"{caller} is not authorized to {action}")
