from parvault.governance.authorization import (
    Authorizer,
    OwnerAuthorizer,
    RoleAuthorizer,
    require_authorized,
)
from parvault.governance.mode_controller import RedemptionModeController

__all__ = [
    "Authorizer",
    "OwnerAuthorizer",
    "RedemptionModeController",
    "RoleAuthorizer",
    "require_authorized",
]
