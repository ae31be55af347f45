"""parvault — reserve-accounting engine for a par-redeemable two-reserve vault."""

from parvault.config import VaultConfig
from parvault.models.position import Position, RedemptionMode
from parvault.vault import RedeemableVault

__version__ = "0.1.0"

__all__ = [
    "Position",
    "RedeemableVault",
    "RedemptionMode",
    "VaultConfig",
]
