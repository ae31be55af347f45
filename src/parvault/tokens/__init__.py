from parvault.tokens.interface import FungibleToken
from parvault.tokens.ledger import UNLIMITED_ALLOWANCE, TokenLedger

__all__ = ["FungibleToken", "TokenLedger", "UNLIMITED_ALLOWANCE"]
