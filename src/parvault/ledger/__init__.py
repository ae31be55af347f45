from parvault.ledger.positions import PositionLedger

__all__ = ["PositionLedger"]
