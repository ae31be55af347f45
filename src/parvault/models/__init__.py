from parvault.models.fees import FeeAssessment, RedemptionBreakdown
from parvault.models.position import Position, RedemptionMode

__all__ = [
    "FeeAssessment",
    "Position",
    "RedemptionBreakdown",
    "RedemptionMode",
]
