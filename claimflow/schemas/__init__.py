"""
Immutable domain schemas exchanged between the engine and its collaborators
"""

from claimflow.schemas.base import FrozenModel, to_money
from claimflow.schemas.risk import RiskDimension, RiskFactor, RiskAssessment
from claimflow.schemas.claim import ClaimSubmission, ApprovalRecord, Claim
from claimflow.schemas.reserve import ReserveSnapshot, ReserveAdjustment, ReserveStatistics

__all__ = [
    "FrozenModel",
    "to_money",
    "RiskDimension",
    "RiskFactor",
    "RiskAssessment",
    "ClaimSubmission",
    "ApprovalRecord",
    "Claim",
    "ReserveSnapshot",
    "ReserveAdjustment",
    "ReserveStatistics",
]
