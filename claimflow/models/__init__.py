"""
SQLAlchemy ORM models and workflow enums for ClaimFlow
"""

from claimflow.models.base import TimestampMixin, UUIDMixin
from claimflow.models.claim import (
    ClaimRow,
    ApprovalRow,
    WorkflowTier,
    ClaimStatus,
    ApprovalAction,
    DecisionAction,
    RiskTier,
)
from claimflow.models.roles import ApproverRole, authority_tier, can_act_on
from claimflow.models.reserve_adjustment import ReserveAdjustmentRow, ReserveAdjustmentType

__all__ = [
    # Base mixins
    "TimestampMixin",
    "UUIDMixin",
    # Claim models
    "ClaimRow",
    "ApprovalRow",
    "WorkflowTier",
    "ClaimStatus",
    "ApprovalAction",
    "DecisionAction",
    "RiskTier",
    # Roles
    "ApproverRole",
    "authority_tier",
    "can_act_on",
    # Reserve adjustments
    "ReserveAdjustmentRow",
    "ReserveAdjustmentType",
]
