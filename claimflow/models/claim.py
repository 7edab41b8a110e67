"""
Claim model - the core entity of the approval workflow.
Represents an insurance claim from submission through its final decision.
"""

from sqlalchemy import (
    Column, String, Integer, Numeric, Date, DateTime, ForeignKey, Text,
    Enum as SQLEnum, JSON, Index, UniqueConstraint,
)
from sqlalchemy.orm import relationship
import enum

from claimflow.core.database import Base
from claimflow.models.base import TimestampMixin, UUIDMixin


class WorkflowTier(str, enum.Enum):
    """
    Approval tier - the authority required to decide a claim.
    Ordered L1 < L2 < L3; a claim's tier only ever moves up.
    """
    L1 = "L1"  # Under $10,000
    L2 = "L2"  # $10,000 - $50,000
    L3 = "L3"  # Over $50,000 or high fraud risk

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]

    def next_tier(self) -> "WorkflowTier":
        """The tier one step up; L3 has none"""
        if self is WorkflowTier.L3:
            raise ValueError("L3 is the highest tier")
        return _TIERS_IN_ORDER[self.rank + 1]


_TIERS_IN_ORDER = (WorkflowTier.L1, WorkflowTier.L2, WorkflowTier.L3)
_TIER_RANK = {tier: index for index, tier in enumerate(_TIERS_IN_ORDER)}


class ClaimStatus(str, enum.Enum):
    """
    Claim lifecycle status.
    Pending statuses mirror the workflow tier; Approved / Denied are terminal.
    """
    PENDING_L1 = "Pending L1"
    PENDING_L2 = "Pending L2"
    PENDING_L3 = "Pending L3"
    APPROVED = "Approved"
    DENIED = "Denied"

    @property
    def is_pending(self) -> bool:
        return self in _PENDING_BY_TIER.values()

    @property
    def is_terminal(self) -> bool:
        return not self.is_pending

    @classmethod
    def pending_for(cls, tier: WorkflowTier) -> "ClaimStatus":
        return _PENDING_BY_TIER[WorkflowTier(tier)]


_PENDING_BY_TIER = {
    WorkflowTier.L1: ClaimStatus.PENDING_L1,
    WorkflowTier.L2: ClaimStatus.PENDING_L2,
    WorkflowTier.L3: ClaimStatus.PENDING_L3,
}


class ApprovalAction(str, enum.Enum):
    """Actions recorded in a claim's approval history"""
    APPROVED = "approved"
    DENIED = "denied"
    ESCALATED = "escalated"


class DecisionAction(str, enum.Enum):
    """Actions an approver can request"""
    APPROVE = "approve"
    DENY = "deny"
    ESCALATE = "escalate"


class RiskTier(str, enum.Enum):
    """Reserve / reporting risk band derived from the fraud score"""
    HIGH = "high"  # fraud score > 60
    MEDIUM = "medium"  # fraud score > 30
    LOW = "low"


class ClaimRow(Base, UUIDMixin, TimestampMixin):
    """
    Persisted claim: submission, risk assessment and workflow state.
    The version column guards against two writers deciding the same claim.
    """
    __tablename__ = "claims"

    # Submission
    policy_id = Column(String(64), nullable=False, index=True)
    client_id = Column(String(64), nullable=False, index=True)
    incident_date = Column(Date, nullable=True)
    description = Column(Text, nullable=True)
    amount_requested = Column(Numeric(14, 2), nullable=False)
    photo_count = Column(Integer, nullable=True)
    prior_claims = Column(Integer, nullable=False, default=0)
    policy_start_date = Column(
        Date,
        nullable=True,
        comment="Real policy inception, when the intake system knows it"
    )
    submitted_at = Column(DateTime(timezone=True), nullable=False, index=True)

    # Risk assessment (immutable after submission)
    fraud_score = Column(Integer, nullable=False, index=True)
    confidence_level = Column(Integer, nullable=False)
    risk_factors = Column(
        JSON,
        nullable=False,
        comment="The four scored factors with reasons"
    )
    fraud_flags = Column(JSON, nullable=False, default=list)

    # Workflow
    workflow_level = Column(SQLEnum(WorkflowTier), nullable=False, index=True)
    status = Column(SQLEnum(ClaimStatus), nullable=False, index=True)

    # Financial
    amount_approved = Column(Numeric(14, 2), nullable=False, default=0)
    reserve_amount = Column(Numeric(14, 2), nullable=False, default=0)

    denial_reason = Column(Text, nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False)

    # Relationships
    approval_history = relationship(
        "ApprovalRow",
        back_populates="claim",
        order_by="ApprovalRow.sequence_number",
        cascade="all, delete-orphan"
    )

    reserve_adjustments = relationship(
        "ReserveAdjustmentRow",
        back_populates="claim",
        cascade="all, delete-orphan"
    )

    __mapper_args__ = {"version_id_col": version}

    # Composite indexes for common queries
    __table_args__ = (
        Index("ix_claims_status_submitted", "status", "submitted_at"),
        Index("ix_claims_client_status", "client_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Claim {self.id} - {self.status.value if self.status else None}>"


class ApprovalRow(Base, UUIDMixin):
    """
    One entry of a claim's approval audit trail.
    Rows are only ever inserted; sequence_number preserves their order.
    """
    __tablename__ = "approval_records"

    claim_id = Column(
        String(36),
        ForeignKey("claims.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    sequence_number = Column(
        Integer,
        nullable=False,
        comment="Order of the action in the claim's history"
    )

    action = Column(SQLEnum(ApprovalAction), nullable=False)
    actor_role = Column(String(32), nullable=False)
    tier = Column(
        SQLEnum(WorkflowTier),
        nullable=False,
        comment="Tier the claim was at when the action was taken"
    )
    reason = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)

    claim = relationship("ClaimRow", back_populates="approval_history")

    __table_args__ = (
        UniqueConstraint("claim_id", "sequence_number", name="uq_approval_claim_sequence"),
    )

    def __repr__(self) -> str:
        return f"<ApprovalRecord {self.action.value} @ {self.tier.value}>"
