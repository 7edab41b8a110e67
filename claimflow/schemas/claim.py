"""
Claim schemas - the submission handed in by intake, the approval audit
trail, and the claim entity owned by the workflow engine.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Optional, Tuple

from pydantic import Field, ValidationError as PydanticValidationError, field_validator, model_validator

from claimflow.core.errors import ValidationError
from claimflow.models.claim import ApprovalAction, ClaimStatus, WorkflowTier
from claimflow.models.roles import ApproverRole
from claimflow.schemas.base import FrozenModel, ZERO, ensure_aware, to_money, utcnow
from claimflow.schemas.risk import RiskAssessment


class ClaimSubmission(FrozenModel):
    """
    Raw claim as received from intake.

    Attributes:
        policy_id: Policy the claim is filed under
        client_id: Claimant
        incident_date: When the loss happened (may be missing)
        description: Claimant's narrative
        amount_requested: Amount claimed, >= 0
        photo_count: Number of supporting photos, None if not provided
        prior_claims: Claims the client filed before this one
        submitted_at: Submission timestamp (UTC)
        policy_start_date: Actual policy inception, if intake knows it
    """
    policy_id: str = Field(..., min_length=1, max_length=64)
    client_id: str = Field(..., min_length=1, max_length=64)
    incident_date: Optional[date] = None
    description: Optional[str] = None
    amount_requested: Decimal = Field(..., ge=0)
    photo_count: Optional[int] = Field(default=None, ge=0)
    prior_claims: int = Field(default=0, ge=0)
    submitted_at: datetime = Field(default_factory=utcnow)
    policy_start_date: Optional[date] = None

    @field_validator("policy_id", "client_id", mode="before")
    @classmethod
    def normalize_reference(cls, v):
        """Intake sends numeric ids; blank ids count as missing"""
        if isinstance(v, int) and not isinstance(v, bool):
            v = str(v)
        if isinstance(v, str):
            v = v.strip()
        return v

    @field_validator("amount_requested")
    @classmethod
    def quantize_amount(cls, v: Decimal) -> Decimal:
        return to_money(v)

    @field_validator("submitted_at")
    @classmethod
    def aware_timestamp(cls, v: datetime) -> datetime:
        return ensure_aware(v)

    @model_validator(mode="after")
    def incident_not_after_submission(self) -> "ClaimSubmission":
        if self.incident_date and self.incident_date > self.submitted_at.date():
            raise ValueError("Incident date cannot be after the submission date")
        return self

    @property
    def has_photos(self) -> bool:
        return bool(self.photo_count)

    @classmethod
    def parse(cls, data: Mapping[str, Any]) -> "ClaimSubmission":
        """Validate raw intake data, raising the engine's ValidationError"""
        try:
            return cls.model_validate(dict(data))
        except PydanticValidationError as e:
            fields = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
            raise ValidationError(
                f"Invalid claim submission: {e.error_count()} error(s) in {', '.join(fields) or 'submission'}",
                {"errors": e.errors(include_url=False, include_context=False, include_input=False)},
            ) from e


class ApprovalRecord(FrozenModel):
    """
    One entry of the approval audit trail.

    Attributes:
        action: approved / denied / escalated
        actor_role: Role of the approver who acted
        tier: Tier the claim was at when the action was taken
        reason: Why (never blank)
        timestamp: When
    """
    action: ApprovalAction
    actor_role: ApproverRole
    tier: WorkflowTier
    reason: str = Field(..., min_length=1)
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def aware_timestamp(cls, v: datetime) -> datetime:
        return ensure_aware(v)


class Claim(FrozenModel):
    """
    The claim entity. Only the approval state machine produces new versions
    of it; the approval history is an append-only tuple.
    """
    id: str
    submission: ClaimSubmission
    assessment: RiskAssessment
    workflow_level: WorkflowTier
    status: ClaimStatus
    amount_approved: Decimal = ZERO
    reserve_amount: Decimal = ZERO
    approval_history: Tuple[ApprovalRecord, ...] = ()
    denial_reason: Optional[str] = None
    processed_at: Optional[datetime] = None
    version: int = Field(default=0, ge=0)

    @field_validator("amount_approved", "reserve_amount")
    @classmethod
    def quantize_money(cls, v: Decimal) -> Decimal:
        return to_money(v)

    @field_validator("processed_at")
    @classmethod
    def aware_timestamp(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(v) if v is not None else None

    @model_validator(mode="after")
    def status_matches_tier(self) -> "Claim":
        if self.status.is_pending and self.status != ClaimStatus.pending_for(self.workflow_level):
            raise ValueError(
                f"Status {self.status.value} is inconsistent with workflow level {self.workflow_level.value}"
            )
        return self

    # Convenience accessors used by routing, reserves and repositories

    @property
    def policy_id(self) -> str:
        return self.submission.policy_id

    @property
    def client_id(self) -> str:
        return self.submission.client_id

    @property
    def amount_requested(self) -> Decimal:
        return self.submission.amount_requested

    @property
    def fraud_score(self) -> int:
        return self.assessment.fraud_score

    @property
    def submitted_at(self) -> datetime:
        return self.submission.submitted_at

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal
