"""
Approval state machine.

    Pending L1 --escalate--> Pending L2 --escalate--> Pending L3
        |                        |                        |
        +--approve / deny--------+--approve / deny--------+--> Approved | Denied

Each transition takes a claim and returns a new one; the input is never
touched, so a rejected transition leaves the caller's claim exactly as it
was. Checks run in a fixed order: reason, then authority, then state.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from claimflow.core.errors import (
    InvalidTransitionError,
    MissingReasonError,
    UnauthorizedError,
    ValidationError,
)
from claimflow.models.claim import ApprovalAction, ClaimStatus, DecisionAction, WorkflowTier
from claimflow.models.roles import ApproverRole, authority_tier, can_act_on
from claimflow.schemas.base import ZERO, parse_amount, utcnow
from claimflow.schemas.claim import ApprovalRecord, Claim
from claimflow.services.reserves.calculator import calculate_claim_reserve

logger = logging.getLogger(__name__)


def parse_role(role: Union[ApproverRole, str]) -> ApproverRole:
    try:
        return ApproverRole(role)
    except ValueError:
        raise ValidationError(f"Unknown approver role: {role!r}") from None


def parse_action(action: Union[DecisionAction, str]) -> DecisionAction:
    try:
        return DecisionAction(action)
    except ValueError:
        raise ValidationError(f"Unknown decision action: {action!r}") from None


def parse_status(status: Union[ClaimStatus, str]) -> ClaimStatus:
    try:
        return ClaimStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown claim status: {status!r}") from None


def _require_reason(claim: Claim, reason: Optional[str]) -> str:
    if reason is None or not reason.strip():
        raise MissingReasonError(
            "A reason is required for every approval decision",
            {"claim_id": claim.id},
        )
    return reason.strip()


def _require_authority(claim: Claim, role: ApproverRole, action: DecisionAction) -> None:
    if not can_act_on(role, claim.workflow_level):
        raise UnauthorizedError(
            f"{role.value} cannot {action.value} a claim at {claim.workflow_level.value} "
            f"(authority up to {authority_tier(role).value})",
            {"claim_id": claim.id, "role": role.value, "tier": claim.workflow_level.value},
        )


def _require_pending(claim: Claim, action: DecisionAction) -> None:
    if claim.is_terminal:
        raise InvalidTransitionError(
            f"Cannot {action.value} claim {claim.id}: already {claim.status.value}",
            {"claim_id": claim.id, "status": claim.status.value},
        )


def _record(claim: Claim, action: ApprovalAction, role: ApproverRole, reason: str, now: datetime) -> tuple:
    entry = ApprovalRecord(
        action=action,
        actor_role=role,
        tier=claim.workflow_level,
        reason=reason,
        timestamp=now,
    )
    return claim.approval_history + (entry,)


def approve(
    claim: Claim,
    role: Union[ApproverRole, str],
    reason: Optional[str],
    amount_approved: Optional[Union[Decimal, int, float, str]] = None,
    now: Optional[datetime] = None,
) -> Claim:
    """
    Approve a pending claim.
    amount_approved defaults to the full requested amount.
    """
    role = parse_role(role)
    reason = _require_reason(claim, reason)
    _require_authority(claim, role, DecisionAction.APPROVE)
    _require_pending(claim, DecisionAction.APPROVE)

    if amount_approved is None:
        approved = claim.amount_requested
    else:
        approved = parse_amount(amount_approved, "amount_approved", {"claim_id": claim.id})
        if approved < 0:
            raise ValidationError(
                "Approved amount cannot be negative",
                {"claim_id": claim.id, "amount_approved": str(approved)},
            )

    now = now or utcnow()
    return claim.evolve(
        status=ClaimStatus.APPROVED,
        amount_approved=approved,
        reserve_amount=calculate_claim_reserve(
            ClaimStatus.APPROVED, claim.amount_requested, approved, claim.fraud_score
        ),
        approval_history=_record(claim, ApprovalAction.APPROVED, role, reason, now),
        processed_at=now,
    )


def deny(
    claim: Claim,
    role: Union[ApproverRole, str],
    reason: Optional[str],
    now: Optional[datetime] = None,
) -> Claim:
    """Deny a pending claim; nothing is approved and nothing stays reserved"""
    role = parse_role(role)
    reason = _require_reason(claim, reason)
    _require_authority(claim, role, DecisionAction.DENY)
    _require_pending(claim, DecisionAction.DENY)

    now = now or utcnow()
    return claim.evolve(
        status=ClaimStatus.DENIED,
        amount_approved=ZERO,
        reserve_amount=ZERO,
        approval_history=_record(claim, ApprovalAction.DENIED, role, reason, now),
        denial_reason=reason,
        processed_at=now,
    )


def escalate(
    claim: Claim,
    role: Union[ApproverRole, str],
    reason: Optional[str],
    now: Optional[datetime] = None,
) -> Claim:
    """Move a pending claim up exactly one tier"""
    role = parse_role(role)
    reason = _require_reason(claim, reason)
    _require_authority(claim, role, DecisionAction.ESCALATE)
    _require_pending(claim, DecisionAction.ESCALATE)

    if claim.workflow_level == WorkflowTier.L3:
        raise InvalidTransitionError(
            f"Cannot escalate claim {claim.id}: L3 is the highest tier",
            {"claim_id": claim.id, "status": claim.status.value},
        )

    next_tier = claim.workflow_level.next_tier()
    next_status = ClaimStatus.pending_for(next_tier)
    now = now or utcnow()
    return claim.evolve(
        workflow_level=next_tier,
        status=next_status,
        reserve_amount=calculate_claim_reserve(
            next_status, claim.amount_requested, claim.amount_approved, claim.fraud_score
        ),
        approval_history=_record(claim, ApprovalAction.ESCALATED, role, reason, now),
    )


def apply_decision(
    claim: Claim,
    action: Union[DecisionAction, str],
    role: Union[ApproverRole, str],
    reason: Optional[str],
    amount_approved: Optional[Union[Decimal, int, float, str]] = None,
    now: Optional[datetime] = None,
) -> Claim:
    """Dispatch an approver's decision to the matching transition"""
    action = parse_action(action)

    if action == DecisionAction.APPROVE:
        return approve(claim, role, reason, amount_approved=amount_approved, now=now)
    elif action == DecisionAction.DENY:
        return deny(claim, role, reason, now=now)
    else:
        return escalate(claim, role, reason, now=now)
