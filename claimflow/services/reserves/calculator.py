"""
Reserve calculator - outstanding liability per claim and across the book,
plus the manual adjustment ledger helpers.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, Optional, Sequence, Union

from claimflow.core.errors import MissingReasonError, ValidationError
from claimflow.models.claim import ClaimStatus, RiskTier
from claimflow.models.reserve_adjustment import ReserveAdjustmentType
from claimflow.schemas.base import ZERO, ensure_aware, parse_amount, to_money, utcnow
from claimflow.schemas.claim import Claim
from claimflow.schemas.reserve import ReserveAdjustment, ReserveSnapshot, ReserveStatistics

HIGH_RISK_SCORE = 60
MEDIUM_RISK_SCORE = 30

_MULTIPLIERS = {
    RiskTier.HIGH: Decimal("1.2"),
    RiskTier.MEDIUM: Decimal("1.1"),
    RiskTier.LOW: Decimal("1.0"),
}


def risk_tier(fraud_score: int) -> RiskTier:
    if fraud_score > HIGH_RISK_SCORE:
        return RiskTier.HIGH
    elif fraud_score > MEDIUM_RISK_SCORE:
        return RiskTier.MEDIUM
    return RiskTier.LOW


def risk_multiplier(fraud_score: int) -> Decimal:
    """Riskier claims carry a loading on top of the amount at stake"""
    return _MULTIPLIERS[risk_tier(fraud_score)]


def calculate_claim_reserve(
    status: ClaimStatus,
    amount_requested: Union[Decimal, int, float],
    amount_approved: Union[Decimal, int, float],
    fraud_score: int,
) -> Decimal:
    """
    Reserve for one claim.

    Pending:  requested x multiplier
    Approved: max(0, requested - approved) x multiplier
    Denied:   0
    """
    status = ClaimStatus(status)
    requested = to_money(amount_requested)

    if status == ClaimStatus.DENIED:
        return ZERO
    if status == ClaimStatus.APPROVED:
        exposure = max(ZERO, requested - to_money(amount_approved))
    else:
        exposure = requested

    return to_money(exposure * risk_multiplier(fraud_score))


def reserve_for(claim: Claim) -> Decimal:
    """Recompute a claim's reserve from its current state"""
    return calculate_claim_reserve(
        claim.status, claim.amount_requested, claim.amount_approved, claim.fraud_score
    )


def build_reserve_snapshot(
    claims: Iterable[Claim],
    as_of: Optional[datetime] = None,
) -> ReserveSnapshot:
    """
    Aggregate reserves across the claim book.

    Every status and risk tier appears in the breakdown even at zero, and
    both partitions add up to the total. With as_of, only claims submitted
    at or before that moment are included.
    """
    if as_of is not None:
        as_of = ensure_aware(as_of)

    by_status: Dict[str, Decimal] = {status.value: ZERO for status in ClaimStatus}
    by_risk: Dict[str, Decimal] = {tier.value: ZERO for tier in RiskTier}
    by_policy: Dict[str, Decimal] = {}
    total = ZERO
    count = 0

    for claim in claims:
        if as_of is not None and claim.submitted_at > as_of:
            continue

        reserve = reserve_for(claim)
        total += reserve
        count += 1

        by_status[claim.status.value] += reserve
        by_risk[risk_tier(claim.fraud_score).value] += reserve
        by_policy[claim.policy_id] = by_policy.get(claim.policy_id, ZERO) + reserve

    average = to_money(total / count) if count else ZERO

    return ReserveSnapshot(
        total_reserve=total,
        by_status=by_status,
        by_risk=by_risk,
        by_policy=by_policy,
        claims_count=count,
        average_reserve=average,
        as_of=as_of or utcnow(),
    )


def adjust_reserve(
    claim: Claim,
    adjustment_type: Union[ReserveAdjustmentType, str],
    amount: Union[Decimal, int, float, str],
    reason: str,
    adjusted_by: str,
    now: Optional[datetime] = None,
) -> ReserveAdjustment:
    """
    Record a manual increase / decrease against the claim's current reserve.
    The resulting reserve is floored at zero.
    """
    if not reason or not reason.strip():
        raise MissingReasonError("A reason is required to adjust a reserve", {"claim_id": claim.id})
    if not adjusted_by or not adjusted_by.strip():
        raise ValidationError("adjusted_by is required", {"claim_id": claim.id})

    try:
        adjustment_type = ReserveAdjustmentType(adjustment_type)
    except ValueError:
        raise ValidationError(
            f"Unknown adjustment type: {adjustment_type!r}", {"claim_id": claim.id}
        ) from None

    amount = parse_amount(amount, "adjustment_amount", {"claim_id": claim.id})
    if amount <= 0:
        raise ValidationError("Adjustment amount must be positive", {"claim_id": claim.id})

    previous = reserve_for(claim)
    if adjustment_type == ReserveAdjustmentType.INCREASE:
        new_reserve = previous + amount
    else:
        new_reserve = max(ZERO, previous - amount)

    return ReserveAdjustment(
        id=str(uuid.uuid4()),
        claim_id=claim.id,
        adjustment_type=adjustment_type,
        adjustment_amount=amount,
        previous_reserve=previous,
        new_reserve=new_reserve,
        reason=reason.strip(),
        adjusted_by=adjusted_by.strip(),
        adjusted_at=now or utcnow(),
    )


def adjustment_statistics(adjustments: Sequence[ReserveAdjustment]) -> ReserveStatistics:
    increases = [a for a in adjustments if a.adjustment_type == ReserveAdjustmentType.INCREASE]
    decreases = [a for a in adjustments if a.adjustment_type == ReserveAdjustmentType.DECREASE]

    total_increase = sum((a.adjustment_amount for a in increases), ZERO)
    total_decrease = sum((a.adjustment_amount for a in decreases), ZERO)

    return ReserveStatistics(
        total_adjustments=len(adjustments),
        increases=len(increases),
        decreases=len(decreases),
        total_increase_amount=total_increase,
        total_decrease_amount=total_decrease,
        net_adjustment=total_increase - total_decrease,
    )
