"""
Risk factor analyzers.

Four independent heuristics, each scoring one dimension of a claim
submission from 0 to 100 and listing the rules that fired. They are pure
functions of the submission, so the same submission always scores the same.
"""

from datetime import date
from decimal import Decimal
from typing import List, Tuple

from claimflow.schemas.claim import ClaimSubmission
from claimflow.schemas.risk import RiskDimension, RiskFactor

# Weights in percent; they sum to 100
AMOUNT_WEIGHT = 30
TEMPORAL_WEIGHT = 25
DATA_COMPLETENESS_WEIGHT = 20
HISTORICAL_WEIGHT = 25

MAX_FACTOR_SCORE = 100

HIGH_AMOUNT = Decimal("50000")
VERY_HIGH_AMOUNT = Decimal("100000")
ROUND_AMOUNT_FLOOR = Decimal("10000")
ROUND_AMOUNT_UNIT = Decimal("1000")

LATE_FILING_DAYS = 90
MIN_DESCRIPTION_LENGTH = 20
NEW_POLICY_MONTHS = 6
DAYS_PER_MONTH = 30


def _build(dimension: RiskDimension, weight: int, score: int, reasons: List[str]) -> RiskFactor:
    return RiskFactor(
        dimension=dimension,
        score=min(MAX_FACTOR_SCORE, score),
        weight=weight,
        reasons=tuple(reasons),
    )


def analyze_amount_risk(submission: ClaimSubmission) -> RiskFactor:
    """Large and suspiciously round amounts"""
    amount = submission.amount_requested
    score = 0
    reasons = []

    if amount > HIGH_AMOUNT:
        score += 40
        reasons.append("High claim amount (>$50k)")
    if amount > VERY_HIGH_AMOUNT:
        score += 30
        reasons.append("Very high claim amount (>$100k)")
    if amount > ROUND_AMOUNT_FLOOR and amount % ROUND_AMOUNT_UNIT == 0:
        score += 20
        reasons.append("Round number claim (possible estimation)")

    return _build(RiskDimension.AMOUNT, AMOUNT_WEIGHT, score, reasons)


def analyze_temporal_risk(submission: ClaimSubmission) -> RiskFactor:
    """Filing delay and weekend incidents; nothing to score without an incident date"""
    score = 0
    reasons = []

    incident = submission.incident_date
    if incident is not None:
        days_since_incident = (submission.submitted_at.date() - incident).days

        if days_since_incident < 1:
            score += 35
            reasons.append("Same-day claim filing")
        if days_since_incident > LATE_FILING_DAYS:
            score += 25
            reasons.append("Late claim filing (>90 days)")
        if incident.weekday() >= 5:  # Saturday / Sunday
            score += 15
            reasons.append("Weekend incident")

    return _build(RiskDimension.TEMPORAL, TEMPORAL_WEIGHT, score, reasons)


def analyze_data_completeness(submission: ClaimSubmission) -> RiskFactor:
    """Missing narrative, photos or incident date"""
    score = 0
    reasons = []

    if not submission.description or len(submission.description) < MIN_DESCRIPTION_LENGTH:
        score += 40
        reasons.append("Insufficient incident description")
    if not submission.has_photos:
        score += 35
        reasons.append("No supporting photos")
    if submission.incident_date is None:
        score += 25
        reasons.append("Missing incident date")

    return _build(RiskDimension.DATA_COMPLETENESS, DATA_COMPLETENESS_WEIGHT, score, reasons)


def policy_tenure_months(submission: ClaimSubmission) -> Tuple[int, bool]:
    """
    Whole 30-day months of policy tenure at submission, and whether the
    value is real (from policy_start_date) or the calendar-year proxy.
    """
    claim_date = submission.submitted_at.date()
    if submission.policy_start_date is not None:
        return (claim_date - submission.policy_start_date).days // DAYS_PER_MONTH, True
    start_of_year = date(claim_date.year, 1, 1)
    return (claim_date - start_of_year).days // DAYS_PER_MONTH, False


def analyze_historical_risk(submission: ClaimSubmission) -> RiskFactor:
    """Claim frequency for the client and policy tenure"""
    score = 0
    reasons = []

    if submission.prior_claims > 3:
        score += 40
        reasons.append("Multiple previous claims")
    if submission.prior_claims > 5:
        score += 30
        reasons.append("Excessive claim history (>5 claims)")

    months, is_actual = policy_tenure_months(submission)
    if months < NEW_POLICY_MONTHS:
        score += 20
        if is_actual:
            reasons.append("New policy (<6 months)")
        else:
            # TODO: drop the calendar proxy once intake always sends policy_start_date
            reasons.append("New policy (<6 months, estimated from claim date)")

    return _build(RiskDimension.HISTORICAL, HISTORICAL_WEIGHT, score, reasons)


def analyze_all(submission: ClaimSubmission) -> Tuple[RiskFactor, ...]:
    """All four factors in a fixed order: amount, temporal, data, historical"""
    return (
        analyze_amount_risk(submission),
        analyze_temporal_risk(submission),
        analyze_data_completeness(submission),
        analyze_historical_risk(submission),
    )
