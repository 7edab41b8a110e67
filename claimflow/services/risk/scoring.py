"""
Risk scoring engine - combines the four factor scores into a fraud score,
a confidence level and a set of risk flags.
"""

import logging
from decimal import Decimal
from typing import List, Sequence

from claimflow.schemas.claim import ClaimSubmission
from claimflow.schemas.risk import RiskAssessment, RiskFactor
from claimflow.services.risk.factors import MIN_DESCRIPTION_LENGTH, analyze_all

logger = logging.getLogger(__name__)

HIGH_FRAUD_SCORE = 60
HIGH_AMOUNT_FLAG = Decimal("10000")
MULTIPLE_CLAIMS_THRESHOLD = 2

STRONG_PATTERN_CONTRIBUTION = 60
STRONG_FACTOR_SCORE = 70


def _clamp(value: int, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, value))


def combine_factor_scores(factors: Sequence[RiskFactor]) -> int:
    """
    Weighted sum of factor scores, rounded half up and clamped to 0-100.
    Done in integer hundredths so .5 always rounds up.
    """
    weighted_hundredths = sum(factor.score * factor.weight for factor in factors)
    return _clamp((weighted_hundredths + 50) // 100)


def calculate_confidence(submission: ClaimSubmission, factors: Sequence[RiskFactor]) -> int:
    """
    How well the evidence supports the fraud score.
    Missing data lowers it; strong, corroborating factors raise it.
    """
    confidence = 100

    if not submission.description or len(submission.description) < MIN_DESCRIPTION_LENGTH:
        confidence -= 15
    if not submission.has_photos:
        confidence -= 10
    if submission.incident_date is None:
        confidence -= 10

    total_contribution = sum(factor.contribution for factor in factors)
    if total_contribution > STRONG_PATTERN_CONTRIBUTION:
        confidence += 10
    if sum(1 for factor in factors if factor.score > STRONG_FACTOR_SCORE) >= 2:
        confidence += 5

    return _clamp(confidence)


def determine_flags(submission: ClaimSubmission, fraud_score: int, history_count: int) -> List[str]:
    flags = []

    if submission.amount_requested > HIGH_AMOUNT_FLAG:
        flags.append("High amount")
    if not submission.has_photos:
        flags.append("No photos provided")
    if fraud_score > HIGH_FRAUD_SCORE:
        flags.append("High fraud risk")
    if history_count > MULTIPLE_CLAIMS_THRESHOLD:
        flags.append("Multiple claims")

    return flags


def assess(submission: ClaimSubmission, history_count: int = 0) -> RiskAssessment:
    """
    Score a claim submission.

    Args:
        submission: The validated claim submission
        history_count: Claims the client already has on record

    Returns:
        RiskAssessment with fraud score, confidence, factors and flags
    """
    factors = analyze_all(submission)
    fraud_score = combine_factor_scores(factors)
    confidence = calculate_confidence(submission, factors)
    flags = determine_flags(submission, fraud_score, history_count)

    logger.debug(
        f"Risk assessment for policy {submission.policy_id}: "
        f"score={fraud_score} confidence={confidence} flags={flags}"
    )

    return RiskAssessment(
        fraud_score=fraud_score,
        confidence_level=confidence,
        factors=factors,
        flags=tuple(flags),
    )
