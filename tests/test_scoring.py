"""
Tests for fraud score combination, confidence and flags.
"""

from datetime import date, datetime, timezone

import pytest

from claimflow.schemas.risk import RiskDimension, RiskFactor
from claimflow.services.risk.scoring import (
    assess,
    calculate_confidence,
    combine_factor_scores,
    determine_flags,
)
from claimflow.services.workflow.router import route_initial_tier
from claimflow.models.claim import WorkflowTier


def _factor(dimension, score, weight):
    return RiskFactor(dimension=dimension, score=score, weight=weight)


class TestCombineFactorScores:

    def test_weighted_sum(self):
        factors = [
            _factor(RiskDimension.AMOUNT, 60, 30),
            _factor(RiskDimension.TEMPORAL, 35, 25),
            _factor(RiskDimension.DATA_COMPLETENESS, 75, 20),
            _factor(RiskDimension.HISTORICAL, 0, 25),
        ]
        # 18 + 8.75 + 15 + 0 = 41.75
        assert combine_factor_scores(factors) == 42

    def test_half_rounds_up(self):
        assert combine_factor_scores([_factor(RiskDimension.TEMPORAL, 50, 25)]) == 13
        assert combine_factor_scores([_factor(RiskDimension.TEMPORAL, 10, 25)]) == 3

    def test_below_half_rounds_down(self):
        assert combine_factor_scores([_factor(RiskDimension.AMOUNT, 8, 30)]) == 2

    def test_bounds(self):
        assert combine_factor_scores([]) == 0
        maxed = [
            _factor(RiskDimension.AMOUNT, 100, 30),
            _factor(RiskDimension.TEMPORAL, 100, 25),
            _factor(RiskDimension.DATA_COMPLETENESS, 100, 20),
            _factor(RiskDimension.HISTORICAL, 100, 25),
        ]
        assert combine_factor_scores(maxed) == 100


class TestScenarioA:
    """$75,000, no photos, 10-character description, filed the day of the incident"""

    @pytest.fixture
    def assessment(self, make_submission):
        submission = make_submission(
            amount_requested="75000",
            photo_count=0,
            description="Car damage",
            incident_date=date(2026, 3, 4),
        )
        return assess(submission)

    def test_factor_contributions(self, assessment):
        assert assessment.factor(RiskDimension.AMOUNT).score == 60
        assert assessment.factor(RiskDimension.TEMPORAL).score == 35
        assert assessment.factor(RiskDimension.DATA_COMPLETENESS).score == 75
        assert assessment.factor(RiskDimension.HISTORICAL).score == 0

    def test_fraud_score_and_tier(self, assessment):
        assert assessment.fraud_score == 42
        assert route_initial_tier(75000, assessment.fraud_score) == WorkflowTier.L3

    def test_confidence_and_flags(self, assessment):
        assert assessment.confidence_level == 75
        assert assessment.flags == ("High amount", "No photos provided")


class TestConfidence:

    def test_clean_claim_is_fully_confident(self, make_submission):
        assert assess(make_submission()).confidence_level == 100

    def test_missing_data_lowers_confidence(self, make_submission):
        assessment = assess(
            make_submission(description=None, photo_count=None, incident_date=None)
        )
        assert assessment.confidence_level == 65

    def test_strong_corroborating_factors_raise_confidence(self, make_submission):
        saturday = datetime(2026, 2, 28, 12, 0, tzinfo=timezone.utc)
        submission = make_submission(
            amount_requested="150000",
            incident_date=date(2026, 2, 28),
            submitted_at=saturday,
            description="Fire",
            photo_count=0,
            prior_claims=6,
            policy_start_date=date(2026, 1, 10),
        )
        assessment = assess(submission)

        # 27 + 12.5 + 15 + 22.5
        assert assessment.fraud_score == 77
        # 100 - 15 - 10, +10 strong pattern, +5 corroborating factors
        assert assessment.confidence_level == 90
        assert calculate_confidence(submission, assessment.factors) == 90
        assert "High fraud risk" in assessment.flags


class TestFlags:

    def test_no_flags_for_clean_claim(self, make_submission):
        assert determine_flags(make_submission(), 0, 0) == []

    def test_high_amount_is_strictly_above_ten_thousand(self, make_submission):
        assert "High amount" not in determine_flags(make_submission(amount_requested="10000"), 0, 0)
        assert "High amount" in determine_flags(make_submission(amount_requested="10000.01"), 0, 0)

    def test_multiple_claims_uses_history_count(self, make_submission):
        assert "Multiple claims" not in determine_flags(make_submission(), 0, 2)
        assert "Multiple claims" in determine_flags(make_submission(), 0, 3)

    def test_high_fraud_risk_above_sixty(self, make_submission):
        assert "High fraud risk" not in determine_flags(make_submission(), 60, 0)
        assert "High fraud risk" in determine_flags(make_submission(), 61, 0)


def test_assessment_is_reproducible(make_submission):
    submission = make_submission(amount_requested="23000", photo_count=None)
    assert assess(submission, 1) == assess(submission, 1)


def test_scores_stay_in_range(make_submission):
    for amount in ("0", "999.99", "12000", "60000", "250000"):
        for photos in (None, 0, 4):
            assessment = assess(make_submission(amount_requested=amount, photo_count=photos))
            assert 0 <= assessment.fraud_score <= 100
            assert 0 <= assessment.confidence_level <= 100
