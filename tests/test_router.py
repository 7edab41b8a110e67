"""
Tests for initial tier routing.
"""

from decimal import Decimal

import pytest

from claimflow.models.claim import ClaimStatus, WorkflowTier
from claimflow.services.workflow.router import initial_status, route_initial_tier


@pytest.mark.parametrize(
    "amount, score, expected",
    [
        ("0", 0, WorkflowTier.L1),
        ("9999.99", 30, WorkflowTier.L1),
        ("9999.99", 31, WorkflowTier.L2),
        ("10000", 0, WorkflowTier.L2),
        ("50000", 0, WorkflowTier.L2),
        ("50000.01", 0, WorkflowTier.L3),
        ("100", 60, WorkflowTier.L2),
        ("100", 61, WorkflowTier.L3),
    ],
)
def test_thresholds(amount, score, expected):
    assert route_initial_tier(Decimal(amount), score) == expected


def test_accepts_plain_numbers():
    assert route_initial_tier(75000, 0) == WorkflowTier.L3
    assert route_initial_tier(12500.5, 0) == WorkflowTier.L2


def test_monotonic_in_amount_and_score():
    amounts = [Decimal(a) for a in ("0", "5000", "9999.99", "10000", "30000", "50000", "50000.01", "90000")]
    scores = [0, 15, 30, 31, 45, 60, 61, 100]

    for score in scores:
        ranks = [route_initial_tier(a, score).rank for a in amounts]
        assert ranks == sorted(ranks)

    for amount in amounts:
        ranks = [route_initial_tier(amount, s).rank for s in scores]
        assert ranks == sorted(ranks)


def test_initial_status_matches_tier():
    assert initial_status(WorkflowTier.L1) == ClaimStatus.PENDING_L1
    assert initial_status(WorkflowTier.L2) == ClaimStatus.PENDING_L2
    assert initial_status(WorkflowTier.L3) == ClaimStatus.PENDING_L3
