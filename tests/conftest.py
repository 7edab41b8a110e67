"""
Shared fixtures: a controllable clock, submission / claim builders and
both repository backends.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from claimflow.core.database import build_engine, build_session_factory, init_db
from claimflow.models.claim import ClaimStatus, WorkflowTier
from claimflow.repositories.memory import InMemoryClaimRepository
from claimflow.repositories.sql import SqlAlchemyClaimRepository
from claimflow.schemas.claim import Claim, ClaimSubmission
from claimflow.services.claims_service import ClaimsService
from claimflow.services.reserves.calculator import calculate_claim_reserve
from claimflow.services.risk.scoring import assess

# Wednesday
NOW = datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to"""

    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def _submission_data(**overrides):
    data = {
        "policy_id": "POL-100",
        "client_id": "CL-1",
        "incident_date": date(2026, 3, 2),  # Monday
        "description": "Rear-end collision at a traffic light on Main St",
        "amount_requested": "4200.00",
        "photo_count": 3,
        "prior_claims": 0,
        "submitted_at": NOW,
        "policy_start_date": date(2021, 6, 1),
    }
    data.update(overrides)
    return data


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def submission_data():
    """Raw intake mapping for a clean, low-risk claim"""
    return _submission_data


@pytest.fixture
def make_submission():
    def _make(**overrides) -> ClaimSubmission:
        return ClaimSubmission(**_submission_data(**overrides))
    return _make


@pytest.fixture
def make_claim(make_submission):
    """
    Build a pending claim at the given tier without going through routing,
    so state machine tests can start anywhere.
    """
    def _make(tier: WorkflowTier = WorkflowTier.L1, claim_id: str = "claim-1", **overrides) -> Claim:
        submission = make_submission(**overrides)
        assessment = assess(submission)
        status = ClaimStatus.pending_for(tier)
        return Claim(
            id=claim_id,
            submission=submission,
            assessment=assessment,
            workflow_level=tier,
            status=status,
            reserve_amount=calculate_claim_reserve(
                status, submission.amount_requested, 0, assessment.fraud_score
            ),
            version=1,
        )
    return _make


@pytest.fixture
def memory_repository():
    return InMemoryClaimRepository()


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", echo=False)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_repository(engine):
    return SqlAlchemyClaimRepository(build_session_factory(engine))


@pytest.fixture
def service(memory_repository, clock):
    return ClaimsService(memory_repository, lock_timeout=2.0, clock=clock)


@pytest.fixture
def sql_service(sql_repository, clock):
    return ClaimsService(sql_repository, lock_timeout=2.0, clock=clock)
