"""
Tests for ClaimsService: submission, decisions under the per-claim lock,
lookups and reserve reporting.
"""

import threading
from datetime import date
from decimal import Decimal

import pytest

from claimflow.core.config import Settings
from claimflow.core.errors import (
    ClaimBusyError,
    InvalidTransitionError,
    MissingReasonError,
    NotFoundError,
    StorageError,
    UnauthorizedError,
    ValidationError,
)
from claimflow.models.claim import ApprovalAction, ClaimStatus, WorkflowTier
from claimflow.models.roles import ApproverRole
from claimflow.repositories.memory import InMemoryClaimRepository
from claimflow.repositories.sql import SqlAlchemyClaimRepository
from claimflow.services.claims_service import ClaimsService, build_claims_service


class TestSubmission:

    def test_submit_scores_routes_and_stores(self, service, submission_data):
        claim = service.submit_claim(submission_data())

        assert claim.version == 1
        assert claim.fraud_score == 0
        assert claim.workflow_level == WorkflowTier.L1
        assert claim.status == ClaimStatus.PENDING_L1
        assert claim.reserve_amount == Decimal("4200.00")
        assert claim.approval_history == ()
        assert service.get_claim(claim.id) == claim

    def test_scenario_a_routes_to_l3(self, service, submission_data):
        claim = service.submit_claim(submission_data(
            amount_requested=75000,
            photo_count=0,
            description="Car damage",
            incident_date=date(2026, 3, 4),
        ))
        assert claim.status == ClaimStatus.PENDING_L3
        assert claim.fraud_score == 42
        # 75,000 x 1.1 for a medium-risk claim
        assert claim.reserve_amount == Decimal("82500.00")

    def test_submitted_at_defaults_to_clock(self, service, submission_data, clock):
        data = submission_data()
        del data["submitted_at"]
        assert service.submit_claim(data).submitted_at == clock()

    def test_numeric_ids_are_accepted(self, service, submission_data):
        claim = service.submit_claim(submission_data(policy_id=1001, client_id=7))
        assert claim.policy_id == "1001"
        assert claim.client_id == "7"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"amount_requested": "-1"},
            {"policy_id": "  "},
            {"photo_count": -2},
            {"incident_date": date(2026, 3, 10)},
        ],
    )
    def test_invalid_submission(self, service, submission_data, overrides):
        with pytest.raises(ValidationError) as exc_info:
            service.submit_claim(submission_data(**overrides))
        assert exc_info.value.details["errors"]
        assert service.list_claims() == []

    def test_multiple_claims_flag_counts_stored_claims(self, service, submission_data):
        for _ in range(3):
            first = service.submit_claim(submission_data())
            assert "Multiple claims" not in first.assessment.flags

        fourth = service.submit_claim(submission_data())
        assert "Multiple claims" in fourth.assessment.flags

        other_client = service.submit_claim(submission_data(client_id="CL-2"))
        assert "Multiple claims" not in other_client.assessment.flags


class TestDecisions:

    def test_approve_through_service(self, service, submission_data, clock):
        claim = service.submit_claim(submission_data())
        clock.advance(hours=2)

        approved = service.approve_claim(claim.id, "L1_APPROVER", "verified")

        assert approved.status == ClaimStatus.APPROVED
        assert approved.version == 2
        assert approved.processed_at == clock()
        assert approved.approval_history[0].timestamp == clock()
        assert service.get_claim(claim.id) == approved

    def test_escalate_then_deny(self, service, submission_data):
        claim = service.submit_claim(submission_data(amount_requested="20000"))
        assert claim.workflow_level == WorkflowTier.L2

        escalated = service.escalate_claim(claim.id, ApproverRole.L2_APPROVER, "needs senior review")
        denied = service.deny_claim(claim.id, ApproverRole.L3_APPROVER, "inconsistent statements")

        assert escalated.status == ClaimStatus.PENDING_L3
        assert denied.status == ClaimStatus.DENIED
        assert denied.denial_reason == "inconsistent statements"
        assert [r.action for r in denied.approval_history] == [
            ApprovalAction.ESCALATED,
            ApprovalAction.DENIED,
        ]
        assert denied.version == 3

    def test_rejected_decision_leaves_store_untouched(self, service, submission_data):
        claim = service.submit_claim(submission_data(amount_requested="20000"))

        with pytest.raises(UnauthorizedError):
            service.approve_claim(claim.id, ApproverRole.L1_APPROVER, "I think it's fine")
        with pytest.raises(MissingReasonError):
            service.deny_claim(claim.id, ApproverRole.L2_APPROVER, "")

        assert service.get_claim(claim.id) == claim

    def test_unknown_claim(self, service):
        with pytest.raises(NotFoundError):
            service.approve_claim("no-such-claim", ApproverRole.L3_APPROVER, "whatever")
        with pytest.raises(NotFoundError):
            service.get_claim("no-such-claim")

    def test_decide_rejects_unknown_action(self, service, submission_data):
        claim = service.submit_claim(submission_data())
        with pytest.raises(ValidationError):
            service.decide_claim(claim.id, "reopen", ApproverRole.L1_APPROVER, "why")

    def test_scenario_e_concurrent_decisions(self, service, submission_data):
        claim = service.submit_claim(submission_data())
        barrier = threading.Barrier(2)
        results = []

        def decide(action, reason):
            barrier.wait()
            try:
                results.append(service.decide_claim(claim.id, action, ApproverRole.L1_APPROVER, reason))
            except InvalidTransitionError as e:
                results.append(e)

        threads = [
            threading.Thread(target=decide, args=("approve", "verified")),
            threading.Thread(target=decide, args=("deny", "suspicious")),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        successes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, InvalidTransitionError)]
        assert len(successes) == 1
        assert len(failures) == 1

        stored = service.get_claim(claim.id)
        assert len(stored.approval_history) == 1
        assert stored.version == 2
        assert stored == successes[0]

    def test_busy_claim_times_out(self, memory_repository, submission_data, clock):
        service = ClaimsService(memory_repository, lock_timeout=0.05, clock=clock)
        claim = service.submit_claim(submission_data())

        with service.locks.hold(claim.id):
            with pytest.raises(ClaimBusyError):
                service.approve_claim(claim.id, ApproverRole.L1_APPROVER, "verified")

        assert service.get_claim(claim.id).status == ClaimStatus.PENDING_L1
        assert len(service.locks) == 0

    def test_lock_registry_does_not_grow(self, service, submission_data):
        claims = [service.submit_claim(submission_data()) for _ in range(5)]
        for claim in claims:
            service.escalate_claim(claim.id, ApproverRole.L1_APPROVER, "second opinion")
        service.escalate_claim(claims[0].id, ApproverRole.L2_APPROVER, "up")
        with pytest.raises(InvalidTransitionError):
            service.escalate_claim(claims[0].id, ApproverRole.L3_APPROVER, "nowhere to go")
        assert len(service.locks) == 0

    @pytest.mark.parametrize("amount", ["abc", float("inf"), "NaN", "-Infinity", "1e40"])
    def test_malformed_approved_amount(self, service, submission_data, amount):
        claim = service.submit_claim(submission_data())
        with pytest.raises(ValidationError):
            service.approve_claim(claim.id, ApproverRole.L1_APPROVER, "ok", amount_approved=amount)
        assert service.get_claim(claim.id) == claim

    def test_storage_errors_propagate(self, clock, submission_data):

        class BrokenRepository(InMemoryClaimRepository):
            def update(self, claim, expected_version):
                raise StorageError("disk full")

        service = ClaimsService(BrokenRepository(), clock=clock)
        claim = service.submit_claim(submission_data())

        with pytest.raises(StorageError):
            service.approve_claim(claim.id, ApproverRole.L1_APPROVER, "verified")
        assert service.get_claim(claim.id).status == ClaimStatus.PENDING_L1


class TestLookups:

    @pytest.fixture
    def book(self, service, submission_data, clock):
        claims = []
        for policy_id, client_id, amount in [
            ("POL-1", "CL-1", "1000"),
            ("POL-2", "CL-1", "20000"),
            ("POL-3", "CL-2", "3000"),
        ]:
            clock.advance(minutes=1)
            claims.append(service.submit_claim(
                submission_data(policy_id=policy_id, client_id=client_id, amount_requested=amount, submitted_at=clock())
            ))
        return claims

    def test_list_in_submission_order(self, service, book):
        assert [c.id for c in service.list_claims()] == [c.id for c in book]

    def test_filters(self, service, book):
        assert [c.policy_id for c in service.get_claims_by_client("CL-1")] == ["POL-1", "POL-2"]
        assert [c.client_id for c in service.get_claims_by_policy("POL-3")] == ["CL-2"]
        assert [c.id for c in service.list_claims(status="Pending L2")] == [book[1].id]
        assert service.list_claims(predicate=lambda c: c.amount_requested > 2000) == book[1:]

    @pytest.mark.parametrize("status", ["Pending", "approved", "L1"])
    def test_unknown_status_filter(self, service, book, status):
        with pytest.raises(ValidationError):
            service.list_claims(status=status)

    def test_pending_for_role(self, service, book):
        assert [c.id for c in service.pending_for_role("L1_APPROVER")] == [book[0].id, book[2].id]
        assert len(service.pending_for_role(ApproverRole.L2_APPROVER)) == 3

        service.approve_claim(book[0].id, ApproverRole.L1_APPROVER, "ok")
        assert [c.id for c in service.pending_for_role("L1_APPROVER")] == [book[2].id]


class TestReserves:

    def test_snapshot_follows_decisions(self, service, submission_data):
        claim = service.submit_claim(submission_data())
        assert service.get_reserve_snapshot().total_reserve == Decimal("4200.00")

        service.approve_claim(claim.id, ApproverRole.L1_APPROVER, "partial", amount_approved="4000")
        snapshot = service.get_reserve_snapshot()
        assert snapshot.total_reserve == Decimal("200.00")
        assert snapshot.by_status["Approved"] == Decimal("200.00")

    def test_adjustment_ledger(self, service, submission_data, clock):
        claim = service.submit_claim(submission_data())

        first = service.adjust_reserve(claim.id, "increase", "500", "supplement", "adjuster-7")
        clock.advance(minutes=5)
        second = service.adjust_reserve(claim.id, "decrease", "200", "salvage", "adjuster-7")

        assert [a.id for a in service.get_reserve_history(claim.id)] == [second.id, first.id]
        assert service.get_reserve_history("other-claim") == []

        stats = service.get_reserve_statistics()
        assert stats.total_adjustments == 2
        assert stats.net_adjustment == Decimal("300.00")

    def test_adjusting_unknown_claim(self, service):
        with pytest.raises(NotFoundError):
            service.adjust_reserve("missing", "increase", "10", "why", "adjuster-7")


class TestBuildService:

    def test_memory_backend(self):
        service = build_claims_service(Settings(REPOSITORY_BACKEND="memory"))
        assert isinstance(service.repository, InMemoryClaimRepository)

    def test_sql_backend(self):
        service = build_claims_service(Settings(
            REPOSITORY_BACKEND="sql",
            DATABASE_URL="sqlite://",
            CLAIM_LOCK_TIMEOUT_SECONDS=1.5,
        ))
        assert isinstance(service.repository, SqlAlchemyClaimRepository)
        assert service.locks.timeout == 1.5
        assert service.list_claims() == []
