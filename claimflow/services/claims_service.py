"""
Claims workflow service - the entry point used by API / UI layers.

Submits claims (score, route, store), applies approver decisions under a
per-claim lock, and serves claim lookups and reserve reporting.
"""

import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Union

from claimflow.core.config import Settings, settings as default_settings
from claimflow.core.errors import ClaimBusyError, ClaimsEngineError, StorageError
from claimflow.models.claim import ClaimStatus, DecisionAction
from claimflow.models.reserve_adjustment import ReserveAdjustmentType
from claimflow.models.roles import ApproverRole, can_act_on
from claimflow.repositories.base import ClaimPredicate, ClaimRepository
from claimflow.schemas.base import utcnow
from claimflow.schemas.claim import Claim, ClaimSubmission
from claimflow.schemas.reserve import ReserveAdjustment, ReserveSnapshot, ReserveStatistics
from claimflow.services.reserves.calculator import (
    adjust_reserve,
    adjustment_statistics,
    build_reserve_snapshot,
    calculate_claim_reserve,
)
from claimflow.services.risk.scoring import assess
from claimflow.services.workflow.router import initial_status, route_initial_tier
from claimflow.services.workflow.state_machine import apply_decision, parse_action, parse_role, parse_status

logger = logging.getLogger(__name__)

Amount = Union[Decimal, int, float, str]


class ClaimLockRegistry:
    """
    One lock per claim id, so decisions on the same claim run one at a time
    while unrelated claims proceed in parallel. An entry lives only while some
    caller holds or waits for its lock, so the registry does not grow with
    the claim book.
    """

    def __init__(self, timeout: float):
        self.timeout = timeout
        self._locks: Dict[str, threading.Lock] = {}
        self._waiters: Dict[str, int] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, claim_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(claim_id)
            if lock is None:
                lock = self._locks[claim_id] = threading.Lock()
            self._waiters[claim_id] = self._waiters.get(claim_id, 0) + 1
            return lock

    def _checkin(self, claim_id: str) -> None:
        with self._guard:
            self._waiters[claim_id] -= 1
            if not self._waiters[claim_id]:
                del self._waiters[claim_id]
                del self._locks[claim_id]

    @contextmanager
    def hold(self, claim_id: str) -> Iterator[None]:
        lock = self._checkout(claim_id)
        try:
            if not lock.acquire(timeout=self.timeout):
                raise ClaimBusyError(
                    f"Claim {claim_id} is busy; try again",
                    {"claim_id": claim_id, "timeout_seconds": self.timeout},
                )
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(claim_id)


class ClaimsService:
    """
    Claim submission, approval workflow and reserve reporting.

    Args:
        repository: Where claims are stored
        lock_timeout: Seconds to wait for a busy claim before giving up
        clock: Source of "now" (injected in tests)
    """

    def __init__(
        self,
        repository: ClaimRepository,
        lock_timeout: Optional[float] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.clock = clock
        timeout = lock_timeout if lock_timeout is not None else default_settings.CLAIM_LOCK_TIMEOUT_SECONDS
        self.locks = ClaimLockRegistry(timeout)

    # ========================================================================
    # SUBMISSION
    # ========================================================================

    def submit_claim(
        self,
        submission: Union[ClaimSubmission, Mapping[str, Any]],
        history_count: Optional[int] = None,
    ) -> Claim:
        """
        Score a new claim, route it to its first tier and store it.

        Args:
            submission: Validated submission or raw intake mapping
            history_count: Claims already on record for the client;
                counted from the repository when omitted

        Returns:
            The stored claim
        """
        if not isinstance(submission, ClaimSubmission):
            data = dict(submission)
            data.setdefault("submitted_at", self.clock())
            submission = ClaimSubmission.parse(data)

        if history_count is None:
            history_count = self.repository.count_by_client(submission.client_id)

        assessment = assess(submission, history_count)
        tier = route_initial_tier(submission.amount_requested, assessment.fraud_score)
        status = initial_status(tier)

        claim = Claim(
            id=str(uuid.uuid4()),
            submission=submission,
            assessment=assessment,
            workflow_level=tier,
            status=status,
            reserve_amount=calculate_claim_reserve(
                status, submission.amount_requested, 0, assessment.fraud_score
            ),
        )

        stored = self._store(lambda: self.repository.add(claim), claim.id)

        logger.info(
            f"Claim {stored.id} submitted: policy={stored.policy_id} "
            f"amount={stored.amount_requested} fraud_score={stored.fraud_score} "
            f"tier={stored.workflow_level.value}",
            extra={"audit": {
                "event": "claim_submitted",
                "claim_id": stored.id,
                "tier": stored.workflow_level.value,
                "fraud_score": stored.fraud_score,
            }},
        )
        return stored

    # ========================================================================
    # DECISIONS
    # ========================================================================

    def decide_claim(
        self,
        claim_id: str,
        action: Union[DecisionAction, str],
        role: Union[ApproverRole, str],
        reason: Optional[str],
        amount_approved: Optional[Amount] = None,
    ) -> Claim:
        """
        Apply an approver's decision (approve / deny / escalate).
        The whole read-decide-write runs under the claim's lock; a failed
        decision leaves the stored claim untouched.
        """
        action = parse_action(action)
        role = parse_role(role)
        claim_id = str(claim_id)

        with self.locks.hold(claim_id):
            claim = self.repository.get(claim_id)
            try:
                updated = apply_decision(
                    claim, action, role, reason,
                    amount_approved=amount_approved,
                    now=self.clock(),
                )
            except ClaimsEngineError as e:
                logger.warning(f"Decision rejected on claim {claim_id}: {e}")
                raise

            stored = self._store(
                lambda: self.repository.update(updated, expected_version=claim.version),
                claim_id,
            )

        logger.info(
            f"Claim {claim_id}: {action.value} by {role.value} "
            f"at {claim.workflow_level.value} -> {stored.status.value}",
            extra={"audit": {
                "event": "claim_decided",
                "claim_id": claim_id,
                "action": action.value,
                "role": role.value,
                "tier": claim.workflow_level.value,
                "status": stored.status.value,
            }},
        )
        return stored

    def approve_claim(self, claim_id: str, role, reason: Optional[str], amount_approved: Optional[Amount] = None) -> Claim:
        return self.decide_claim(claim_id, DecisionAction.APPROVE, role, reason, amount_approved)

    def deny_claim(self, claim_id: str, role, reason: Optional[str]) -> Claim:
        return self.decide_claim(claim_id, DecisionAction.DENY, role, reason)

    def escalate_claim(self, claim_id: str, role, reason: Optional[str]) -> Claim:
        return self.decide_claim(claim_id, DecisionAction.ESCALATE, role, reason)

    # ========================================================================
    # LOOKUPS
    # ========================================================================

    def get_claim(self, claim_id: str) -> Claim:
        return self.repository.get(str(claim_id))

    def list_claims(
        self,
        predicate: Optional[ClaimPredicate] = None,
        client_id: Optional[str] = None,
        policy_id: Optional[str] = None,
        status: Optional[Union[ClaimStatus, str]] = None,
    ) -> List[Claim]:
        return self.repository.list_claims(
            predicate=predicate,
            client_id=client_id,
            policy_id=policy_id,
            status=parse_status(status) if status is not None else None,
        )

    def get_claims_by_client(self, client_id: str) -> List[Claim]:
        return self.list_claims(client_id=client_id)

    def get_claims_by_policy(self, policy_id: str) -> List[Claim]:
        return self.list_claims(policy_id=policy_id)

    def pending_for_role(self, role: Union[ApproverRole, str]) -> List[Claim]:
        """Pending claims this role is allowed to decide"""
        role = parse_role(role)
        return self.list_claims(
            predicate=lambda c: c.status.is_pending and can_act_on(role, c.workflow_level)
        )

    # ========================================================================
    # RESERVES
    # ========================================================================

    def get_reserve_snapshot(self, as_of: Optional[datetime] = None) -> ReserveSnapshot:
        return build_reserve_snapshot(self.repository.list_claims(), as_of=as_of)

    def adjust_reserve(
        self,
        claim_id: str,
        adjustment_type: Union[ReserveAdjustmentType, str],
        amount: Amount,
        reason: str,
        adjusted_by: str,
    ) -> ReserveAdjustment:
        """Record a manual reserve adjustment against a claim"""
        claim = self.repository.get(str(claim_id))
        adjustment = adjust_reserve(
            claim, adjustment_type, amount, reason, adjusted_by, now=self.clock()
        )
        stored = self._store(lambda: self.repository.add_adjustment(adjustment), claim.id)

        logger.info(
            f"Reserve {stored.adjustment_type.value} on claim {claim.id}: "
            f"{stored.previous_reserve} -> {stored.new_reserve} by {stored.adjusted_by}"
        )
        return stored

    def get_reserve_history(self, claim_id: Optional[str] = None) -> List[ReserveAdjustment]:
        return self.repository.list_adjustments(claim_id)

    def get_reserve_statistics(self) -> ReserveStatistics:
        return adjustment_statistics(self.repository.list_adjustments())

    # ========================================================================

    @staticmethod
    def _store(operation: Callable[[], Any], claim_id: str) -> Any:
        try:
            return operation()
        except StorageError as e:
            logger.error(f"Storage error on claim {claim_id}: {e}")
            raise


def build_claims_service(settings: Optional[Settings] = None) -> ClaimsService:
    """
    Wire a ClaimsService from settings: in-memory store, or SQL tables
    created on first use.
    """
    from claimflow.core.database import build_engine, build_session_factory, init_db
    from claimflow.repositories.memory import InMemoryClaimRepository
    from claimflow.repositories.sql import SqlAlchemyClaimRepository

    settings = settings or default_settings

    if settings.REPOSITORY_BACKEND == "sql":
        engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
        init_db(engine)
        repository: ClaimRepository = SqlAlchemyClaimRepository(build_session_factory(engine))
    else:
        repository = InMemoryClaimRepository()

    logger.info(f"Claims service using {settings.REPOSITORY_BACKEND} repository")
    return ClaimsService(repository, lock_timeout=settings.CLAIM_LOCK_TIMEOUT_SECONDS)
