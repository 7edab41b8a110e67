"""
SQLAlchemy claim repository.

Claims live in `claims`, their audit trail in `approval_records` and the
reserve ledger in `reserve_adjustments`. The claims table carries a version
column, so two processes deciding the same claim cannot both win.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from claimflow.core.errors import NotFoundError, StaleClaimError, StorageError
from claimflow.models.claim import ApprovalRow, ClaimRow, ClaimStatus
from claimflow.models.reserve_adjustment import ReserveAdjustmentRow
from claimflow.repositories.base import ClaimPredicate, ClaimRepository, check_history_appended, matches
from claimflow.schemas.claim import ApprovalRecord, Claim, ClaimSubmission
from claimflow.schemas.reserve import ReserveAdjustment
from claimflow.schemas.risk import RiskAssessment, RiskFactor

logger = logging.getLogger(__name__)


class SqlAlchemyClaimRepository(ClaimRepository):
    """
    Repository over a SQLAlchemy session factory.
    Every call runs in its own short transaction.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            with session.begin():
                yield session
        except StaleDataError as e:
            logger.warning(f"Optimistic concurrency conflict: {e}")
            raise StaleClaimError("Claim was modified concurrently", original_exception=e) from e
        except SQLAlchemyError as e:
            logger.error(f"Claim storage failure: {e}")
            raise StorageError(f"Claim storage failure: {e}", original_exception=e) from e
        finally:
            session.close()

    # Mapping between rows and domain objects

    @staticmethod
    def _to_domain(row: ClaimRow) -> Claim:
        submission = ClaimSubmission(
            policy_id=row.policy_id,
            client_id=row.client_id,
            incident_date=row.incident_date,
            description=row.description,
            amount_requested=row.amount_requested,
            photo_count=row.photo_count,
            prior_claims=row.prior_claims,
            submitted_at=row.submitted_at,
            policy_start_date=row.policy_start_date,
        )
        assessment = RiskAssessment(
            fraud_score=row.fraud_score,
            confidence_level=row.confidence_level,
            factors=tuple(RiskFactor.model_validate(f) for f in row.risk_factors),
            flags=tuple(row.fraud_flags or ()),
        )
        history = tuple(
            ApprovalRecord(
                action=entry.action,
                actor_role=entry.actor_role,
                tier=entry.tier,
                reason=entry.reason,
                timestamp=entry.timestamp,
            )
            for entry in row.approval_history
        )
        return Claim(
            id=row.id,
            submission=submission,
            assessment=assessment,
            workflow_level=row.workflow_level,
            status=row.status,
            amount_approved=row.amount_approved,
            reserve_amount=row.reserve_amount,
            approval_history=history,
            denial_reason=row.denial_reason,
            processed_at=row.processed_at,
            version=row.version,
        )

    @staticmethod
    def _approval_row(claim_id: str, sequence_number: int, record: ApprovalRecord) -> ApprovalRow:
        return ApprovalRow(
            claim_id=claim_id,
            sequence_number=sequence_number,
            action=record.action,
            actor_role=record.actor_role.value,
            tier=record.tier,
            reason=record.reason,
            timestamp=record.timestamp,
        )

    @staticmethod
    def _apply_state(row: ClaimRow, claim: Claim) -> None:
        """Copy the mutable workflow fields; submission and assessment never change"""
        row.workflow_level = claim.workflow_level
        row.status = claim.status
        row.amount_approved = claim.amount_approved
        row.reserve_amount = claim.reserve_amount
        row.denial_reason = claim.denial_reason
        row.processed_at = claim.processed_at

    @staticmethod
    def _adjustment_to_domain(row: ReserveAdjustmentRow) -> ReserveAdjustment:
        return ReserveAdjustment(
            id=row.id,
            claim_id=row.claim_id,
            adjustment_type=row.adjustment_type,
            adjustment_amount=row.adjustment_amount,
            previous_reserve=row.previous_reserve,
            new_reserve=row.new_reserve,
            reason=row.reason,
            adjusted_by=row.adjusted_by,
            adjusted_at=row.adjusted_at,
        )

    @staticmethod
    def _load(session: Session, claim_id: str) -> ClaimRow:
        row = session.get(
            ClaimRow,
            str(claim_id),
            options=[selectinload(ClaimRow.approval_history)],
        )
        if row is None:
            raise NotFoundError.for_claim(str(claim_id))
        return row

    # Repository API

    def add(self, claim: Claim) -> Claim:
        submission = claim.submission
        with self._transaction() as session:
            row = ClaimRow(
                id=claim.id,
                policy_id=submission.policy_id,
                client_id=submission.client_id,
                incident_date=submission.incident_date,
                description=submission.description,
                amount_requested=submission.amount_requested,
                photo_count=submission.photo_count,
                prior_claims=submission.prior_claims,
                policy_start_date=submission.policy_start_date,
                submitted_at=submission.submitted_at,
                fraud_score=claim.assessment.fraud_score,
                confidence_level=claim.assessment.confidence_level,
                risk_factors=[
                    f.model_dump(mode="json", exclude={"contribution"})
                    for f in claim.assessment.factors
                ],
                fraud_flags=list(claim.assessment.flags),
            )
            self._apply_state(row, claim)
            row.approval_history = [
                self._approval_row(claim.id, index, record)
                for index, record in enumerate(claim.approval_history)
            ]
            session.add(row)
            session.flush()
            stored = self._to_domain(row)

        logger.debug(f"Inserted claim {stored.id}")
        return stored

    def get(self, claim_id: str) -> Claim:
        with self._transaction() as session:
            return self._to_domain(self._load(session, claim_id))

    def list_claims(
        self,
        predicate: Optional[ClaimPredicate] = None,
        client_id: Optional[str] = None,
        policy_id: Optional[str] = None,
        status: Optional[ClaimStatus] = None,
    ) -> List[Claim]:
        query = select(ClaimRow).options(selectinload(ClaimRow.approval_history))
        if client_id is not None:
            query = query.where(ClaimRow.client_id == str(client_id))
        if policy_id is not None:
            query = query.where(ClaimRow.policy_id == str(policy_id))
        if status is not None:
            query = query.where(ClaimRow.status == ClaimStatus(status))
        query = query.order_by(ClaimRow.submitted_at)

        with self._transaction() as session:
            claims = [self._to_domain(row) for row in session.scalars(query)]

        return [c for c in claims if matches(c, predicate)]

    def update(self, claim: Claim, expected_version: int) -> Claim:
        with self._transaction() as session:
            row = self._load(session, claim.id)
            if row.version != expected_version:
                raise StaleClaimError(
                    f"Claim {claim.id} was modified concurrently "
                    f"(expected version {expected_version}, found {row.version})",
                    {"claim_id": claim.id},
                )

            stored_history = self._to_domain(row).approval_history
            new_entries = check_history_appended(claim.id, stored_history, claim.approval_history)

            self._apply_state(row, claim)
            for offset, record in enumerate(new_entries):
                row.approval_history.append(
                    self._approval_row(claim.id, len(stored_history) + offset, record)
                )

            session.flush()
            stored = self._to_domain(row)

        logger.debug(f"Stored claim {claim.id} at version {stored.version}")
        return stored

    def count_by_client(self, client_id: str) -> int:
        query = select(func.count()).select_from(ClaimRow).where(ClaimRow.client_id == str(client_id))
        with self._transaction() as session:
            return session.scalar(query) or 0

    def add_adjustment(self, adjustment: ReserveAdjustment) -> ReserveAdjustment:
        with self._transaction() as session:
            if session.get(ClaimRow, adjustment.claim_id) is None:
                raise NotFoundError.for_claim(adjustment.claim_id)
            session.add(ReserveAdjustmentRow(
                id=adjustment.id,
                claim_id=adjustment.claim_id,
                adjustment_type=adjustment.adjustment_type,
                adjustment_amount=adjustment.adjustment_amount,
                previous_reserve=adjustment.previous_reserve,
                new_reserve=adjustment.new_reserve,
                reason=adjustment.reason,
                adjusted_by=adjustment.adjusted_by,
                adjusted_at=adjustment.adjusted_at,
            ))
        return adjustment

    def list_adjustments(self, claim_id: Optional[str] = None) -> List[ReserveAdjustment]:
        query = select(ReserveAdjustmentRow).order_by(ReserveAdjustmentRow.adjusted_at.desc())
        if claim_id is not None:
            query = query.where(ReserveAdjustmentRow.claim_id == str(claim_id))
        with self._transaction() as session:
            return [self._adjustment_to_domain(row) for row in session.scalars(query)]
