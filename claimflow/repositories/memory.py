"""
In-memory claim repository.
Used in tests and for single-process deployments seeded from sample data.
"""

import logging
import threading
from typing import Dict, List, Optional

from claimflow.core.errors import NotFoundError, StaleClaimError, ValidationError
from claimflow.models.claim import ClaimStatus
from claimflow.repositories.base import ClaimPredicate, ClaimRepository, check_history_appended, matches
from claimflow.schemas.claim import Claim
from claimflow.schemas.reserve import ReserveAdjustment

logger = logging.getLogger(__name__)


class InMemoryClaimRepository(ClaimRepository):
    """
    Stores immutable Claim objects keyed by id.
    The internal lock only guards the dictionaries for the length of a
    single read or write; it is not a workflow lock.
    """

    def __init__(self):
        self._claims: Dict[str, Claim] = {}
        self._adjustments: List[ReserveAdjustment] = []
        self._lock = threading.Lock()

    def add(self, claim: Claim) -> Claim:
        stored = claim.model_copy(update={"version": 1})
        with self._lock:
            if claim.id in self._claims:
                raise ValidationError(f"Claim {claim.id} already exists", {"claim_id": claim.id})
            self._claims[claim.id] = stored
        return stored

    def get(self, claim_id: str) -> Claim:
        with self._lock:
            claim = self._claims.get(str(claim_id))
        if claim is None:
            raise NotFoundError.for_claim(str(claim_id))
        return claim

    def list_claims(
        self,
        predicate: Optional[ClaimPredicate] = None,
        client_id: Optional[str] = None,
        policy_id: Optional[str] = None,
        status: Optional[ClaimStatus] = None,
    ) -> List[Claim]:
        with self._lock:
            claims = list(self._claims.values())
        selected = [c for c in claims if matches(c, predicate, client_id, policy_id, status)]
        return sorted(selected, key=lambda c: c.submitted_at)

    def update(self, claim: Claim, expected_version: int) -> Claim:
        with self._lock:
            current = self._claims.get(claim.id)
            if current is None:
                raise NotFoundError.for_claim(claim.id)
            if current.version != expected_version:
                raise StaleClaimError(
                    f"Claim {claim.id} was modified concurrently "
                    f"(expected version {expected_version}, found {current.version})",
                    {"claim_id": claim.id},
                )
            check_history_appended(claim.id, current.approval_history, claim.approval_history)

            stored = claim.model_copy(update={"version": expected_version + 1})
            self._claims[claim.id] = stored

        logger.debug(f"Stored claim {claim.id} at version {stored.version}")
        return stored

    def count_by_client(self, client_id: str) -> int:
        with self._lock:
            return sum(1 for c in self._claims.values() if c.client_id == str(client_id))

    def add_adjustment(self, adjustment: ReserveAdjustment) -> ReserveAdjustment:
        with self._lock:
            if adjustment.claim_id not in self._claims:
                raise NotFoundError.for_claim(adjustment.claim_id)
            self._adjustments.append(adjustment)
        return adjustment

    def list_adjustments(self, claim_id: Optional[str] = None) -> List[ReserveAdjustment]:
        with self._lock:
            adjustments = list(self._adjustments)
        if claim_id is not None:
            adjustments = [a for a in adjustments if a.claim_id == str(claim_id)]
        return sorted(adjustments, key=lambda a: a.adjusted_at, reverse=True)
