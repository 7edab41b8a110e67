"""
Claim repository interface.

The engine never holds claims in module state; it reads and writes them
through a repository injected by the caller. Implementations must:

- store whole claims atomically (a reader never sees half a transition);
- reject updates whose expected_version is not the stored version;
- only ever append to a claim's approval history.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from claimflow.core.errors import StorageError
from claimflow.models.claim import ClaimStatus
from claimflow.schemas.claim import Claim
from claimflow.schemas.reserve import ReserveAdjustment

ClaimPredicate = Callable[[Claim], bool]


class ClaimRepository(ABC):

    @abstractmethod
    def add(self, claim: Claim) -> Claim:
        """Store a new claim; returns it with its first version number"""

    @abstractmethod
    def get(self, claim_id: str) -> Claim:
        """Fetch a claim or raise NotFoundError"""

    @abstractmethod
    def list_claims(
        self,
        predicate: Optional[ClaimPredicate] = None,
        client_id: Optional[str] = None,
        policy_id: Optional[str] = None,
        status: Optional[ClaimStatus] = None,
    ) -> List[Claim]:
        """Claims matching every given filter, oldest submission first"""

    @abstractmethod
    def update(self, claim: Claim, expected_version: int) -> Claim:
        """
        Replace a stored claim if its version still equals expected_version.
        Raises StaleClaimError otherwise; returns the claim with its new version.
        """

    @abstractmethod
    def count_by_client(self, client_id: str) -> int:
        """Claims already on record for a client"""

    @abstractmethod
    def add_adjustment(self, adjustment: ReserveAdjustment) -> ReserveAdjustment:
        """Append to the reserve adjustment ledger"""

    @abstractmethod
    def list_adjustments(self, claim_id: Optional[str] = None) -> List[ReserveAdjustment]:
        """Adjustment ledger, newest first"""


def check_history_appended(
    claim_id: str,
    stored: tuple,
    incoming: tuple,
) -> tuple:
    """
    Ensure the incoming approval history extends the stored one.
    Returns the new entries to persist.
    """
    stored = tuple(stored)
    incoming = tuple(incoming)
    prefix = [record.model_dump() for record in incoming[: len(stored)]]
    if len(incoming) < len(stored) or prefix != [record.model_dump() for record in stored]:
        raise StorageError(
            f"Refusing to rewrite approval history of claim {claim_id}",
            {"claim_id": claim_id, "stored_entries": len(stored), "incoming_entries": len(incoming)},
        )
    return incoming[len(stored):]


def matches(
    claim: Claim,
    predicate: Optional[ClaimPredicate] = None,
    client_id: Optional[str] = None,
    policy_id: Optional[str] = None,
    status: Optional[ClaimStatus] = None,
) -> bool:
    if client_id is not None and claim.client_id != str(client_id):
        return False
    if policy_id is not None and claim.policy_id != str(policy_id):
        return False
    if status is not None and claim.status != ClaimStatus(status):
        return False
    return predicate is None or bool(predicate(claim))


__all__ = ["ClaimRepository", "ClaimPredicate", "check_history_appended", "matches"]
