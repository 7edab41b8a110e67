"""
Workflow router - picks the approval tier a new claim starts at.
"""

from decimal import Decimal
from typing import Union

from claimflow.models.claim import ClaimStatus, WorkflowTier

L3_AMOUNT = Decimal("50000")
L2_AMOUNT = Decimal("10000")
L3_FRAUD_SCORE = 60
L2_FRAUD_SCORE = 30


def route_initial_tier(amount: Union[Decimal, int, float], fraud_score: int) -> WorkflowTier:
    """
    High amount or high risk goes to L3, medium to L2, the rest to L1.
    Amount and risk only ever push a claim up, never down.
    """
    amount = Decimal(str(amount))

    if amount > L3_AMOUNT or fraud_score > L3_FRAUD_SCORE:
        return WorkflowTier.L3
    if amount >= L2_AMOUNT or fraud_score > L2_FRAUD_SCORE:
        return WorkflowTier.L2
    return WorkflowTier.L1


def initial_status(tier: WorkflowTier) -> ClaimStatus:
    return ClaimStatus.pending_for(tier)
