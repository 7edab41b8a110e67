"""
Claim storage behind a small repository interface.
"""

from claimflow.repositories.base import ClaimRepository, ClaimPredicate
from claimflow.repositories.memory import InMemoryClaimRepository
from claimflow.repositories.sql import SqlAlchemyClaimRepository

__all__ = [
    "ClaimRepository",
    "ClaimPredicate",
    "InMemoryClaimRepository",
    "SqlAlchemyClaimRepository",
]
