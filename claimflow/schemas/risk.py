"""
Risk assessment schemas - the scored factors and the combined verdict.
"""

import enum
from typing import Optional, Tuple

from pydantic import Field, computed_field

from claimflow.schemas.base import FrozenModel


class RiskDimension(str, enum.Enum):
    """The four heuristic risk dimensions"""
    AMOUNT = "amount"
    TEMPORAL = "temporal"
    DATA_COMPLETENESS = "data_completeness"
    HISTORICAL = "historical"


class RiskFactor(FrozenModel):
    """
    One scored risk dimension.

    Attributes:
        dimension: Which risk dimension was scored
        score: Raw score, 0-100
        weight: Weight in percent used when combining factors
        reasons: Human-readable rules that fired, for audit display
    """
    dimension: RiskDimension
    score: int = Field(..., ge=0, le=100)
    weight: int = Field(..., ge=0, le=100)
    reasons: Tuple[str, ...] = ()

    @computed_field
    @property
    def contribution(self) -> float:
        """Points this factor adds to the fraud score"""
        return self.score * self.weight / 100


class RiskAssessment(FrozenModel):
    """
    Combined risk verdict for a claim, computed once at submission.
    """
    fraud_score: int = Field(..., ge=0, le=100)
    confidence_level: int = Field(..., ge=0, le=100)
    factors: Tuple[RiskFactor, ...]
    flags: Tuple[str, ...] = ()

    def factor(self, dimension: RiskDimension) -> Optional[RiskFactor]:
        for item in self.factors:
            if item.dimension == dimension:
                return item
        return None
