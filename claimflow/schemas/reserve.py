"""
Reserve schemas - the derived book-level snapshot and the manual
adjustment ledger.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict

from pydantic import Field, field_validator

from claimflow.models.reserve_adjustment import ReserveAdjustmentType
from claimflow.schemas.base import FrozenModel, ZERO, ensure_aware, to_money


class ReserveSnapshot(FrozenModel):
    """
    Outstanding liability across the claim book at a point in time.
    Always derived from the claims, never stored as authoritative state.

    Attributes:
        total_reserve: Sum of every claim's reserve
        by_status: Reserve per claim status (every status present)
        by_risk: Reserve per risk tier: high / medium / low
        by_policy: Reserve per policy id
        claims_count: Number of claims included
        average_reserve: total_reserve / claims_count (0 for an empty book)
        as_of: When the snapshot was taken
    """
    total_reserve: Decimal = ZERO
    by_status: Dict[str, Decimal] = Field(default_factory=dict)
    by_risk: Dict[str, Decimal] = Field(default_factory=dict)
    by_policy: Dict[str, Decimal] = Field(default_factory=dict)
    claims_count: int = 0
    average_reserve: Decimal = ZERO
    as_of: datetime

    @property
    def high_risk_reserve(self) -> Decimal:
        return self.by_risk.get("high", ZERO)

    @property
    def medium_risk_reserve(self) -> Decimal:
        return self.by_risk.get("medium", ZERO)

    @property
    def low_risk_reserve(self) -> Decimal:
        return self.by_risk.get("low", ZERO)


class ReserveAdjustment(FrozenModel):
    """
    A manual change recorded against a claim's reserve.
    new_reserve never drops below zero.
    """
    id: str
    claim_id: str
    adjustment_type: ReserveAdjustmentType
    adjustment_amount: Decimal = Field(..., gt=0)
    previous_reserve: Decimal
    new_reserve: Decimal = Field(..., ge=0)
    reason: str = Field(..., min_length=1)
    adjusted_by: str = Field(..., min_length=1)
    adjusted_at: datetime

    @field_validator("adjustment_amount", "previous_reserve", "new_reserve")
    @classmethod
    def quantize_money(cls, v: Decimal) -> Decimal:
        return to_money(v)

    @field_validator("adjusted_at")
    @classmethod
    def aware_timestamp(cls, v: datetime) -> datetime:
        return ensure_aware(v)


class ReserveStatistics(FrozenModel):
    """Totals over the adjustment ledger"""
    total_adjustments: int = 0
    increases: int = 0
    decreases: int = 0
    total_increase_amount: Decimal = ZERO
    total_decrease_amount: Decimal = ZERO
    net_adjustment: Decimal = ZERO
