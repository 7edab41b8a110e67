"""
Reserve adjustment model - manual changes requested against a claim's reserve.
Kept as an audit ledger next to the derived reserve.
"""

from sqlalchemy import Column, String, Numeric, ForeignKey, Text, DateTime, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum

from claimflow.core.database import Base
from claimflow.models.base import UUIDMixin


class ReserveAdjustmentType(str, enum.Enum):
    INCREASE = "increase"
    DECREASE = "decrease"


class ReserveAdjustmentRow(Base, UUIDMixin):
    """
    One manual reserve adjustment.
    previous_reserve / new_reserve capture the values at the time of the change.
    """
    __tablename__ = "reserve_adjustments"

    claim_id = Column(
        String(36),
        ForeignKey("claims.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    adjustment_type = Column(SQLEnum(ReserveAdjustmentType), nullable=False)
    adjustment_amount = Column(Numeric(14, 2), nullable=False)
    previous_reserve = Column(Numeric(14, 2), nullable=False)
    new_reserve = Column(Numeric(14, 2), nullable=False)

    reason = Column(Text, nullable=False)
    adjusted_by = Column(String(255), nullable=False)
    adjusted_at = Column(DateTime(timezone=True), nullable=False, index=True)

    claim = relationship("ClaimRow", back_populates="reserve_adjustments")

    def __repr__(self) -> str:
        sign = "+" if self.adjustment_type == ReserveAdjustmentType.INCREASE else "-"
        return f"<ReserveAdjustment {sign}${self.adjustment_amount}>"
