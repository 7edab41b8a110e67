"""
Shared pydantic configuration and money helpers for domain schemas.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict

from claimflow.core.errors import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Union[Decimal, int, float, str]) -> Decimal:
    """Quantize to cents, rounding half up like the finance ledger does"""
    if isinstance(value, float):
        value = repr(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(
    value: Union[Decimal, int, float, str],
    field: str,
    details: Optional[Dict[str, Any]] = None,
) -> Decimal:
    """Money from caller input; anything that is not a finite number is a ValidationError"""
    details = dict(details or {}, **{field: str(value)})
    try:
        amount = Decimal(repr(value) if isinstance(value, float) else value)
        if amount.is_finite():
            return to_money(amount)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} is not a valid amount: {value!r}", details) from None
    raise ValidationError(f"{field} must be a finite amount: {value!r}", details)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Normalize to UTC; naive timestamps are taken to be UTC already"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class FrozenModel(BaseModel):
    """Immutable domain model: values are replaced, never edited in place"""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        use_enum_values=False,
        str_strip_whitespace=False,
    )

    def evolve(self, **changes: Any):
        """Copy with changes applied, re-running validation"""
        data = dict(self)
        data.update(changes)
        return type(self).model_validate(data)
