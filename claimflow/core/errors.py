"""
Error taxonomy for the claims workflow engine.

Every error raised by the engine is recoverable from the caller's side:
retry with corrected input, a different approver, or after a storage
hiccup. None of them leave a claim partially mutated.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorType(str, Enum):
    """Stable error codes surfaced to API / UI layers"""
    VALIDATION = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    MISSING_REASON = "MISSING_REASON"
    CLAIM_BUSY = "CLAIM_BUSY"
    STORAGE = "STORAGE_ERROR"
    STALE_CLAIM = "STALE_CLAIM"


class ClaimsEngineError(Exception):
    """
    Base exception for all engine errors.

    Attributes:
        error_type: Code from ErrorType
        message: Human-readable message
        details: Extra context (claim id, tier, role ...)
        recoverable: Whether the caller can retry
    """

    error_type: ErrorType = ErrorType.VALIDATION
    recoverable: bool = True

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.error_type.value}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for logging or API responses"""
        return {
            "error_type": self.error_type.value,
            "message": self.message,
            "recoverable": self.recoverable,
            "details": self.details,
        }


class ValidationError(ClaimsEngineError):
    """Malformed or missing submission / decision input"""
    error_type = ErrorType.VALIDATION


class NotFoundError(ClaimsEngineError):
    """Operation references an unknown claim id"""
    error_type = ErrorType.NOT_FOUND

    @classmethod
    def for_claim(cls, claim_id: str) -> "NotFoundError":
        return cls(f"Claim {claim_id} not found", {"claim_id": claim_id})


class UnauthorizedError(ClaimsEngineError):
    """Approver role is below the claim's current tier"""
    error_type = ErrorType.UNAUTHORIZED


class InvalidTransitionError(ClaimsEngineError):
    """Action is not allowed from the claim's current status"""
    error_type = ErrorType.INVALID_TRANSITION


class MissingReasonError(ClaimsEngineError):
    """Decision submitted without a reason"""
    error_type = ErrorType.MISSING_REASON


class ClaimBusyError(ClaimsEngineError):
    """Another decision on the same claim held its lock past the timeout"""
    error_type = ErrorType.CLAIM_BUSY


class StorageError(ClaimsEngineError):
    """
    Opaque persistence failure reported by the storage collaborator.
    The engine propagates it unchanged.
    """
    error_type = ErrorType.STORAGE

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
    ):
        super().__init__(message, details)
        self.original_exception = original_exception

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["original_exception"] = (
            str(self.original_exception) if self.original_exception else None
        )
        return data


class StaleClaimError(StorageError):
    """Optimistic concurrency check failed - the stored claim moved on"""
    error_type = ErrorType.STALE_CLAIM


__all__ = [
    "ErrorType",
    "ClaimsEngineError",
    "ValidationError",
    "NotFoundError",
    "UnauthorizedError",
    "InvalidTransitionError",
    "MissingReasonError",
    "ClaimBusyError",
    "StorageError",
    "StaleClaimError",
]
