"""
Base exception classes for application-wide error handling.

Every domain error raised by a service derives from BaseApplicationError so
views can turn it into a consistent JSON body with a machine-readable code.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Business rule / precondition failures
    ├── NotFoundError - Referenced record does not exist
    ├── PermissionDeniedError - Caller is not allowed to act on the record
    ├── ConflictError - State conflicts (duplicates, concurrent writes)
    └── ExternalServiceError - Third-party service failures

Usage:
    from core.exceptions import NotFoundError, ValidationError

    raise ValidationError("Contract must be ACTIVE", error_code="CONTRACT_NOT_ACTIVE")

    raise NotFoundError(
        "Contract not found",
        error_code="CONTRACT_NOT_FOUND",
        details={"contract_id": str(contract_id)},
    )

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=400)

Note:
    DRF still handles API-layer exceptions (serializer errors, auth).
    These classes are for the service layer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, amounts, states)
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Escrow not found",
                "error_code": "ESCROW_NOT_FOUND",
                "details": {"contract_id": "..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when a business precondition is not met.

    Examples are a milestone that is not READY, an escrow that is not FUNDED,
    or a payee without an active payout account. Distinct from DRF's
    serializer ValidationError, which covers request-shape problems.
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """Raised when a referenced record does not exist."""

    default_error_code: str = "NOT_FOUND"


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the caller is not allowed to act on a record.

    For missing/invalid credentials DRF's AuthenticationFailed applies;
    this is for authorization (e.g. a creator trying to release a milestone).
    """

    default_error_code: str = "PERMISSION_DENIED"


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with the current state.

    Use for unique-constraint races and invalid state transitions.
    HTTP 409 Conflict is the appropriate status.
    """

    default_error_code: str = "CONFLICT"


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Log the original error for debugging but don't expose internal details
    to clients. HTTP 502 Bad Gateway is the appropriate status.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
