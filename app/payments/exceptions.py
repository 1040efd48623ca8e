"""
Payment-specific exceptions for escrow and payout operations.

This module provides the exception hierarchy used by the escrow ledger,
the milestone release coordinator and the payout account manager, plus
the Stripe-specific errors produced by the adapter's error translation.

Exception Hierarchy:
    PaymentError (base for payment domain)
    └── ConsistencyError - Stripe succeeded, local commit failed

    NotFoundError
    ├── EscrowNotFoundError - No escrow for the contract / payment intent
    └── MilestoneNotFoundError - Milestone lookup failures

    ExternalServiceError
    └── ProcessorError - Payment processor call failed (HTTP 502)
        └── StripeError - Base for all translated Stripe errors
            ├── StripeCardDeclinedError - Card declined (permanent)
            ├── StripeInsufficientFundsError - Insufficient funds (permanent)
            ├── StripeInvalidAccountError - Invalid Stripe account (permanent)
            ├── StripeInvalidRequestError - Invalid request params (permanent)
            ├── StripeRateLimitError - Rate limited (transient, retry)
            ├── StripeAPIUnavailableError - API unavailable (transient, retry)
            └── StripeTimeoutError - Request timeout (transient, retry)

Usage:
    from payments.exceptions import ConsistencyError, ProcessorError

    try:
        result = adapter.create_transfer(...)
    except StripeError as e:
        raise ProcessorError.from_stripe_error(e, operation="create_transfer") from e

    # Stripe moved money but the local commit failed
    raise ConsistencyError(
        "Transfer succeeded but local finalize failed",
        details={"stripe_transfer_id": "tr_123", "payment_id": str(payment.id)},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    BaseApplicationError,
    ExternalServiceError,
    NotFoundError,
)

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for payment domain failures that are not simple
    precondition violations.
    """

    default_error_code: str = "PAYMENT_ERROR"


class EscrowNotFoundError(NotFoundError):
    """
    Raised when no escrow matches a contract or a PaymentIntent.

    Example:
        raise EscrowNotFoundError(
            "No escrow for payment intent",
            details={"payment_intent_id": payment_intent_id},
        )
    """

    default_error_code: str = "ESCROW_NOT_FOUND"


class MilestoneNotFoundError(NotFoundError):
    """Raised when a milestone lookup fails."""

    default_error_code: str = "MILESTONE_NOT_FOUND"


class ConsistencyError(PaymentError):
    """
    Raised when Stripe completed an operation but the local write failed.

    Money has moved at the processor; the local record no longer matches.
    The details always carry the processor object id (transfer or refund)
    and the local ids needed to reconcile by hand or from the
    reconciliation task. Log at CRITICAL before raising.
    """

    default_error_code: str = "CONSISTENCY_ERROR"


# =============================================================================
# Processor Exceptions
# =============================================================================


class ProcessorError(ExternalServiceError):
    """
    Raised when a payment processor call fails.

    Services raise this (or let a StripeError subclass through) so views
    can answer with HTTP 502. is_retryable tells callers whether the same
    request with the same idempotency key may succeed later.
    """

    default_error_code: str = "PROCESSOR_ERROR"
    is_retryable: bool = False

    @classmethod
    def from_stripe_error(
        cls, error: StripeError, operation: str, **context: Any
    ) -> ProcessorError:
        """
        Wrap a translated Stripe error with the operation that failed.

        Args:
            error: Error raised by StripeAdapter
            operation: Name of the adapter operation (e.g. "create_transfer")
            **context: Local ids to include in details
        """
        details = {
            "operation": operation,
            "processor_error_code": error.error_code,
            **error.details,
            **{key: str(value) for key, value in context.items()},
        }
        wrapped = cls(error.message, error_code=cls.default_error_code, details=details)
        wrapped.is_retryable = error.is_retryable
        return wrapped


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(ProcessorError):
    """
    Base exception for all translated Stripe errors.

    Attributes:
        stripe_code: Stripe's error code (e.g. "account_invalid")
        decline_code: Card decline code, when Stripe supplied one
        is_retryable: True for transient failures that are safe to retry
            with the same idempotency key
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class StripeCardDeclinedError(StripeError):
    """
    The brand's card was declined while funding an escrow.

    The decline_code attribute carries the issuer's reason.
    """

    default_error_code: str = "CARD_DECLINED"


class StripeInsufficientFundsError(StripeError):
    """
    Insufficient funds on the card, or on the platform balance for a
    transfer (Stripe code "balance_insufficient").
    """

    default_error_code: str = "INSUFFICIENT_FUNDS"


class StripeInvalidAccountError(StripeError):
    """
    The destination connected account cannot receive the transfer.

    Usually the creator's account was restricted after onboarding; the
    milestone stays READY and can be released again once the account
    is ACTIVE.
    """

    default_error_code: str = "INVALID_STRIPE_ACCOUNT"


class StripeInvalidRequestError(StripeError):
    """
    Stripe rejected the request parameters.

    Examples: unknown PaymentIntent, refunding an intent that was never
    captured. Usually a bug rather than a user error.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"


# -----------------------------------------------------------------------------
# Transient Errors (safe to retry with backoff)
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """Rate limited by the Stripe API."""

    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """
    Stripe API is temporarily unavailable.

    Covers network connectivity issues and Stripe 5xx responses.
    """

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True


class StripeTimeoutError(StripeError):
    """
    Stripe API call timed out (STRIPE_API_TIMEOUT_SECONDS).

    The operation may have succeeded on Stripe's side. Retrying with the
    same idempotency key returns the original object if it did.
    """

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Payment domain
    "PaymentError",
    "EscrowNotFoundError",
    "MilestoneNotFoundError",
    "ConsistencyError",
    # Processor
    "ProcessorError",
    "StripeError",
    "StripeCardDeclinedError",
    "StripeInsufficientFundsError",
    "StripeInvalidAccountError",
    "StripeInvalidRequestError",
    "StripeRateLimitError",
    "StripeAPIUnavailableError",
    "StripeTimeoutError",
]
