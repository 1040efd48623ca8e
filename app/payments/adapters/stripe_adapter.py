"""
Stripe API adapter for escrow and payout operations.

This module provides the StripeAdapter class which encapsulates all
Stripe API interactions. All Stripe calls go through this adapter so
error handling, timeouts, idempotency and logging stay consistent.

Money enters the adapter as Decimal in major units at the service layer
and is converted to integer minor units with to_minor_units() right
before the request is built. Nothing outside this module deals in cents.

Configuration comes from an EscrowConfig bound with
StripeAdapter.with_config(); services bind the config they were given.
An unbound adapter builds one from settings:
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 30)
- STRIPE_MAX_RETRIES: SDK network retries (default: 3)

Usage:
    from payments.adapters import StripeAdapter, CreatePaymentIntentParams

    result = StripeAdapter.create_payment_intent(
        CreatePaymentIntentParams(
            amount_cents=to_minor_units(escrow_total),
            currency="usd",
            customer_id=brand.stripe_customer_id,
            metadata={"contract_id": str(contract.id), "type": "escrow"},
            idempotency_key=IdempotencyKeyGenerator.generate("escrow_intent", contract.id),
        )
    )

    transfer = StripeAdapter.create_transfer(
        amount_cents=36000,
        destination_account="acct_xxx",
        idempotency_key=payment.idempotency_key,
    )
"""

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable

import stripe
from django.conf import settings

from payments.conf import EscrowConfig
from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeError,
    StripeInsufficientFundsError,
    StripeInvalidAccountError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)


def to_minor_units(amount: Decimal) -> int:
    """
    Convert a major-unit Decimal amount to integer minor units.

    Rounds half up at the cent, so Decimal("10.005") becomes 1001.
    """
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CreatePaymentIntentParams:
    """
    Parameters for creating a Stripe PaymentIntent.

    Attributes:
        amount_cents: Payment amount in smallest currency unit (e.g., cents)
        currency: ISO 4217 currency code, lower case for Stripe
        idempotency_key: Unique key for idempotent creation
        metadata: Key-value pairs to attach to the PaymentIntent
        customer_id: Optional Stripe Customer ID of the payer
        description: Optional description shown in the Stripe dashboard
        payment_method_types: Allowed payment methods (default: ['card'])
    """

    amount_cents: int
    currency: str
    idempotency_key: str
    metadata: dict[str, str] = field(default_factory=dict)
    customer_id: str | None = None
    description: str | None = None
    payment_method_types: list[str] = field(default_factory=lambda: ["card"])

    def __post_init__(self) -> None:
        if self.amount_cents <= 0:
            raise ValueError("amount_cents must be positive")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")
        if not self.currency:
            raise ValueError("currency is required")


@dataclass
class CustomerResult:
    """Result from Stripe Customer creation."""

    id: str
    email: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class PaymentIntentResult:
    """
    Result from Stripe PaymentIntent operations.

    Attributes:
        id: PaymentIntent ID (pi_xxx)
        status: Current status (requires_payment_method, succeeded, etc.)
        amount_cents: Amount in cents
        currency: Currency code
        client_secret: Secret handed to the brand's client to confirm payment
        metadata: Attached metadata
        raw_response: Full Stripe response dict (for debugging)
    """

    id: str
    status: str
    amount_cents: int
    currency: str
    client_secret: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class TransferResult:
    """
    Result from Stripe Transfer operations.

    Attributes:
        id: Transfer ID (tr_xxx)
        amount_cents: Amount transferred in cents
        currency: Currency code
        destination_account: Destination Stripe account ID
        metadata: Attached metadata
        raw_response: Full Stripe response dict
    """

    id: str
    amount_cents: int
    currency: str
    destination_account: str
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class RefundResult:
    """
    Result from Stripe Refund operations.

    Attributes:
        id: Refund ID (re_xxx)
        amount_cents: Refunded amount in cents
        currency: Currency code
        status: Refund status (succeeded, pending, failed)
        payment_intent_id: Original PaymentIntent ID
        raw_response: Full Stripe response dict
    """

    id: str
    amount_cents: int
    currency: str
    status: str
    payment_intent_id: str
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class ConnectedAccountResult:
    """
    Result from Stripe Connect account operations.

    The three flags drive the local ConnectStatus mapping.
    """

    id: str
    details_submitted: bool = False
    payouts_enabled: bool = False
    charges_enabled: bool = False
    raw_response: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_stripe(cls, account: Any) -> ConnectedAccountResult:
        return cls(
            id=account.id,
            details_submitted=bool(account.details_submitted),
            payouts_enabled=bool(account.payouts_enabled),
            charges_enabled=bool(account.charges_enabled),
            raw_response=account.to_dict(),
        )


@dataclass
class AccountLinkResult:
    """Hosted onboarding link for a connected account."""

    url: str
    expires_at: int | None = None


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    Keys are deterministic: the same operation, entity and attempt always
    produce the same key, so a retried request is recognised by Stripe
    and returns the original object instead of moving money twice.

    Example:
        key = IdempotencyKeyGenerator.generate(
            operation="milestone_release",
            entity_id=milestone.id,
            attempt=1,
        )
        # "milestone_release:550e8400-e29b-41d4-a716-446655440000:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str | int,
        attempt: int = 1,
    ) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    All methods are classmethods - no instance state is maintained. Services
    receive a subclass bound to their EscrowConfig via with_config().
    Thread-safe for use from Celery workers.

    Operations:
        create_customer          - Payer identity for the brand
        create_payment_intent    - Escrow deposit
        create_refund            - Return an escrow deposit to the brand
        create_transfer          - Milestone release to the creator
        create_connected_account - Express account for a creator
        create_account_link      - Hosted onboarding URL
        retrieve_account         - Current account flags
        verify_webhook_signature - Webhook authentication
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    config: EscrowConfig | None = None

    @classmethod
    def with_config(cls, config: EscrowConfig) -> type[StripeAdapter]:
        """
        Return an adapter class whose calls use the given configuration.

        Services bind their injected EscrowConfig here, so the API key,
        webhook secret, timeout and retries come from that config.

        Example:
            adapter = StripeAdapter.with_config(EscrowConfig.from_settings())
            adapter.create_transfer(...)
        """
        return type(cls.__name__, (cls,), {"config": config})

    @classmethod
    def _get_config(cls) -> EscrowConfig:
        return cls.config or EscrowConfig.from_settings()

    @classmethod
    def _configure_stripe(cls) -> None:
        """Configure Stripe client with API key, timeout and network retries."""
        config = cls._get_config()
        stripe.api_key = config.stripe_secret_key
        stripe.max_network_retries = config.stripe_max_retries
        stripe.default_http_client = stripe.RequestsClient(timeout=config.stripe_api_timeout)

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def _execute(
        cls,
        log_context: dict[str, Any],
        call: Callable[[], Any],
        level: int = logging.INFO,
    ) -> Any:
        """
        Run one Stripe SDK call with timing, logging and error translation.

        Args:
            log_context: Structured context; must include "operation"
            call: Zero-argument callable performing the SDK request
            level: Log level for start/completion records

        Returns:
            The Stripe object returned by the SDK

        Raises:
            StripeError: Translated from any SDK exception
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        start_time = time.time()
        logger.log(level, "Starting Stripe operation", extra=log_context)

        try:
            obj = call()
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise  # Never reached, but satisfies type checker

        duration_ms = (time.time() - start_time) * 1000
        logger.log(
            level,
            "Stripe operation completed",
            extra={
                **log_context,
                "stripe_object_id": getattr(obj, "id", None),
                "duration_ms": duration_ms,
            },
        )
        return obj

    # =========================================================================
    # Customers & Payment Intents
    # =========================================================================

    @classmethod
    def create_customer(
        cls,
        email: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
        trace_id: str | None = None,
    ) -> CustomerResult:
        """
        Create a Stripe Customer for a paying user.

        Args:
            email: Customer email
            idempotency_key: Unique key for idempotent creation
            metadata: Optional metadata (e.g. local user id)
            trace_id: Optional trace ID for distributed tracing
        """
        log_context = {
            "operation": "create_customer",
            "idempotency_key": idempotency_key,
            "trace_id": trace_id,
        }
        customer = cls._execute(
            log_context,
            lambda: stripe.Customer.create(
                email=email,
                metadata=metadata or {},
                idempotency_key=idempotency_key,
            ),
        )
        return CustomerResult(
            id=customer.id,
            email=customer.email,
            raw_response=customer.to_dict(),
        )

    @classmethod
    def create_payment_intent(
        cls,
        params: CreatePaymentIntentParams,
        trace_id: str | None = None,
    ) -> PaymentIntentResult:
        """
        Create a Stripe PaymentIntent.

        Returns:
            PaymentIntentResult including the client_secret

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInvalidRequestError: Invalid parameters
            StripeAPIUnavailableError: Stripe service unavailable
            StripeTimeoutError: Request timed out
        """
        log_context = {
            "operation": "create_payment_intent",
            "amount_cents": params.amount_cents,
            "currency": params.currency,
            "idempotency_key": params.idempotency_key,
            "trace_id": trace_id,
        }

        intent_params: dict[str, Any] = {
            "amount": params.amount_cents,
            "currency": params.currency,
            "metadata": params.metadata,
            "payment_method_types": params.payment_method_types,
        }
        if params.customer_id:
            intent_params["customer"] = params.customer_id
        if params.description:
            intent_params["description"] = params.description

        intent = cls._execute(
            log_context,
            lambda: stripe.PaymentIntent.create(
                idempotency_key=params.idempotency_key,
                **intent_params,
            ),
        )

        return PaymentIntentResult(
            id=intent.id,
            status=intent.status,
            amount_cents=intent.amount,
            currency=intent.currency,
            client_secret=intent.client_secret,
            metadata=dict(intent.metadata or {}),
            raw_response=intent.to_dict(),
        )

    @classmethod
    def create_refund(
        cls,
        payment_intent_id: str,
        idempotency_key: str,
        amount_cents: int | None = None,
        reason: str | None = None,
        metadata: dict[str, str] | None = None,
        trace_id: str | None = None,
    ) -> RefundResult:
        """
        Create a refund for a PaymentIntent.

        Args:
            payment_intent_id: Stripe PaymentIntent ID (pi_xxx)
            idempotency_key: Unique key for idempotent refund
            amount_cents: Amount to refund (None for full refund)
            reason: Refund reason (duplicate, fraudulent, requested_by_customer)
            metadata: Optional metadata dict
            trace_id: Optional trace ID for distributed tracing

        Raises:
            StripeInvalidRequestError: Refund not possible
        """
        log_context = {
            "operation": "create_refund",
            "payment_intent_id": payment_intent_id,
            "amount_cents": amount_cents,
            "idempotency_key": idempotency_key,
            "trace_id": trace_id,
        }

        refund_params: dict[str, Any] = {
            "payment_intent": payment_intent_id,
            "metadata": metadata or {},
        }
        if amount_cents is not None:
            refund_params["amount"] = amount_cents
        if reason:
            refund_params["reason"] = reason

        refund = cls._execute(
            log_context,
            lambda: stripe.Refund.create(idempotency_key=idempotency_key, **refund_params),
        )

        return RefundResult(
            id=refund.id,
            amount_cents=refund.amount,
            currency=refund.currency,
            status=refund.status,
            payment_intent_id=refund.payment_intent,
            raw_response=refund.to_dict(),
        )

    # =========================================================================
    # Transfers
    # =========================================================================

    @classmethod
    def create_transfer(
        cls,
        amount_cents: int,
        destination_account: str,
        idempotency_key: str,
        currency: str = "usd",
        metadata: dict[str, str] | None = None,
        transfer_group: str | None = None,
        trace_id: str | None = None,
    ) -> TransferResult:
        """
        Create a transfer to a connected Stripe account.

        Args:
            amount_cents: Amount to transfer in cents
            destination_account: Stripe Connect account ID (acct_xxx)
            idempotency_key: Unique key for idempotent transfer
            currency: Currency code (default: 'usd')
            metadata: Optional metadata dict
            transfer_group: Optional group tying transfers to one contract
            trace_id: Optional trace ID for distributed tracing

        Raises:
            StripeInvalidAccountError: Invalid destination account
            StripeInsufficientFundsError: Insufficient platform balance
        """
        log_context = {
            "operation": "create_transfer",
            "amount_cents": amount_cents,
            "destination_account": destination_account,
            "idempotency_key": idempotency_key,
            "trace_id": trace_id,
        }

        transfer_params: dict[str, Any] = {
            "amount": amount_cents,
            "currency": currency,
            "destination": destination_account,
            "metadata": metadata or {},
        }
        if transfer_group:
            transfer_params["transfer_group"] = transfer_group

        transfer = cls._execute(
            log_context,
            lambda: stripe.Transfer.create(idempotency_key=idempotency_key, **transfer_params),
        )
        return cls._transfer_result(transfer)

    @staticmethod
    def _transfer_result(transfer: Any) -> TransferResult:
        return TransferResult(
            id=transfer.id,
            amount_cents=transfer.amount,
            currency=transfer.currency,
            destination_account=transfer.destination,
            metadata=dict(transfer.metadata or {}),
            raw_response=transfer.to_dict(),
        )

    # =========================================================================
    # Connect Accounts
    # =========================================================================

    @classmethod
    def create_connected_account(
        cls,
        email: str,
        idempotency_key: str,
        account_type: str = "express",
        country: str | None = None,
        metadata: dict[str, str] | None = None,
        trace_id: str | None = None,
    ) -> ConnectedAccountResult:
        """
        Create a Stripe Connect account able to receive transfers.

        Args:
            email: Account holder email
            idempotency_key: Unique key for idempotent creation
            account_type: Connect account type (default: 'express')
            country: Optional ISO country code
            metadata: Optional metadata (e.g. local user id)
            trace_id: Optional trace ID for distributed tracing
        """
        log_context = {
            "operation": "create_connected_account",
            "account_type": account_type,
            "idempotency_key": idempotency_key,
            "trace_id": trace_id,
        }

        account_params: dict[str, Any] = {
            "type": account_type,
            "email": email,
            "capabilities": {"transfers": {"requested": True}},
            "metadata": metadata or {},
        }
        if country:
            account_params["country"] = country

        account = cls._execute(
            log_context,
            lambda: stripe.Account.create(idempotency_key=idempotency_key, **account_params),
        )
        return ConnectedAccountResult.from_stripe(account)

    @classmethod
    def create_account_link(
        cls,
        account_id: str,
        refresh_url: str,
        return_url: str,
        trace_id: str | None = None,
    ) -> AccountLinkResult:
        """
        Create a hosted onboarding link for a connected account.

        Account links are single use and short lived, so a new one is
        requested every time a user starts onboarding.
        """
        log_context = {
            "operation": "create_account_link",
            "account_id": account_id,
            "trace_id": trace_id,
        }
        link = cls._execute(
            log_context,
            lambda: stripe.AccountLink.create(
                account=account_id,
                refresh_url=refresh_url,
                return_url=return_url,
                type="account_onboarding",
            ),
        )
        return AccountLinkResult(url=link.url, expires_at=link.expires_at)

    @classmethod
    def retrieve_account(
        cls,
        account_id: str,
        trace_id: str | None = None,
    ) -> ConnectedAccountResult:
        """Retrieve a connected account's current flags."""
        log_context = {
            "operation": "retrieve_account",
            "account_id": account_id,
            "trace_id": trace_id,
        }
        account = cls._execute(
            log_context,
            lambda: stripe.Account.retrieve(account_id),
            level=logging.DEBUG,
        )
        return ConnectedAccountResult.from_stripe(account)

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @classmethod
    def verify_webhook_signature(
        cls,
        payload: bytes,
        signature: str,
    ) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        Args:
            payload: Raw webhook payload bytes
            signature: Stripe-Signature header value

        Returns:
            Parsed event data dict

        Raises:
            StripeInvalidRequestError: Invalid signature or payload
        """
        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                cls._get_config().stripe_webhook_secret,
            )
        except stripe.SignatureVerificationError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook signature",
                stripe_code="signature_verification_failed",
                details={"error": str(e)},
            ) from e
        except ValueError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook payload",
                stripe_code="invalid_payload",
                details={"error": str(e)},
            ) from e
        return event.to_dict()

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to domain exceptions.

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInsufficientFundsError: Insufficient funds or platform balance
            StripeInvalidAccountError: Invalid Connect account
            StripeInvalidRequestError: Invalid request parameters
            StripeRateLimitError: Rate limited
            StripeAPIUnavailableError: API unavailable
            StripeTimeoutError: Request timed out
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None)
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )

            if decline_code == "insufficient_funds":
                raise StripeInsufficientFundsError(
                    str(error.user_message or error),
                    stripe_code=error.code,
                    decline_code=decline_code,
                ) from error

            raise StripeCardDeclinedError(
                str(error.user_message or error),
                stripe_code=error.code,
                decline_code=decline_code,
            ) from error

        elif isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )

            if error.code == "balance_insufficient":
                raise StripeInsufficientFundsError(
                    str(error),
                    stripe_code=error.code,
                ) from error

            if error.code == "account_invalid" or "account" in str(error).lower():
                raise StripeInvalidAccountError(
                    str(error),
                    stripe_code=error.code,
                ) from error

            raise StripeInvalidRequestError(
                str(error),
                stripe_code=error.code,
            ) from error

        elif isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            ) from error

        elif isinstance(error, stripe.APIConnectionError):
            if "timed out" in str(error).lower():
                logger.error("Stripe request timed out", extra=log_context)
                raise StripeTimeoutError(
                    "Stripe request timed out. Please retry.",
                    stripe_code="timeout",
                ) from error

            logger.error(
                "Connection error to Stripe",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            ) from error

        elif isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeInvalidRequestError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            ) from error

        elif isinstance(error, stripe.APIError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
            ) from error

        else:
            logger.error(
                f"Unexpected error from Stripe: {type(error).__name__}",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                f"Unexpected Stripe error: {error}",
                stripe_code="unknown_error",
            ) from error
