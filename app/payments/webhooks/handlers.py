"""
Webhook event handlers for Stripe events.

This module provides a handler registry and the handlers for the events
the escrow engine cares about. Handlers return a ServiceResult so the
processing task can mark the stored event processed or failed.

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("custom.event")
    def handle_custom_event(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Callable

from core.services import ServiceResult

from payments.exceptions import EscrowNotFoundError
from payments.models import WebhookEvent
from payments.services import EscrowLedgerService, PayoutAccountService


logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Args:
        event_type: The Stripe event type (e.g., "payment_intent.succeeded")
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to the handler registered for its type.

    Unknown event types succeed with no data so that Stripe deliveries
    we do not subscribe to never pile up as failures.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )
    return handler(webhook_event)


# =============================================================================
# Payment Intent Handlers
# =============================================================================


@register_handler("payment_intent.succeeded")
def handle_payment_intent_succeeded(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Confirm escrow funding when an escrow PaymentIntent succeeds.

    Intents without metadata.type == "escrow" are not ours and are ignored.
    Confirmation is idempotent, so redelivery is harmless.
    """
    intent = webhook_event.data_object
    payment_intent_id = intent.get("id")

    if not payment_intent_id:
        logger.error(
            "payment_intent.succeeded: Could not extract payment_intent_id",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.failure(
            "Could not extract payment_intent_id from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    metadata = intent.get("metadata") or {}
    if metadata.get("type") != "escrow":
        logger.info(
            "Ignoring non-escrow PaymentIntent",
            extra={
                "stripe_event_id": webhook_event.stripe_event_id,
                "payment_intent_id": payment_intent_id,
            },
        )
        return ServiceResult.success(None)

    try:
        escrow = EscrowLedgerService().confirm_funding(payment_intent_id)
    except EscrowNotFoundError as e:
        logger.warning(
            "Escrow not found for succeeded PaymentIntent",
            extra={
                "stripe_event_id": webhook_event.stripe_event_id,
                "payment_intent_id": payment_intent_id,
            },
        )
        return ServiceResult.from_exception(e)

    return ServiceResult.success(escrow)


@register_handler("payment_intent.payment_failed")
def handle_payment_intent_failed(webhook_event: WebhookEvent) -> ServiceResult:
    """Log a failed funding attempt. The escrow stays PENDING_DEPOSIT."""
    intent = webhook_event.data_object
    last_error = intent.get("last_payment_error") or {}

    logger.warning(
        "Escrow PaymentIntent failed",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "payment_intent_id": intent.get("id"),
            "contract_id": (intent.get("metadata") or {}).get("contract_id"),
            "reason": last_error.get("message", "Payment failed"),
        },
    )
    return ServiceResult.success(None)


# =============================================================================
# Connect Handlers
# =============================================================================


@register_handler("account.updated")
def handle_account_updated(webhook_event: WebhookEvent) -> ServiceResult:
    """Sync a connected account's onboarding flags and status."""
    account = PayoutAccountService().sync_account(webhook_event.data_object)
    return ServiceResult.success(account)


@register_handler("transfer.created")
def handle_transfer_created(webhook_event: WebhookEvent) -> ServiceResult:
    """Transfers are finalized synchronously on release; just record it."""
    transfer = webhook_event.data_object
    logger.info(
        "Transfer created",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "transfer_id": transfer.get("id"),
            "destination": transfer.get("destination"),
            "milestone_id": (transfer.get("metadata") or {}).get("milestone_id"),
        },
    )
    return ServiceResult.success(None)
