"""
Celery tasks for payment processing.

This module provides async tasks for:
- Processing stored Stripe webhook events
- Reconciling milestone releases left PENDING after a processor failure

Usage:
    from payments.tasks import process_webhook_event

    process_webhook_event.delay(str(webhook_event.id))

    # Scheduled every 15 minutes by django-celery-beat
    from payments.tasks import reconcile_pending_releases
    reconcile_pending_releases.delay()
"""

from __future__ import annotations

import logging
from uuid import UUID

from celery import shared_task
from django.db import transaction

from core.exceptions import ValidationError

from payments.exceptions import ConsistencyError, ProcessorError
from payments.models import WebhookEvent
from payments.services import MilestoneReleaseService
from payments.state_machines import WebhookEventStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MAX_WEBHOOK_RETRIES = 5


# =============================================================================
# Webhook Processing
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_WEBHOOK_RETRIES},
    acks_late=True,
)
def process_webhook_event(self, webhook_event_id: str) -> dict:
    """
    Process a stored Stripe webhook event.

    Handler failures (ServiceResult.failure) mark the event FAILED and
    return. Unexpected exceptions mark it FAILED and re-raise so Celery
    retries with backoff.
    """
    # Import here: payments.webhooks imports this module for the view
    from payments.webhooks.handlers import dispatch_webhook

    if isinstance(webhook_event_id, str):
        webhook_event_id = UUID(webhook_event_id)

    try:
        webhook_event = WebhookEvent.objects.get(id=webhook_event_id)
    except WebhookEvent.DoesNotExist:
        logger.error(
            "WebhookEvent not found",
            extra={"webhook_event_id": str(webhook_event_id)},
        )
        return {"status": "not_found", "webhook_event_id": str(webhook_event_id)}

    if webhook_event.status == WebhookEventStatus.PROCESSED:
        logger.info(
            "WebhookEvent already processed, skipping",
            extra={
                "webhook_event_id": str(webhook_event_id),
                "stripe_event_id": webhook_event.stripe_event_id,
            },
        )
        return {"status": "already_processed", "webhook_event_id": str(webhook_event_id)}

    webhook_event.mark_processing()
    webhook_event.save()

    try:
        with transaction.atomic():
            result = dispatch_webhook(webhook_event)
    except Exception as e:
        error_msg = f"{type(e).__name__}: {e}"
        webhook_event.mark_failed(error_msg)
        webhook_event.save()
        logger.exception(
            "Webhook processing failed with exception",
            extra={
                "webhook_event_id": str(webhook_event_id),
                "stripe_event_id": webhook_event.stripe_event_id,
                "retry_count": webhook_event.retry_count,
            },
        )
        raise

    if not result.success:
        error_msg = result.error or "Handler returned failure"
        webhook_event.mark_failed(error_msg)
        webhook_event.save()
        logger.warning(
            f"Webhook handler failed: {error_msg}",
            extra={
                "webhook_event_id": str(webhook_event_id),
                "stripe_event_id": webhook_event.stripe_event_id,
                "error_code": result.error_code,
            },
        )
        return {
            "status": "handler_failed",
            "webhook_event_id": str(webhook_event_id),
            "error": error_msg,
        }

    webhook_event.mark_processed()
    webhook_event.save()
    logger.info(
        "Webhook processed successfully",
        extra={
            "webhook_event_id": str(webhook_event_id),
            "stripe_event_id": webhook_event.stripe_event_id,
        },
    )
    return {
        "status": "processed",
        "webhook_event_id": str(webhook_event_id),
        "stripe_event_id": webhook_event.stripe_event_id,
    }


# =============================================================================
# Release Reconciliation
# =============================================================================


@shared_task
def reconcile_pending_releases() -> dict:
    """
    Replay milestone releases stuck in PENDING.

    A release stays PENDING when the transfer call failed ambiguously or
    finalize failed after a successful transfer. Replaying with the stored
    idempotency key either returns the original transfer or creates it once.
    """
    service = MilestoneReleaseService()
    completed = 0
    failed = 0

    for payment in service.pending_releases_older_than():
        try:
            service.resume_pending_release(payment.id)
            completed += 1
        except (ProcessorError, ConsistencyError, ValidationError) as e:
            failed += 1
            logger.warning(
                f"Pending release not reconciled: {e.error_code}",
                extra={
                    "payment_id": str(payment.id),
                    "milestone_id": str(payment.milestone_id),
                    "error": e.message,
                },
            )

    logger.info(
        f"Reconciled {completed} pending releases ({failed} still pending or failed)",
        extra={"completed": completed, "failed": failed},
    )
    return {"completed": completed, "failed": failed}
