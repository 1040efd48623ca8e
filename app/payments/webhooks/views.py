"""
Webhook endpoint view for Stripe.

The view verifies the signature before touching anything, stores the event
idempotently and queues it for async processing. Stripe gets its 2xx
quickly while the ledger work happens in a Celery worker.

Usage:
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.adapters import StripeAdapter
from payments.conf import EscrowConfig
from payments.exceptions import StripeInvalidRequestError
from payments.models import WebhookEvent
from payments.tasks import process_webhook_event


logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> HttpResponse:
    """
    Receive, verify and queue a Stripe webhook event.

    Returns:
        HttpResponse with status:
        - 200: Event accepted (new or duplicate delivery)
        - 400: Missing or invalid signature, or malformed event
    """
    signature = request.headers.get("Stripe-Signature", "")

    if not signature:
        logger.warning("Webhook received without Stripe-Signature header")
        return HttpResponse("Missing signature", status=400)

    try:
        adapter = StripeAdapter.with_config(EscrowConfig.from_settings())
        event_data = adapter.verify_webhook_signature(request.body, signature)
    except StripeInvalidRequestError as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={"error": str(e), "stripe_code": e.stripe_code},
        )
        return HttpResponse("Invalid signature", status=400)

    stripe_event_id = event_data.get("id")
    event_type = event_data.get("type")

    if not stripe_event_id or not event_type:
        logger.warning("Webhook missing required fields")
        return HttpResponse("Invalid event", status=400)

    webhook_event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id=stripe_event_id,
        defaults={"event_type": event_type, "payload": event_data},
    )

    if not created:
        logger.info(
            "Duplicate webhook delivery ignored",
            extra={
                "stripe_event_id": stripe_event_id,
                "status": webhook_event.status,
            },
        )
        return HttpResponse("Accepted", status=200)

    process_webhook_event.delay(str(webhook_event.id))
    logger.info(
        f"Webhook queued: {event_type}",
        extra={
            "stripe_event_id": stripe_event_id,
            "webhook_event_id": str(webhook_event.id),
        },
    )
    return HttpResponse("Accepted", status=200)
