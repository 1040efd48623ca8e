"""
Pytest fixtures for webhook tests.

Provides Stripe event payloads and stored WebhookEvent rows for testing
the webhook view, handlers and processing task.
"""

import json

import pytest

from payments.tests.factories import EscrowTransactionFactory, WebhookEventFactory


def stripe_event(event_id: str, event_type: str, data_object: dict) -> dict:
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {"object": data_object},
    }


@pytest.fixture
def pending_deposit_escrow(db, contract):
    return EscrowTransactionFactory(contract=contract)


@pytest.fixture
def intent_succeeded_event(db, pending_deposit_escrow):
    """Stored payment_intent.succeeded event for an escrow deposit."""
    return WebhookEventFactory(
        event_type="payment_intent.succeeded",
        data_object={
            "id": pending_deposit_escrow.stripe_payment_intent_id,
            "object": "payment_intent",
            "status": "succeeded",
            "metadata": {
                "type": "escrow",
                "escrow": "true",
                "contract_id": str(pending_deposit_escrow.contract_id),
            },
        },
    )


@pytest.fixture
def event_payload():
    """Raw body of a verified Stripe event, as the view receives it."""
    event = stripe_event(
        "evt_test_webhook_1",
        "payment_intent.succeeded",
        {"id": "pi_test_123", "metadata": {"type": "escrow"}},
    )
    return event, json.dumps(event).encode()
