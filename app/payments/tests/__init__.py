"""
Tests for payments app.

This package contains test modules for:
- test_models.py: EscrowTransaction, Payment, ConnectedAccount, WebhookEvent
- test_state_transitions.py: Escrow and payment FSM transitions
- test_conf.py: Fee split and EscrowConfig
- test_tasks.py: Release reconciliation task
- test_views.py: API endpoint tests

Service, adapter and webhook tests live beside their packages
(payments/services/tests, payments/adapters/tests, payments/webhooks/tests).

Usage:
    pytest payments/
    pytest payments/tests/test_views.py
"""
