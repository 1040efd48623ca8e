"""
Payment domain models.

This module contains all payment-related models:
- EscrowTransaction: Money held in escrow for one contract
- Payment: A milestone release out of escrow (reservation + outcome)
- ConnectedAccount: Stripe Connect payout account of a creator
- WebhookEvent: Stripe webhook event tracking for idempotent processing
"""

from payments.models.connected_account import ConnectedAccount
from payments.models.escrow_transaction import EscrowTransaction
from payments.models.payment import Payment
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "ConnectedAccount",
    "EscrowTransaction",
    "Payment",
    "WebhookEvent",
]
