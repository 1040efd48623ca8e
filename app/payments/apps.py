"""
Payments app configuration.

This app provides the escrow engine:
- Escrow ledger (funding, refund, release accounting)
- Milestone release coordination
- Stripe Connect payout accounts
- Stripe webhook handling
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
