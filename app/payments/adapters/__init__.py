"""
Payment adapters for external services.

All Stripe API calls go through StripeAdapter so error handling,
timeouts, idempotency and logging stay consistent.

Usage:
    from payments.adapters import StripeAdapter, to_minor_units

    result = StripeAdapter.create_transfer(
        amount_cents=to_minor_units(payment.net_amount),
        destination_account=account.stripe_account_id,
        idempotency_key=payment.idempotency_key,
    )
"""

from payments.adapters.stripe_adapter import (
    AccountLinkResult,
    ConnectedAccountResult,
    CreatePaymentIntentParams,
    CustomerResult,
    IdempotencyKeyGenerator,
    PaymentIntentResult,
    RefundResult,
    StripeAdapter,
    TransferResult,
    to_minor_units,
)

__all__ = [
    "AccountLinkResult",
    "ConnectedAccountResult",
    "CreatePaymentIntentParams",
    "CustomerResult",
    "IdempotencyKeyGenerator",
    "PaymentIntentResult",
    "RefundResult",
    "StripeAdapter",
    "TransferResult",
    "to_minor_units",
]
