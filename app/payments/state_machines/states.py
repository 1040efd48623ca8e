"""
State enums for payment models.

This module defines all state enums used by payment models with django-fsm.
These are Django TextChoices for database storage and admin integration.

State Machines Overview:

EscrowTransaction States:
    PENDING_DEPOSIT → FUNDED → PARTIALLY_RELEASED → FULLY_RELEASED
    FUNDED → FULLY_RELEASED (single release covering the total)
    FUNDED → REFUNDED

Payment States:
    PENDING → COMPLETED
    PENDING → FAILED (milestone can be released again)
"""

from django.db import models


class EscrowStatus(models.TextChoices):
    """
    States for the EscrowTransaction lifecycle.

    Terminal states: FULLY_RELEASED, REFUNDED

    State Flow:
        PENDING_DEPOSIT → FUNDED               (PaymentIntent succeeded)
        FUNDED → PARTIALLY_RELEASED            (first milestone released)
        PARTIALLY_RELEASED → PARTIALLY_RELEASED
        FUNDED/PARTIALLY_RELEASED → FULLY_RELEASED
        FUNDED → REFUNDED                      (brand reclaims the deposit)
    """

    PENDING_DEPOSIT = "PENDING_DEPOSIT", "Pending Deposit"
    FUNDED = "FUNDED", "Funded"
    PARTIALLY_RELEASED = "PARTIALLY_RELEASED", "Partially Released"
    FULLY_RELEASED = "FULLY_RELEASED", "Fully Released"
    REFUNDED = "REFUNDED", "Refunded"


class PaymentStatus(models.TextChoices):
    """
    States for a milestone release Payment.

    A PENDING payment is a reservation: it blocks a second release of the
    same milestone while the transfer is in flight. FAILED releases the
    reservation so the milestone can be released again.
    """

    PENDING = "PENDING", "Pending"
    COMPLETED = "COMPLETED", "Completed"
    FAILED = "FAILED", "Failed"


class PaymentType(models.TextChoices):
    """Kinds of outbound payments recorded against an escrow."""

    MILESTONE_RELEASE = "MILESTONE_RELEASE", "Milestone Release"


class ConnectStatus(models.TextChoices):
    """
    Stripe Connect payout account status.

    NOT_CONNECTED is never stored; it is reported when a user has no
    ConnectedAccount row. Only ACTIVE accounts can receive transfers.
    """

    NOT_CONNECTED = "NOT_CONNECTED", "Not Connected"
    PENDING = "PENDING", "Pending"
    RESTRICTED = "RESTRICTED", "Restricted"
    ACTIVE = "ACTIVE", "Active"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    Tracks the lifecycle of webhook event processing for idempotency.

    State Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED (can retry)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


__all__ = [
    "EscrowStatus",
    "PaymentStatus",
    "PaymentType",
    "ConnectStatus",
    "WebhookEventStatus",
]
