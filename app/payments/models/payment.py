"""
Payment model for milestone releases out of escrow.

A Payment is created as a PENDING reservation before the Stripe transfer
is attempted. The conditional unique constraint on milestone allows at
most one PENDING or COMPLETED payment per milestone, which is what makes
a double release impossible even under concurrent requests.

Usage:
    from payments.models import Payment

    payment = Payment.objects.create(
        escrow_transaction=escrow,
        milestone=milestone,
        recipient=contract.creator,
        amount=Decimal("400.00"),
        platform_fee=Decimal("40.00"),
        net_amount=Decimal("360.00"),
        currency="USD",
        idempotency_key=key,
    )

    payment.complete(stripe_transfer_id="tr_123")  # PENDING -> COMPLETED
    payment.save()
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import PaymentStatus, PaymentType


class Payment(UUIDPrimaryKeyMixin, BaseModel):
    """
    An outbound payment from escrow to the creator.

    State Flow:
        PENDING -> COMPLETED   (Stripe transfer succeeded and was recorded)
        PENDING -> FAILED      (Stripe transfer failed; milestone may be retried)

    COMPLETED payments are never modified afterwards.

    Fields:
        escrow_transaction: Escrow the money comes out of
        milestone: Milestone this payment releases
        recipient: User receiving the transfer
        amount: Gross milestone amount taken out of escrow
        platform_fee: Fee retained by the platform
        net_amount: amount - platform_fee, the transferred amount
        currency: ISO 4217 currency code
        status: Current FSM state
        payment_type: Kind of payment
        stripe_transfer_id: Stripe Transfer ID once the transfer exists
        idempotency_key: Key sent to Stripe for the transfer
        attempt: Release attempt number for this milestone (1-based)
    """

    escrow_transaction = models.ForeignKey(
        "payments.EscrowTransaction",
        on_delete=models.PROTECT,
        related_name="payments",
        help_text="Escrow this payment is drawn from",
    )

    milestone = models.ForeignKey(
        "contracts.Milestone",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payments",
        help_text="Milestone released by this payment",
    )

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="received_payments",
        help_text="User receiving the transfer",
    )

    # ==========================================================================
    # Amounts
    # ==========================================================================

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Gross amount released from escrow",
    )

    platform_fee = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Platform fee retained on this release",
    )

    net_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Amount transferred to the recipient (amount - platform_fee)",
    )

    currency = models.CharField(
        max_length=3,
        default="USD",
        help_text="ISO 4217 currency code (e.g., 'USD')",
    )

    status = FSMField(
        default=PaymentStatus.PENDING,
        choices=PaymentStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current payment state (managed by FSM)",
    )

    payment_type = models.CharField(
        max_length=32,
        choices=PaymentType.choices,
        default=PaymentType.MILESTONE_RELEASE,
        help_text="Kind of outbound payment",
    )

    # ==========================================================================
    # Stripe Integration
    # ==========================================================================

    stripe_transfer_id = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
        help_text="Stripe Transfer ID (tr_xxx)",
    )

    idempotency_key = models.CharField(
        max_length=255,
        unique=True,
        help_text="Idempotency key used for the Stripe transfer",
    )

    attempt = models.PositiveSmallIntegerField(
        default=1,
        help_text="Release attempt number for the milestone",
    )

    # ==========================================================================
    # Timestamps & Failure
    # ==========================================================================

    initiated_at = models.DateTimeField(
        default=timezone.now,
        help_text="When the release was reserved",
    )

    completed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the transfer was recorded as completed",
    )

    failed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the transfer failed",
    )

    failure_reason = models.TextField(
        blank=True,
        default="",
        help_text="Processor error message for failed transfers",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        indexes = [
            models.Index(fields=["recipient", "status"], name="payment_recipient_status_idx"),
            models.Index(fields=["status", "initiated_at"], name="payment_status_initiated_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["milestone"],
                condition=models.Q(
                    status__in=[PaymentStatus.PENDING, PaymentStatus.COMPLETED]
                ),
                name="payment_one_live_per_milestone",
            ),
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="payment_amount_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(
                    net_amount=models.F("amount") - models.F("platform_fee")
                ),
                name="payment_net_equals_amount_minus_fee",
            ),
        ]

    def __str__(self) -> str:
        return f"Payment({self.id}, {self.status}, {self.net_amount} {self.currency})"

    @property
    def is_pending(self) -> bool:
        return self.status == PaymentStatus.PENDING

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.COMPLETED,
    )
    def complete(self, stripe_transfer_id: str):
        """
        Record the successful Stripe transfer.

        Transition: PENDING -> COMPLETED
        """
        self.stripe_transfer_id = stripe_transfer_id
        self.completed_at = timezone.now()

    @transition(
        field=status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.FAILED,
    )
    def fail(self, reason: str | None = None):
        """
        Mark the transfer as failed and free the milestone.

        Transition: PENDING -> FAILED
        """
        self.failed_at = timezone.now()
        if reason:
            self.failure_reason = reason
