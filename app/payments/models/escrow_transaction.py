"""
EscrowTransaction model for contract escrow lifecycle management.

One EscrowTransaction exists per contract. It records the amount the brand
deposited through a Stripe PaymentIntent and how much of it has since been
released to the creator or refunded to the brand.

Usage:
    from payments.models import EscrowTransaction
    from payments.state_machines import EscrowStatus

    escrow = EscrowTransaction.objects.create(
        contract=contract,
        brand=contract.brand,
        creator=contract.creator,
        total_amount=contract.total_amount,
        platform_fee=Decimal("100.00"),
        currency="USD",
        stripe_payment_intent_id="pi_123",
    )

    # State transitions using django-fsm
    escrow.confirm_funding()          # PENDING_DEPOSIT -> FUNDED
    escrow.save()

    escrow.record_release(Decimal("400.00"))  # -> PARTIALLY_RELEASED
    escrow.save()
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import RETURN_VALUE, FSMField, transition

from core.exceptions import ValidationError
from core.models import BaseModel, VersionedModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import EscrowStatus


class EscrowTransaction(UUIDPrimaryKeyMixin, VersionedModel, BaseModel):
    """
    Money held in escrow for a single contract.

    Invariants (enforced by check constraints and by the transitions):
        0 <= released_amount + refunded_amount <= total_amount
        REFUNDED implies released_amount == 0
        FULLY_RELEASED implies released_amount == total_amount

    State Flow:
        PENDING_DEPOSIT -> FUNDED -> PARTIALLY_RELEASED -> FULLY_RELEASED
        FUNDED -> REFUNDED

    Fields:
        contract: The contract this escrow backs (one escrow per contract)
        brand: User who funded the escrow
        creator: User receiving milestone releases
        total_amount: Amount deposited (equals the contract total)
        platform_fee: Platform fee on the total, informational
        currency: ISO 4217 currency code
        released_amount: Sum of gross amounts of completed releases
        refunded_amount: Amount returned to the brand
        status: Current FSM state
        stripe_payment_intent_id: PaymentIntent used to collect the deposit
        funded_at / released_at / refunded_at: Lifecycle timestamps
        version: Optimistic locking counter
    """

    contract = models.OneToOneField(
        "contracts.Contract",
        on_delete=models.PROTECT,
        related_name="escrow",
        help_text="Contract backed by this escrow",
    )

    brand = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="funded_escrows",
        help_text="Brand user who funded the escrow",
    )

    creator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payee_escrows",
        help_text="Creator user receiving milestone releases",
    )

    # ==========================================================================
    # Amounts
    # ==========================================================================

    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Total amount deposited into escrow",
    )

    platform_fee = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Platform fee computed on the total at creation",
    )

    currency = models.CharField(
        max_length=3,
        default="USD",
        help_text="ISO 4217 currency code (e.g., 'USD')",
    )

    released_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Gross amount released to the creator so far",
    )

    refunded_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Amount refunded to the brand",
    )

    status = FSMField(
        default=EscrowStatus.PENDING_DEPOSIT,
        choices=EscrowStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current escrow state (managed by FSM)",
    )

    # ==========================================================================
    # Stripe Integration
    # ==========================================================================

    stripe_payment_intent_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe PaymentIntent ID (pi_xxx) collecting the deposit",
    )

    # ==========================================================================
    # Timestamps
    # ==========================================================================

    funded_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the deposit was confirmed by Stripe",
    )

    released_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the most recent milestone release was recorded",
    )

    refunded_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the escrow was refunded",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Escrow Transaction"
        verbose_name_plural = "Escrow Transactions"
        indexes = [
            models.Index(fields=["brand", "status"], name="escrow_brand_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_amount__gt=0),
                name="escrow_total_amount_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(platform_fee__gte=0)
                & models.Q(released_amount__gte=0)
                & models.Q(refunded_amount__gte=0),
                name="escrow_amounts_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(
                    total_amount__gte=models.F("released_amount")
                    + models.F("refunded_amount")
                ),
                name="escrow_released_plus_refunded_within_total",
            ),
        ]

    def __str__(self) -> str:
        return f"EscrowTransaction({self.id}, {self.status}, {self.total_amount} {self.currency})"

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def remaining_amount(self) -> Decimal:
        """Amount still held: total minus released minus refunded."""
        return self.total_amount - self.released_amount - self.refunded_amount

    @property
    def can_release(self) -> bool:
        return self.status in (EscrowStatus.FUNDED, EscrowStatus.PARTIALLY_RELEASED)

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=EscrowStatus.PENDING_DEPOSIT,
        target=EscrowStatus.FUNDED,
    )
    def confirm_funding(self):
        """
        Mark the deposit as received.

        Transition: PENDING_DEPOSIT -> FUNDED
        """
        self.funded_at = timezone.now()

    @transition(
        field=status,
        source=[EscrowStatus.FUNDED, EscrowStatus.PARTIALLY_RELEASED],
        target=RETURN_VALUE(
            EscrowStatus.PARTIALLY_RELEASED, EscrowStatus.FULLY_RELEASED
        ),
    )
    def record_release(self, amount: Decimal):
        """
        Add a completed milestone release to the released total.

        Transition: FUNDED/PARTIALLY_RELEASED -> PARTIALLY_RELEASED
                    or FULLY_RELEASED when the whole total is released

        Raises:
            ValidationError: If the amount is not positive or would push
                released + refunded above the total. The state is left
                unchanged.
        """
        if amount <= 0:
            raise ValidationError(
                "Release amount must be positive",
                details={"amount": str(amount)},
            )
        if amount > self.remaining_amount:
            raise ValidationError(
                "Release exceeds the amount remaining in escrow",
                error_code="ESCROW_INSUFFICIENT_BALANCE",
                details={
                    "amount": str(amount),
                    "remaining_amount": str(self.remaining_amount),
                },
            )
        self.released_amount += amount
        self.released_at = timezone.now()
        if self.released_amount == self.total_amount:
            return EscrowStatus.FULLY_RELEASED
        return EscrowStatus.PARTIALLY_RELEASED

    @transition(
        field=status,
        source=EscrowStatus.FUNDED,
        target=EscrowStatus.REFUNDED,
    )
    def record_refund(self, amount: Decimal):
        """
        Record the refund of the escrow to the brand.

        Transition: FUNDED -> REFUNDED
        """
        if amount <= 0 or amount > self.remaining_amount:
            raise ValidationError(
                "Refund amount must be positive and within the escrow balance",
                details={
                    "amount": str(amount),
                    "remaining_amount": str(self.remaining_amount),
                },
            )
        self.refunded_amount += amount
        self.refunded_at = timezone.now()
