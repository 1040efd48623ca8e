"""
Milestone release coordinator.

Releases a READY milestone's amount from escrow to the creator's Stripe
Connect account. The flow is split in three phases so that money never
moves twice and a crash at any point is recoverable:

1. Reserve (atomic): lock milestone and escrow, re-check preconditions,
   insert a PENDING Payment carrying a deterministic idempotency key.
   The conditional unique constraint on Payment.milestone rejects a
   second live reservation for the same milestone.
2. Transfer (no transaction): Stripe create_transfer with that key.
3. Finalize (atomic): Payment COMPLETED, Milestone PAID,
   escrow record_release(amount).

If phase 2 fails permanently the reservation is marked FAILED and the
milestone stays READY for another attempt (with a new key). If it fails
with a transient error the outcome at Stripe is unknown, so the
reservation stays PENDING and reconcile_pending_releases replays it with
the same key later. If phase 3 fails the transfer already happened: a
ConsistencyError is logged at CRITICAL and the PENDING reservation is
left for resume_pending_release.

Usage:
    from payments.services import MilestoneReleaseService

    payment = MilestoneReleaseService().release_milestone(milestone.id, brand_user)
    payment.net_amount  # amount transferred to the creator
"""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import TYPE_CHECKING

from django.db import DatabaseError, IntegrityError
from django.utils import timezone

from django_fsm import TransitionNotAllowed

from contracts.models import Milestone, MilestoneStatus
from core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from core.services import BaseService

from payments.adapters import (
    IdempotencyKeyGenerator,
    StripeAdapter,
    TransferResult,
    to_minor_units,
)
from payments.conf import EscrowConfig
from payments.exceptions import (
    ConsistencyError,
    MilestoneNotFoundError,
    ProcessorError,
    StripeError,
)
from payments.models import ConnectedAccount, EscrowTransaction, Payment
from payments.signals import milestone_released, send_after_commit
from payments.state_machines import PaymentStatus, PaymentType

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from authentication.models import User


logger = logging.getLogger(__name__)

LIVE_PAYMENT_STATUSES = (PaymentStatus.PENDING, PaymentStatus.COMPLETED)


class MilestoneReleaseService(BaseService):
    """
    Service coordinating milestone releases out of escrow.

    Collaborators are injected at construction:
        stripe_adapter: Object exposing the StripeAdapter interface
        config: EscrowConfig providing the fee rate and Stripe credentials
    """

    def __init__(self, stripe_adapter=None, config: EscrowConfig | None = None):
        self.config = config or EscrowConfig.from_settings()
        self.stripe = stripe_adapter or StripeAdapter.with_config(self.config)

    # =========================================================================
    # Release
    # =========================================================================

    def release_milestone(self, milestone_id: uuid.UUID, funder: User) -> Payment:
        """
        Release a READY milestone to the contract's creator.

        Preconditions, first failure wins:
            1. milestone exists                      -> MilestoneNotFoundError
            2. caller is the contract's brand        -> PermissionDeniedError
            3. milestone is READY                    -> ValidationError
            4. no PENDING/COMPLETED payment exists   -> ValidationError
            5. the contract has an escrow            -> ValidationError
            6. escrow is FUNDED/PARTIALLY_RELEASED   -> ValidationError
            7. creator's payout account is ACTIVE    -> ValidationError

        Raises:
            ProcessorError: Stripe transfer failed (nothing was released)
            ConsistencyError: Transfer succeeded but the local finalize failed
        """
        milestone = (
            Milestone.objects.select_related("contract").filter(id=milestone_id).first()
        )
        if milestone is None:
            raise MilestoneNotFoundError(
                "Milestone not found",
                details={"milestone_id": str(milestone_id)},
            )
        if milestone.contract.brand_id != funder.pk:
            raise PermissionDeniedError(
                "Only the contract's brand can release its milestones",
                details={"milestone_id": str(milestone.id)},
            )

        escrow = self._check_release_state(milestone)
        account = self._get_active_account(milestone.contract.creator_id)

        payment = self._reserve(milestone.id, escrow.id)
        transfer = self._transfer(payment, account)
        return self._finalize(payment, transfer)

    def resume_pending_release(self, payment_id: uuid.UUID) -> Payment:
        """
        Finish a release whose reservation is still PENDING.

        Replays the transfer with the stored idempotency key, so Stripe
        returns the original transfer if it already happened, then
        finalizes. Non-PENDING payments are returned unchanged.
        """
        payment = Payment.objects.filter(id=payment_id).first()
        if payment is None:
            raise NotFoundError(
                "Payment not found",
                error_code="PAYMENT_NOT_FOUND",
                details={"payment_id": str(payment_id)},
            )
        if payment.status != PaymentStatus.PENDING:
            return payment

        account = ConnectedAccount.objects.filter(user_id=payment.recipient_id).first()
        if account is None:
            raise ValidationError(
                "Recipient has no payout account",
                error_code="PAYOUT_ACCOUNT_NOT_ACTIVE",
                details={"payment_id": str(payment.id)},
            )

        logger.info(
            "Resuming pending milestone release",
            extra={"payment_id": str(payment.id), "attempt": payment.attempt},
        )
        transfer = self._transfer(payment, account)
        return self._finalize(payment, transfer)

    # =========================================================================
    # Preconditions
    # =========================================================================

    @staticmethod
    def _check_release_state(milestone: Milestone) -> EscrowTransaction:
        """Check preconditions 3-6 and return the contract's escrow."""
        if milestone.status != MilestoneStatus.READY:
            raise ValidationError(
                "Only READY milestones may be released",
                error_code="MILESTONE_NOT_READY",
                details={"milestone_id": str(milestone.id), "status": milestone.status},
            )
        if Payment.objects.filter(
            milestone_id=milestone.id, status__in=LIVE_PAYMENT_STATUSES
        ).exists():
            raise ValidationError(
                "Milestone has already been released or a release is in progress",
                error_code="MILESTONE_ALREADY_RELEASED",
                details={"milestone_id": str(milestone.id)},
            )

        escrow = EscrowTransaction.objects.filter(contract_id=milestone.contract_id).first()
        if escrow is None:
            raise ValidationError(
                "Contract has no escrow",
                error_code="ESCROW_MISSING",
                details={"contract_id": str(milestone.contract_id)},
            )
        if not escrow.can_release:
            raise ValidationError(
                "Escrow must be FUNDED or PARTIALLY_RELEASED to release milestones",
                error_code="ESCROW_NOT_RELEASABLE",
                details={"escrow_id": str(escrow.id), "status": escrow.status},
            )
        return escrow

    @staticmethod
    def _get_active_account(creator_id: int) -> ConnectedAccount:
        account = ConnectedAccount.objects.filter(user_id=creator_id).first()
        if account is None or not account.is_ready_for_payouts:
            raise ValidationError(
                "Creator's payout account is not active",
                error_code="PAYOUT_ACCOUNT_NOT_ACTIVE",
                details={
                    "creator_id": creator_id,
                    "status": account.status if account else "NOT_CONNECTED",
                },
            )
        return account

    # =========================================================================
    # Phases
    # =========================================================================

    def _reserve(self, milestone_id: uuid.UUID, escrow_id: uuid.UUID) -> Payment:
        """Phase 1: insert the PENDING reservation under row locks."""
        idempotency_key = None
        try:
            with self.atomic():
                milestone = (
                    Milestone.objects.select_for_update()
                    .select_related("contract")
                    .get(id=milestone_id)
                )
                escrow = EscrowTransaction.objects.select_for_update().get(id=escrow_id)
                self._check_release_state(milestone)
                if not escrow.can_release:
                    raise ValidationError(
                        "Escrow must be FUNDED or PARTIALLY_RELEASED to release milestones",
                        error_code="ESCROW_NOT_RELEASABLE",
                        details={"escrow_id": str(escrow.id), "status": escrow.status},
                    )
                if milestone.amount > escrow.remaining_amount:
                    raise ValidationError(
                        "Milestone amount exceeds the amount remaining in escrow",
                        error_code="ESCROW_INSUFFICIENT_BALANCE",
                        details={
                            "milestone_id": str(milestone.id),
                            "amount": str(milestone.amount),
                            "remaining_amount": str(escrow.remaining_amount),
                        },
                    )

                attempt = (
                    Payment.objects.filter(
                        milestone_id=milestone.id, status=PaymentStatus.FAILED
                    ).count()
                    + 1
                )
                platform_fee, net_amount = self.config.split(milestone.amount)
                idempotency_key = IdempotencyKeyGenerator.generate(
                    operation="milestone_release",
                    entity_id=milestone.id,
                    attempt=attempt,
                )
                payment = Payment.objects.create(
                    escrow_transaction=escrow,
                    milestone=milestone,
                    recipient_id=milestone.contract.creator_id,
                    amount=milestone.amount,
                    platform_fee=platform_fee,
                    net_amount=net_amount,
                    currency=escrow.currency,
                    payment_type=PaymentType.MILESTONE_RELEASE,
                    idempotency_key=idempotency_key,
                    attempt=attempt,
                )
        except IntegrityError as e:
            # Only a concurrent reservation for the same milestone is a
            # duplicate; any other constraint failure propagates.
            if not self._reservation_exists(milestone_id, idempotency_key):
                raise
            raise ValidationError(
                "Milestone has already been released or a release is in progress",
                error_code="MILESTONE_ALREADY_RELEASED",
                details={"milestone_id": str(milestone_id)},
            ) from e

        logger.info(
            "Milestone release reserved",
            extra={
                "payment_id": str(payment.id),
                "milestone_id": str(milestone_id),
                "amount": str(payment.amount),
                "platform_fee": str(payment.platform_fee),
                "net_amount": str(payment.net_amount),
                "attempt": payment.attempt,
            },
        )
        return payment

    @staticmethod
    def _reservation_exists(milestone_id: uuid.UUID, idempotency_key: str | None) -> bool:
        """True if a live reservation or one with the same key is already stored."""
        if Payment.objects.filter(
            milestone_id=milestone_id, status__in=LIVE_PAYMENT_STATUSES
        ).exists():
            return True
        return (
            idempotency_key is not None
            and Payment.objects.filter(idempotency_key=idempotency_key).exists()
        )

    def _transfer(self, payment: Payment, account: ConnectedAccount) -> TransferResult:
        """Phase 2: Stripe transfer of the net amount, outside any transaction."""
        escrow = payment.escrow_transaction
        try:
            return self.stripe.create_transfer(
                amount_cents=to_minor_units(payment.net_amount),
                destination_account=account.stripe_account_id,
                idempotency_key=payment.idempotency_key,
                currency=payment.currency.lower(),
                metadata={
                    "milestone_id": str(payment.milestone_id),
                    "contract_id": str(escrow.contract_id),
                    "payment_id": str(payment.id),
                    "payment_type": payment.payment_type,
                },
                transfer_group=f"contract_{escrow.contract_id}",
            )
        except StripeError as e:
            if e.is_retryable:
                logger.warning(
                    "Milestone transfer outcome unknown, reservation kept for reconciliation",
                    extra={"payment_id": str(payment.id), "error_code": e.error_code},
                )
            else:
                self._fail_reservation(payment.id, e.message)
            raise ProcessorError.from_stripe_error(
                e,
                operation="create_transfer",
                payment_id=payment.id,
                milestone_id=payment.milestone_id,
            ) from e

    def _fail_reservation(self, payment_id: uuid.UUID, reason: str) -> None:
        with self.atomic():
            payment = Payment.objects.select_for_update().get(id=payment_id)
            if payment.status == PaymentStatus.PENDING:
                payment.fail(reason)
                payment.save()

        logger.warning(
            "Milestone transfer failed, reservation released",
            extra={"payment_id": str(payment_id), "reason": reason},
        )

    def _finalize(self, payment: Payment, transfer: TransferResult) -> Payment:
        """Phase 3: record the transfer on payment, milestone and escrow."""
        try:
            with self.atomic():
                payment = Payment.objects.select_for_update().get(id=payment.id)
                if payment.status == PaymentStatus.COMPLETED:
                    return payment

                milestone = Milestone.objects.select_for_update().get(
                    id=payment.milestone_id
                )
                escrow = EscrowTransaction.objects.select_for_update().get(
                    id=payment.escrow_transaction_id
                )

                payment.complete(stripe_transfer_id=transfer.id)
                payment.save()

                milestone.mark_paid()
                milestone.save(update_fields=["status", "paid_at", "updated_at"])

                escrow.record_release(payment.amount)
                escrow.save()

                send_after_commit(milestone_released, sender=Payment, payment=payment)
        except (DatabaseError, TransitionNotAllowed, ValidationError) as e:
            details = {
                "stripe_transfer_id": transfer.id,
                "payment_id": str(payment.id),
                "milestone_id": str(payment.milestone_id),
                "escrow_id": str(payment.escrow_transaction_id),
            }
            logger.critical(
                "Stripe transfer succeeded but release could not be recorded",
                extra={**details, "error": str(e)},
                exc_info=True,
            )
            raise ConsistencyError(
                "Transfer was sent but could not be recorded",
                details=details,
            ) from e

        logger.info(
            "Milestone released",
            extra={
                "payment_id": str(payment.id),
                "milestone_id": str(payment.milestone_id),
                "escrow_id": str(payment.escrow_transaction_id),
                "stripe_transfer_id": transfer.id,
                "escrow_status": escrow.status,
            },
        )
        return payment

    # =========================================================================
    # Queries
    # =========================================================================

    def payment_history(self, recipient: User, status: str | None = None) -> QuerySet[Payment]:
        """A recipient's payments, newest first, optionally filtered by status."""
        payments = (
            Payment.objects.filter(recipient=recipient)
            .select_related("milestone", "escrow_transaction__contract")
            .order_by("-created_at")
        )
        if status:
            payments = payments.filter(status=status)
        return payments

    def pending_releases_older_than(self, minutes: int | None = None) -> QuerySet[Payment]:
        """PENDING reservations older than the reconciliation grace period."""
        grace = minutes if minutes is not None else self.config.pending_release_grace_minutes
        cutoff = timezone.now() - timedelta(minutes=grace)
        return Payment.objects.filter(
            status=PaymentStatus.PENDING, initiated_at__lt=cutoff
        ).order_by("initiated_at")
