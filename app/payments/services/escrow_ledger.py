"""
Escrow ledger service: escrow creation, funding confirmation and refund.

The ledger owns every write to EscrowTransaction except the per-milestone
release accounting, which MilestoneReleaseService performs through the
model's record_release() transition.

Each operation checks all preconditions before talking to Stripe, then
makes exactly one Stripe call, then commits the local change. Only the
refund calls Stripe while holding the escrow row lock, so it cannot overlap
a milestone release on the same escrow:

    create_escrow:   checks -> customer + PaymentIntent -> insert PENDING_DEPOSIT
    confirm_funding: (webhook) lock row -> PENDING_DEPOSIT -> FUNDED
    refund_escrow:   checks -> lock row -> stage REFUNDED -> Refund -> commit

Usage:
    from payments.services import EscrowLedgerService

    service = EscrowLedgerService()
    creation = service.create_escrow(contract.id, brand_user)
    creation.client_secret  # handed to the brand's client to pay

    escrow = service.refund_escrow(contract.id, brand_user)
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.db import DatabaseError, IntegrityError
from django.db.models import Prefetch

from contracts.models import Contract, ContractStatus
from core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from core.services import BaseService

from payments.adapters import (
    CreatePaymentIntentParams,
    IdempotencyKeyGenerator,
    StripeAdapter,
    to_minor_units,
)
from payments.conf import EscrowConfig
from payments.exceptions import (
    ConsistencyError,
    EscrowNotFoundError,
    ProcessorError,
    StripeError,
)
from payments.models import EscrowTransaction, Payment
from payments.signals import escrow_funded, send_after_commit
from payments.state_machines import EscrowStatus, PaymentStatus

if TYPE_CHECKING:
    from decimal import Decimal

    from django.db.models import QuerySet

    from authentication.models import User
    from payments.adapters import RefundResult


logger = logging.getLogger(__name__)


@dataclass
class EscrowCreation:
    """
    Result of create_escrow.

    Attributes:
        escrow: The new EscrowTransaction in PENDING_DEPOSIT
        client_secret: PaymentIntent client secret for the brand's client
    """

    escrow: EscrowTransaction
    client_secret: str | None


class EscrowLedgerService(BaseService):
    """
    Service for escrow lifecycle operations.

    Collaborators are injected at construction:
        stripe_adapter: Object exposing the StripeAdapter interface
            (StripeAdapter bound to the config by default)
        config: EscrowConfig (read from settings by default)
    """

    def __init__(self, stripe_adapter=None, config: EscrowConfig | None = None):
        self.config = config or EscrowConfig.from_settings()
        self.stripe = stripe_adapter or StripeAdapter.with_config(self.config)

    # =========================================================================
    # Create
    # =========================================================================

    def create_escrow(self, contract_id: uuid.UUID, funder: User) -> EscrowCreation:
        """
        Open an escrow for a contract and create the deposit PaymentIntent.

        Raises:
            NotFoundError: Contract does not exist
            PermissionDeniedError: Caller is not the contract's brand
            ValidationError: Contract is not ACTIVE
            ConflictError: An escrow already exists for the contract
            ProcessorError: Stripe customer or PaymentIntent creation failed
        """
        contract = Contract.objects.filter(id=contract_id).first()
        if contract is None:
            raise NotFoundError(
                "Contract not found",
                error_code="CONTRACT_NOT_FOUND",
                details={"contract_id": str(contract_id)},
            )
        if contract.brand_id != funder.pk:
            raise PermissionDeniedError(
                "Only the contract's brand can fund its escrow",
                details={"contract_id": str(contract.id)},
            )
        if contract.status != ContractStatus.ACTIVE:
            raise ValidationError(
                "Contract must be ACTIVE to fund escrow",
                error_code="CONTRACT_NOT_ACTIVE",
                details={"contract_id": str(contract.id), "status": contract.status},
            )
        if EscrowTransaction.objects.filter(contract=contract).exists():
            raise ConflictError(
                "Escrow already exists for this contract",
                error_code="ESCROW_ALREADY_EXISTS",
                details={"contract_id": str(contract.id)},
            )

        platform_fee = self.config.platform_fee(contract.total_amount)
        customer_id = self._ensure_customer(funder)

        try:
            intent = self.stripe.create_payment_intent(
                CreatePaymentIntentParams(
                    amount_cents=to_minor_units(contract.total_amount),
                    currency=contract.currency.lower(),
                    idempotency_key=IdempotencyKeyGenerator.generate(
                        operation="escrow_intent", entity_id=contract.id
                    ),
                    customer_id=customer_id,
                    description=f"Escrow for contract {contract.contract_number}",
                    metadata={
                        "contract_id": str(contract.id),
                        "escrow": "true",
                        "type": "escrow",
                    },
                )
            )
        except StripeError as e:
            raise ProcessorError.from_stripe_error(
                e, operation="create_payment_intent", contract_id=contract.id
            ) from e

        try:
            with self.atomic():
                escrow = EscrowTransaction.objects.create(
                    contract=contract,
                    brand_id=contract.brand_id,
                    creator_id=contract.creator_id,
                    total_amount=contract.total_amount,
                    platform_fee=platform_fee,
                    currency=contract.currency,
                    stripe_payment_intent_id=intent.id,
                )
        except IntegrityError as e:
            raise ConflictError(
                "Escrow already exists for this contract",
                error_code="ESCROW_ALREADY_EXISTS",
                details={"contract_id": str(contract.id)},
            ) from e

        logger.info(
            "Escrow created",
            extra={
                "escrow_id": str(escrow.id),
                "contract_id": str(contract.id),
                "total_amount": str(escrow.total_amount),
                "platform_fee": str(platform_fee),
                "payment_intent_id": intent.id,
            },
        )
        return EscrowCreation(escrow=escrow, client_secret=intent.client_secret)

    def _ensure_customer(self, funder: User) -> str:
        """Return the funder's Stripe customer id, creating it when absent."""
        if funder.stripe_customer_id:
            return funder.stripe_customer_id

        try:
            customer = self.stripe.create_customer(
                email=funder.email,
                idempotency_key=IdempotencyKeyGenerator.generate(
                    operation="stripe_customer", entity_id=funder.pk
                ),
                metadata={"user_id": str(funder.pk)},
            )
        except StripeError as e:
            raise ProcessorError.from_stripe_error(
                e, operation="create_customer", user_id=funder.pk
            ) from e

        funder.stripe_customer_id = customer.id
        funder.save(update_fields=["stripe_customer_id", "updated_at"])
        logger.info(
            "Stripe customer created",
            extra={"user_id": funder.pk, "stripe_customer_id": customer.id},
        )
        return customer.id

    # =========================================================================
    # Funding
    # =========================================================================

    def confirm_funding(self, payment_intent_id: str) -> EscrowTransaction:
        """
        Mark the escrow behind a PaymentIntent as FUNDED.

        Idempotent: an escrow already past PENDING_DEPOSIT is returned
        unchanged, so redelivered webhooks are harmless.

        Raises:
            EscrowNotFoundError: No escrow references the PaymentIntent
        """
        with self.atomic():
            escrow = (
                EscrowTransaction.objects.select_for_update()
                .filter(stripe_payment_intent_id=payment_intent_id)
                .first()
            )
            if escrow is None:
                raise EscrowNotFoundError(
                    "No escrow for payment intent",
                    details={"payment_intent_id": payment_intent_id},
                )

            if escrow.status != EscrowStatus.PENDING_DEPOSIT:
                logger.info(
                    "Escrow funding already confirmed",
                    extra={"escrow_id": str(escrow.id), "status": escrow.status},
                )
                return escrow

            escrow.confirm_funding()
            escrow.save()
            send_after_commit(escrow_funded, sender=EscrowTransaction, escrow=escrow)

        logger.info(
            "Escrow funded",
            extra={
                "escrow_id": str(escrow.id),
                "contract_id": str(escrow.contract_id),
                "payment_intent_id": payment_intent_id,
            },
        )
        return escrow

    # =========================================================================
    # Refund
    # =========================================================================

    def refund_escrow(self, contract_id: uuid.UUID, funder: User) -> EscrowTransaction:
        """
        Refund a FUNDED escrow to the brand.

        The escrow row stays locked from the state checks through the Stripe
        call to the commit, and the REFUNDED transition is staged before the
        call. A release reserving against the same escrow waits on the lock
        and then finds it REFUNDED; a Stripe failure rolls the transition
        back, so the row is only ever committed after Stripe succeeded.

        Raises:
            EscrowNotFoundError: No escrow for the contract
            PermissionDeniedError: Caller is not the escrow's brand
            ValidationError: Escrow is not FUNDED, a release is in flight,
                or nothing is refundable
            ProcessorError: Stripe refund failed (escrow untouched)
            ConsistencyError: Stripe refunded but the local commit failed
        """
        escrow = EscrowTransaction.objects.filter(contract_id=contract_id).first()
        if escrow is None:
            raise EscrowNotFoundError(
                "No escrow for this contract",
                details={"contract_id": str(contract_id)},
            )
        if escrow.brand_id != funder.pk:
            raise PermissionDeniedError(
                "Only the contract's brand can refund its escrow",
                details={"escrow_id": str(escrow.id)},
            )

        refund = None
        try:
            with self.atomic():
                escrow = EscrowTransaction.objects.select_for_update().get(id=escrow.id)
                refundable = self._check_refundable(escrow)

                escrow.record_refund(refundable)
                escrow.save()

                refund = self._create_refund(escrow, refundable)
        except DatabaseError as e:
            if refund is None:
                raise
            details = {
                "stripe_refund_id": refund.id,
                "escrow_id": str(escrow.id),
                "contract_id": str(contract_id),
                "amount": str(escrow.refunded_amount),
            }
            logger.critical(
                "Stripe refund succeeded but escrow update failed",
                extra={**details, "error": str(e)},
                exc_info=True,
            )
            raise ConsistencyError(
                "Refund was issued but could not be recorded",
                details=details,
            ) from e

        logger.info(
            "Escrow refunded",
            extra={
                "escrow_id": str(escrow.id),
                "stripe_refund_id": refund.id,
                "amount": str(escrow.refunded_amount),
            },
        )
        return escrow

    @staticmethod
    def _check_refundable(escrow: EscrowTransaction) -> Decimal:
        """State checks on the locked escrow; returns the refundable amount."""
        if escrow.status != EscrowStatus.FUNDED:
            raise ValidationError(
                "Only FUNDED escrows can be refunded",
                error_code="ESCROW_NOT_REFUNDABLE",
                details={"escrow_id": str(escrow.id), "status": escrow.status},
            )
        if escrow.payments.filter(status=PaymentStatus.PENDING).exists():
            raise ValidationError(
                "A milestone release is in progress for this escrow",
                error_code="RELEASE_IN_PROGRESS",
                details={"escrow_id": str(escrow.id)},
            )

        refundable = escrow.total_amount - escrow.released_amount
        if refundable <= 0:
            raise ValidationError(
                "Nothing left to refund",
                error_code="NOTHING_TO_REFUND",
                details={"escrow_id": str(escrow.id)},
            )
        return refundable

    def _create_refund(self, escrow: EscrowTransaction, amount: Decimal) -> RefundResult:
        try:
            return self.stripe.create_refund(
                payment_intent_id=escrow.stripe_payment_intent_id,
                idempotency_key=IdempotencyKeyGenerator.generate(
                    operation="escrow_refund", entity_id=escrow.id
                ),
                amount_cents=to_minor_units(amount),
                reason="requested_by_customer",
                metadata={
                    "escrow_id": str(escrow.id),
                    "contract_id": str(escrow.contract_id),
                },
            )
        except StripeError as e:
            raise ProcessorError.from_stripe_error(
                e, operation="create_refund", escrow_id=escrow.id
            ) from e


    # =========================================================================
    # Queries
    # =========================================================================

    def get_escrow_for_contract(
        self, contract_id: uuid.UUID, user: User
    ) -> EscrowTransaction:
        """
        Fetch a contract's escrow with its payments, newest first.

        Raises:
            EscrowNotFoundError: No escrow for the contract
            PermissionDeniedError: User is neither the brand nor the creator
        """
        escrow = (
            EscrowTransaction.objects.select_related("contract")
            .prefetch_related(
                Prefetch("payments", queryset=Payment.objects.order_by("-created_at"))
            )
            .filter(contract_id=contract_id)
            .first()
        )
        if escrow is None:
            raise EscrowNotFoundError(
                "No escrow for this contract",
                details={"contract_id": str(contract_id)},
            )
        if user.pk not in (escrow.brand_id, escrow.creator_id):
            raise PermissionDeniedError(
                "Only the contract's parties can view its escrow",
                details={"contract_id": str(contract_id)},
            )
        return escrow

    def list_brand_escrows(self, brand: User) -> QuerySet[EscrowTransaction]:
        """Escrows funded by a brand, newest first."""
        return (
            EscrowTransaction.objects.filter(brand=brand)
            .select_related("contract")
            .order_by("-created_at")
        )
