"""
Contract and Milestone models.

A Contract binds a brand (funder) to a creator (payee) for a total amount.
A Milestone is a payable slice of that contract. The escrow engine reads
both and only ever writes Milestone.status = PAID (with paid_at).

Usage:
    from contracts.models import Contract, ContractStatus, Milestone

    contract = Contract.objects.create(
        brand=brand,
        creator=creator,
        contract_number="CT-2026-0001",
        title="Spring campaign",
        total_amount=Decimal("1000.00"),
        status=ContractStatus.ACTIVE,
    )
    Milestone.objects.create(
        contract=contract, title="Teaser", amount=Decimal("400.00"), order_index=0
    )
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin


class ContractStatus(models.TextChoices):
    """
    Contract lifecycle states.

    Only ACTIVE contracts can be funded.
    """

    DRAFT = "DRAFT", "Draft"
    PENDING_CREATOR_SIGNATURE = "PENDING_CREATOR_SIGNATURE", "Pending Creator Signature"
    PENDING_BRAND_SIGNATURE = "PENDING_BRAND_SIGNATURE", "Pending Brand Signature"
    ACTIVE = "ACTIVE", "Active"
    COMPLETED = "COMPLETED", "Completed"
    CANCELLED = "CANCELLED", "Cancelled"


class MilestoneStatus(models.TextChoices):
    """
    Milestone lifecycle states.

    PENDING → IN_PROGRESS → READY are driven by the deliverable workflow.
    READY → PAID is driven by the release coordinator only.
    """

    PENDING = "PENDING", "Pending"
    IN_PROGRESS = "IN_PROGRESS", "In Progress"
    READY = "READY", "Ready for Release"
    PAID = "PAID", "Paid"
    CANCELLED = "CANCELLED", "Cancelled"


class Contract(UUIDPrimaryKeyMixin, BaseModel):
    """
    Agreement between a brand and a creator.

    Fields:
        contract_number: Human-readable unique reference
        brand: User funding the contract
        creator: User delivering the work and receiving payouts
        title: Short description
        total_amount: Contract value, the amount placed in escrow
        currency: ISO 4217 code (upper case)
        status: Contract lifecycle state
    """

    contract_number = models.CharField(
        max_length=50,
        unique=True,
        help_text="Human-readable contract reference",
    )

    brand = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="brand_contracts",
        help_text="Brand user funding this contract",
    )

    creator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="creator_contracts",
        help_text="Creator user receiving milestone payouts",
    )

    title = models.CharField(
        max_length=200,
        blank=True,
        default="",
        help_text="Short description of the engagement",
    )

    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Total contract value in major currency units",
    )

    currency = models.CharField(
        max_length=3,
        default="USD",
        help_text="ISO 4217 currency code (e.g., 'USD')",
    )

    status = models.CharField(
        max_length=32,
        choices=ContractStatus.choices,
        default=ContractStatus.DRAFT,
        db_index=True,
        help_text="Current contract lifecycle state",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Contract"
        verbose_name_plural = "Contracts"
        indexes = [
            models.Index(fields=["brand", "status"], name="contract_brand_status_idx"),
            models.Index(fields=["creator", "status"], name="contract_creator_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_amount__gt=0),
                name="contract_total_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Contract({self.contract_number}, {self.status})"

    def is_party(self, user) -> bool:
        """Whether the user is the brand or the creator on this contract."""
        return user.pk in (self.brand_id, self.creator_id)


class Milestone(UUIDPrimaryKeyMixin, BaseModel):
    """
    A payable slice of a contract.

    Fields:
        contract: Parent contract
        title: Deliverable name
        description: Optional details
        amount: Gross amount released for this milestone
        percentage: Optional share of the contract total
        due_date: Optional delivery date
        order_index: Position within the contract
        status: Milestone lifecycle state
        completed_at: When the deliverable was accepted
        paid_at: When the release was finalized
    """

    contract = models.ForeignKey(
        Contract,
        on_delete=models.CASCADE,
        related_name="milestones",
        help_text="Contract this milestone belongs to",
    )

    title = models.CharField(
        max_length=200,
        help_text="Deliverable name",
    )

    description = models.TextField(
        blank=True,
        default="",
        help_text="Deliverable details",
    )

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Gross amount released when this milestone is paid",
    )

    percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Share of the contract total (informational)",
    )

    due_date = models.DateField(
        null=True,
        blank=True,
        help_text="Expected delivery date",
    )

    order_index = models.PositiveIntegerField(
        default=0,
        help_text="Position of this milestone within the contract",
    )

    status = models.CharField(
        max_length=20,
        choices=MilestoneStatus.choices,
        default=MilestoneStatus.PENDING,
        db_index=True,
        help_text="Current milestone lifecycle state",
    )

    completed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the deliverable was accepted",
    )

    paid_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the milestone release was finalized",
    )

    class Meta:
        ordering = ["contract", "order_index"]
        verbose_name = "Milestone"
        verbose_name_plural = "Milestones"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="milestone_amount_positive",
            ),
            models.UniqueConstraint(
                fields=["contract", "order_index"],
                name="milestone_unique_order_per_contract",
            ),
        ]

    def __str__(self) -> str:
        return f"Milestone({self.title}, {self.amount}, {self.status})"

    @property
    def is_ready(self) -> bool:
        return self.status == MilestoneStatus.READY

    def mark_paid(self) -> None:
        """
        Mark the milestone as paid.

        Note: Does not save - caller must save after calling.
        """
        self.status = MilestoneStatus.PAID
        self.paid_at = timezone.now()
