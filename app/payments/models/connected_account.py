"""
ConnectedAccount model for Stripe Connect payout accounts.

Each creator who can receive milestone releases has one ConnectedAccount.
A user without a row is reported as NOT_CONNECTED. Rows are never deleted;
the cached status is refreshed from Stripe on demand and from the
account.updated webhook.

Usage:
    from payments.models import ConnectedAccount
    from payments.state_machines import ConnectStatus

    account = ConnectedAccount.objects.create(
        user=creator,
        stripe_account_id="acct_1234567890",
    )

    changed = account.apply_processor_state(
        details_submitted=True, payouts_enabled=True, charges_enabled=True
    )
    if changed:
        account.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import BaseModel, VersionedModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import ConnectStatus


class ConnectedAccount(UUIDPrimaryKeyMixin, VersionedModel, BaseModel):
    """
    A user's Stripe Connect account reference.

    Status mapping from Stripe account flags:
        details_submitted=False                         -> PENDING
        details_submitted=True, payouts_enabled=False   -> RESTRICTED
        details_submitted=True, payouts_enabled=True    -> ACTIVE

    Only ACTIVE accounts may receive milestone transfers.

    Note:
        The user field uses PROTECT so a user with payout history can't
        be removed by accident.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="connected_account",
        help_text="User this payout account belongs to",
    )

    stripe_account_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Account ID (acct_xxx)",
    )

    status = models.CharField(
        max_length=20,
        choices=ConnectStatus.choices,
        default=ConnectStatus.PENDING,
        db_index=True,
        help_text="Cached Stripe Connect status",
    )

    details_submitted = models.BooleanField(
        default=False,
        help_text="Whether the user finished the Stripe onboarding form",
    )

    payouts_enabled = models.BooleanField(
        default=False,
        help_text="Whether Stripe has enabled payouts for this account",
    )

    charges_enabled = models.BooleanField(
        default=False,
        help_text="Whether Stripe has enabled charges for this account",
    )

    last_synced_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the cached flags were last read from Stripe",
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Arbitrary JSON metadata (e.g., country, business type)",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Connected Account"
        verbose_name_plural = "Connected Accounts"

    def __str__(self) -> str:
        return f"ConnectedAccount({self.stripe_account_id}, {self.status})"

    @staticmethod
    def status_from_flags(details_submitted: bool, payouts_enabled: bool) -> str:
        """Map Stripe account flags to a ConnectStatus value."""
        if not details_submitted:
            return ConnectStatus.PENDING
        if not payouts_enabled:
            return ConnectStatus.RESTRICTED
        return ConnectStatus.ACTIVE

    @property
    def is_ready_for_payouts(self) -> bool:
        return self.status == ConnectStatus.ACTIVE

    def apply_processor_state(
        self,
        details_submitted: bool,
        payouts_enabled: bool,
        charges_enabled: bool,
    ) -> bool:
        """
        Copy Stripe's account flags onto this row and recompute status.

        Always stamps last_synced_at. Does not save - caller must save.

        Returns:
            True if status or any flag changed
        """
        new_status = self.status_from_flags(details_submitted, payouts_enabled)
        changed = (
            self.status != new_status
            or self.details_submitted != details_submitted
            or self.payouts_enabled != payouts_enabled
            or self.charges_enabled != charges_enabled
        )
        self.status = new_status
        self.details_submitted = details_submitted
        self.payouts_enabled = payouts_enabled
        self.charges_enabled = charges_enabled
        self.last_synced_at = timezone.now()
        return changed
