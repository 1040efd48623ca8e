"""
Payout account manager for creators' Stripe Connect accounts.

Usage:
    from payments.services import PayoutAccountService

    service = PayoutAccountService()
    link = service.ensure_onboarding_link(creator, "https://app.example.com/payouts")
    redirect(link.url)

    snapshot = service.refresh_connect_status(creator)
    snapshot.status  # NOT_CONNECTED / PENDING / RESTRICTED / ACTIVE
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from django.db import IntegrityError

from core.services import BaseService

from payments.adapters import IdempotencyKeyGenerator, StripeAdapter
from payments.conf import EscrowConfig
from payments.exceptions import ProcessorError, StripeError
from payments.models import ConnectedAccount
from payments.signals import payout_account_activated, send_after_commit
from payments.state_machines import ConnectStatus

if TYPE_CHECKING:
    from authentication.models import User


logger = logging.getLogger(__name__)


@dataclass
class OnboardingLink:
    url: str
    stripe_account_id: str


@dataclass
class ConnectStatusSnapshot:
    """Payout account status as reported to the creator."""

    status: str
    details_submitted: bool = False
    payouts_enabled: bool = False
    charges_enabled: bool = False

    @classmethod
    def from_account(cls, account: ConnectedAccount) -> ConnectStatusSnapshot:
        return cls(
            status=account.status,
            details_submitted=account.details_submitted,
            payouts_enabled=account.payouts_enabled,
            charges_enabled=account.charges_enabled,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def with_query_flag(url: str, flag: str) -> str:
    """Append flag=true to a URL's query string, keeping existing params."""
    scheme, netloc, path, query, fragment = urlsplit(url)
    params = parse_qsl(query, keep_blank_values=True)
    params.append((flag, "true"))
    return urlunsplit((scheme, netloc, path, urlencode(params), fragment))


class PayoutAccountService(BaseService):
    """
    Service managing Stripe Connect payout accounts.

    Status mapping (see ConnectedAccount.status_from_flags):
        details_submitted=False                       -> PENDING
        details_submitted=True, payouts_enabled=False -> RESTRICTED
        details_submitted=True, payouts_enabled=True  -> ACTIVE
    """

    def __init__(self, stripe_adapter=None, config: EscrowConfig | None = None):
        self.config = config or EscrowConfig.from_settings()
        self.stripe = stripe_adapter or StripeAdapter.with_config(self.config)

    def ensure_onboarding_link(self, user: User, return_url: str) -> OnboardingLink:
        """
        Return a fresh Stripe onboarding link, creating the account if needed.

        Raises:
            ProcessorError: Stripe account or link creation failed
        """
        account = ConnectedAccount.objects.filter(user=user).first()
        if account is None:
            account = self._create_account(user)

        try:
            link = self.stripe.create_account_link(
                account_id=account.stripe_account_id,
                refresh_url=with_query_flag(return_url, "refresh"),
                return_url=with_query_flag(return_url, "success"),
            )
        except StripeError as e:
            raise ProcessorError.from_stripe_error(
                e, operation="create_account_link", user_id=user.pk
            ) from e

        return OnboardingLink(url=link.url, stripe_account_id=account.stripe_account_id)

    def _create_account(self, user: User) -> ConnectedAccount:
        try:
            result = self.stripe.create_connected_account(
                email=user.email,
                idempotency_key=IdempotencyKeyGenerator.generate(
                    operation="connect_account", entity_id=user.pk
                ),
                account_type=self.config.connect_account_type,
                metadata={"user_id": str(user.pk)},
            )
        except StripeError as e:
            raise ProcessorError.from_stripe_error(
                e, operation="create_connected_account", user_id=user.pk
            ) from e

        try:
            with self.atomic():
                account = ConnectedAccount.objects.create(
                    user=user,
                    stripe_account_id=result.id,
                    status=ConnectedAccount.status_from_flags(
                        result.details_submitted, result.payouts_enabled
                    ),
                    details_submitted=result.details_submitted,
                    payouts_enabled=result.payouts_enabled,
                    charges_enabled=result.charges_enabled,
                )
        except IntegrityError:
            # A concurrent request created it first
            account = ConnectedAccount.objects.get(user=user)
            logger.info(
                "Connected account created concurrently, using existing row",
                extra={"user_id": user.pk, "stripe_account_id": account.stripe_account_id},
            )
            return account

        logger.info(
            "Connected account created",
            extra={"user_id": user.pk, "stripe_account_id": account.stripe_account_id},
        )
        return account

    def refresh_connect_status(self, user: User) -> ConnectStatusSnapshot:
        """
        Read the account's flags from Stripe and update the cached status.

        Users without an account get NOT_CONNECTED and no Stripe call.

        Raises:
            ProcessorError: Stripe account retrieval failed
        """
        account = ConnectedAccount.objects.filter(user=user).first()
        if account is None:
            return ConnectStatusSnapshot(status=ConnectStatus.NOT_CONNECTED)

        try:
            result = self.stripe.retrieve_account(account.stripe_account_id)
        except StripeError as e:
            raise ProcessorError.from_stripe_error(
                e, operation="retrieve_account", user_id=user.pk
            ) from e

        account = self._apply_flags(
            account,
            details_submitted=result.details_submitted,
            payouts_enabled=result.payouts_enabled,
            charges_enabled=result.charges_enabled,
        )
        return ConnectStatusSnapshot.from_account(account)

    def sync_account(self, stripe_account: dict[str, Any]) -> ConnectedAccount | None:
        """
        Apply an account.updated webhook payload to the local row.

        Returns None when the account is unknown locally.
        """
        account_id = stripe_account.get("id")
        account = ConnectedAccount.objects.filter(stripe_account_id=account_id).first()
        if account is None:
            logger.warning(
                "account.updated for unknown connected account",
                extra={"stripe_account_id": account_id},
            )
            return None

        return self._apply_flags(
            account,
            details_submitted=bool(stripe_account.get("details_submitted")),
            payouts_enabled=bool(stripe_account.get("payouts_enabled")),
            charges_enabled=bool(stripe_account.get("charges_enabled")),
        )

    def _apply_flags(
        self,
        account: ConnectedAccount,
        details_submitted: bool,
        payouts_enabled: bool,
        charges_enabled: bool,
    ) -> ConnectedAccount:
        """Persist new flags when they differ; signal the move into ACTIVE."""
        with self.atomic():
            account = ConnectedAccount.objects.select_for_update().get(pk=account.pk)
            previous_status = account.status
            changed = account.apply_processor_state(
                details_submitted=details_submitted,
                payouts_enabled=payouts_enabled,
                charges_enabled=charges_enabled,
            )
            if not changed:
                return account

            account.save()
            if (
                previous_status != ConnectStatus.ACTIVE
                and account.status == ConnectStatus.ACTIVE
            ):
                send_after_commit(
                    payout_account_activated, sender=ConnectedAccount, account=account
                )

        logger.info(
            "Connected account status updated",
            extra={
                "stripe_account_id": account.stripe_account_id,
                "previous_status": previous_status,
                "status": account.status,
            },
        )
        return account
