"""
Escrow engine configuration.

Settings are read once from django.conf.settings into a frozen dataclass
and injected into services at construction, so tests can pass an
explicit configuration instead of overriding settings.

Usage:
    from payments.conf import EscrowConfig

    config = EscrowConfig.from_settings()
    service = MilestoneReleaseService(config=config)

    # In tests
    service = MilestoneReleaseService(config=EscrowConfig(fee_rate=Decimal("0.15")))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings

CENTS = Decimal("0.01")


def round_money(amount: Decimal) -> Decimal:
    """Round a Decimal amount to cents, half up."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class EscrowConfig:
    """
    Immutable configuration for the escrow engine.

    Attributes:
        fee_rate: Platform fee as a fraction of each amount (0.10 = 10%)
        stripe_secret_key: API key the Stripe adapter authenticates with
        stripe_webhook_secret: Signing secret for incoming webhooks
        stripe_api_timeout: Seconds before a Stripe call times out
        stripe_max_retries: Network retries inside the Stripe SDK
        connect_account_type: Stripe Connect account type for payees
        pending_release_grace_minutes: Age after which a PENDING release
            reservation is picked up by reconciliation
    """

    fee_rate: Decimal = Decimal("0.10")
    stripe_secret_key: str = field(default="", repr=False)
    stripe_webhook_secret: str = field(default="", repr=False)
    stripe_api_timeout: int = 30
    stripe_max_retries: int = 3
    connect_account_type: str = "express"
    pending_release_grace_minutes: int = 15

    def __post_init__(self):
        if not Decimal("0") <= self.fee_rate < Decimal("1"):
            raise ValueError(f"fee_rate must be in [0, 1), got {self.fee_rate}")

    @classmethod
    def from_settings(cls) -> EscrowConfig:
        return cls(
            fee_rate=Decimal(str(getattr(settings, "PLATFORM_FEE_RATE", "0.10"))),
            stripe_secret_key=getattr(settings, "STRIPE_SECRET_KEY", ""),
            stripe_webhook_secret=getattr(settings, "STRIPE_WEBHOOK_SECRET", ""),
            stripe_api_timeout=getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 30),
            stripe_max_retries=getattr(settings, "STRIPE_MAX_RETRIES", 3),
            connect_account_type=getattr(
                settings, "STRIPE_CONNECT_ACCOUNT_TYPE", "express"
            ),
            pending_release_grace_minutes=getattr(
                settings, "PENDING_RELEASE_RECONCILE_AFTER_MINUTES", 15
            ),
        )

    def platform_fee(self, amount: Decimal) -> Decimal:
        """Platform fee for an amount, rounded to cents half up."""
        return round_money(amount * self.fee_rate)

    def split(self, amount: Decimal) -> tuple[Decimal, Decimal]:
        """
        Split an amount into (platform_fee, net_amount).

        net_amount + platform_fee always equals amount exactly.
        """
        fee = self.platform_fee(amount)
        return fee, amount - fee
