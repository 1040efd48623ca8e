"""
Tests for EscrowConfig and money rounding.
"""

from decimal import Decimal

import pytest

from payments.adapters import StripeAdapter
from payments.conf import EscrowConfig, round_money
from payments.services import (
    EscrowLedgerService,
    MilestoneReleaseService,
    PayoutAccountService,
)


class TestRoundMoney:
    def test_rounds_half_up(self):
        assert round_money(Decimal("0.005")) == Decimal("0.01")
        assert round_money(Decimal("10.125")) == Decimal("10.13")
        assert round_money(Decimal("10.124")) == Decimal("10.12")


class TestEscrowConfig:
    def test_defaults(self):
        config = EscrowConfig()

        assert config.fee_rate == Decimal("0.10")
        assert config.connect_account_type == "express"

    def test_platform_fee(self):
        config = EscrowConfig(fee_rate=Decimal("0.10"))

        assert config.platform_fee(Decimal("1000.00")) == Decimal("100.00")
        assert config.platform_fee(Decimal("0.05")) == Decimal("0.01")

    def test_split_sums_to_amount(self):
        config = EscrowConfig(fee_rate=Decimal("0.15"))

        fee, net = config.split(Decimal("33.33"))

        assert fee == Decimal("5.00")
        assert net == Decimal("28.33")
        assert fee + net == Decimal("33.33")

    def test_split_is_deterministic(self):
        config = EscrowConfig()

        assert config.split(Decimal("123.45")) == config.split(Decimal("123.45"))

    @pytest.mark.parametrize("rate", ["-0.01", "1", "1.5"])
    def test_rejects_out_of_range_fee_rate(self, rate):
        with pytest.raises(ValueError):
            EscrowConfig(fee_rate=Decimal(rate))

    def test_is_immutable(self):
        config = EscrowConfig()

        with pytest.raises(AttributeError):
            config.fee_rate = Decimal("0.20")

    def test_from_settings(self, settings):
        settings.PLATFORM_FEE_RATE = "0.125"
        settings.STRIPE_SECRET_KEY = "sk_test_conf"
        settings.STRIPE_WEBHOOK_SECRET = "whsec_conf"
        settings.STRIPE_API_TIMEOUT_SECONDS = 10
        settings.STRIPE_MAX_RETRIES = 5
        settings.STRIPE_CONNECT_ACCOUNT_TYPE = "custom"
        settings.PENDING_RELEASE_RECONCILE_AFTER_MINUTES = 30

        config = EscrowConfig.from_settings()

        assert config.fee_rate == Decimal("0.125")
        assert config.stripe_secret_key == "sk_test_conf"
        assert config.stripe_webhook_secret == "whsec_conf"
        assert config.stripe_api_timeout == 10
        assert config.stripe_max_retries == 5
        assert config.connect_account_type == "custom"
        assert config.pending_release_grace_minutes == 30

    def test_repr_hides_secrets(self):
        config = EscrowConfig(stripe_secret_key="sk_live_secret", stripe_webhook_secret="whsec_x")

        assert "sk_live_secret" not in repr(config)
        assert "whsec_x" not in repr(config)

    @pytest.mark.parametrize(
        "service_class",
        [EscrowLedgerService, MilestoneReleaseService, PayoutAccountService],
    )
    def test_services_bind_config_to_adapter(self, service_class):
        config = EscrowConfig(stripe_secret_key="sk_test_bound", stripe_api_timeout=7)

        service = service_class(config=config)

        assert issubclass(service.stripe, StripeAdapter)
        assert service.stripe.config is config
