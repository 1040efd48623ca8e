"""
Tests for Stripe adapter.

Tests cover:
- Minor unit conversion
- Idempotency key generation
- Error translation for each exception type
- Successful API operations (customers, intents, refunds, transfers, Connect)
- Webhook signature verification
"""

import uuid
from decimal import Decimal

import pytest
import stripe
from django.test import override_settings

from payments.adapters import (
    ConnectedAccountResult,
    CreatePaymentIntentParams,
    IdempotencyKeyGenerator,
    StripeAdapter,
    to_minor_units,
)
from payments.conf import EscrowConfig
from payments.exceptions import (
    ProcessorError,
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeInsufficientFundsError,
    StripeInvalidAccountError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)


def _intent_params(**overrides):
    params = {
        "amount_cents": 100000,
        "currency": "usd",
        "idempotency_key": "test-key",
    }
    params.update(overrides)
    return CreatePaymentIntentParams(**params)


# =============================================================================
# Money Conversion
# =============================================================================


class TestToMinorUnits:
    """Tests for Decimal to cents conversion."""

    def test_whole_amount(self):
        assert to_minor_units(Decimal("1000.00")) == 100000

    def test_cents(self):
        assert to_minor_units(Decimal("360.55")) == 36055

    def test_rounds_half_up(self):
        """Sub-cent amounts round half up."""
        assert to_minor_units(Decimal("10.005")) == 1001
        assert to_minor_units(Decimal("10.004")) == 1000


# =============================================================================
# CreatePaymentIntentParams Tests
# =============================================================================


class TestCreatePaymentIntentParams:
    """Tests for CreatePaymentIntentParams dataclass validation."""

    def test_valid_params(self):
        params = _intent_params()

        assert params.amount_cents == 100000
        assert params.payment_method_types == ["card"]
        assert params.customer_id is None

    def test_amount_must_be_positive(self):
        with pytest.raises(ValueError, match="amount_cents must be positive"):
            _intent_params(amount_cents=0)

    def test_idempotency_key_required(self):
        with pytest.raises(ValueError, match="idempotency_key is required"):
            _intent_params(idempotency_key="")

    def test_currency_required(self):
        with pytest.raises(ValueError, match="currency is required"):
            _intent_params(currency="")


# =============================================================================
# IdempotencyKeyGenerator Tests
# =============================================================================


class TestIdempotencyKeyGenerator:
    """Tests for IdempotencyKeyGenerator."""

    def test_generate_key_format(self):
        """Key is operation:entity:attempt:hash."""
        entity_id = uuid.uuid4()
        key = IdempotencyKeyGenerator.generate(
            operation="milestone_release",
            entity_id=entity_id,
            attempt=1,
        )

        parts = key.split(":")
        assert len(parts) == 4
        assert parts[0] == "milestone_release"
        assert parts[1] == str(entity_id)
        assert parts[2] == "1"
        assert len(parts[3]) == 8

    def test_same_inputs_produce_same_key(self):
        """Deterministic keys let Stripe deduplicate retried requests."""
        entity_id = uuid.uuid4()

        first = IdempotencyKeyGenerator.generate("escrow_refund", entity_id, 1)
        second = IdempotencyKeyGenerator.generate("escrow_refund", entity_id, 1)

        assert first == second

    def test_different_attempts_produce_different_keys(self):
        entity_id = uuid.uuid4()

        first = IdempotencyKeyGenerator.generate("milestone_release", entity_id, 1)
        second = IdempotencyKeyGenerator.generate("milestone_release", entity_id, 2)

        assert first != second

    def test_integer_entity_id(self):
        """User primary keys are integers."""
        key = IdempotencyKeyGenerator.generate("connect_account", 42)

        assert key.startswith("connect_account:42:1:")


# =============================================================================
# Error Translation
# =============================================================================


class TestStripeAdapterErrorTranslation:
    """Tests for Stripe error translation to domain exceptions."""

    def test_card_declined_error(self, mock_stripe_payment_intent, card_error):
        mock_stripe_payment_intent.create.side_effect = card_error()

        with pytest.raises(StripeCardDeclinedError) as exc_info:
            StripeAdapter.create_payment_intent(_intent_params())

        assert exc_info.value.decline_code == "generic_decline"
        assert exc_info.value.is_retryable is False

    def test_insufficient_funds_card_error(self, mock_stripe_payment_intent, card_error):
        mock_stripe_payment_intent.create.side_effect = card_error(
            message="Your card has insufficient funds.",
            decline_code="insufficient_funds",
        )

        with pytest.raises(StripeInsufficientFundsError):
            StripeAdapter.create_payment_intent(_intent_params())

    def test_insufficient_platform_balance_on_transfer(
        self, mock_stripe_transfer, invalid_request_error
    ):
        """balance_insufficient on a transfer is an insufficient funds error."""
        mock_stripe_transfer.create.side_effect = invalid_request_error(
            message="Insufficient funds in Stripe balance",
            param=None,
            code="balance_insufficient",
        )

        with pytest.raises(StripeInsufficientFundsError):
            StripeAdapter.create_transfer(
                amount_cents=36000,
                destination_account="acct_dest123",
                idempotency_key="key",
            )

    def test_invalid_request_error(self, mock_stripe_refund, invalid_request_error):
        mock_stripe_refund.create.side_effect = invalid_request_error()

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.create_refund(
                payment_intent_id="pi_missing",
                idempotency_key="key",
            )

        assert exc_info.value.stripe_code == "resource_missing"

    def test_invalid_account_error(self, mock_stripe_transfer, invalid_request_error):
        mock_stripe_transfer.create.side_effect = invalid_request_error(
            message="No such destination: 'acct_gone'",
            param="destination",
            code="account_invalid",
        )

        with pytest.raises(StripeInvalidAccountError):
            StripeAdapter.create_transfer(
                amount_cents=36000,
                destination_account="acct_gone",
                idempotency_key="key",
            )

    def test_rate_limit_error(self, mock_stripe_payment_intent, rate_limit_error):
        mock_stripe_payment_intent.create.side_effect = rate_limit_error

        with pytest.raises(StripeRateLimitError) as exc_info:
            StripeAdapter.create_payment_intent(_intent_params())

        assert exc_info.value.is_retryable is True

    def test_api_connection_error(self, mock_stripe_transfer, api_connection_error):
        mock_stripe_transfer.create.side_effect = api_connection_error

        with pytest.raises(StripeAPIUnavailableError):
            StripeAdapter.create_transfer(
                amount_cents=36000,
                destination_account="acct_dest123",
                idempotency_key="key",
            )

    def test_timeout_error(self, mock_stripe_transfer):
        mock_stripe_transfer.create.side_effect = stripe.APIConnectionError(
            message="Request to Stripe timed out"
        )

        with pytest.raises(StripeTimeoutError) as exc_info:
            StripeAdapter.create_transfer(
                amount_cents=36000,
                destination_account="acct_dest123",
                idempotency_key="key",
            )

        assert exc_info.value.is_retryable is True

    def test_api_error(self, mock_stripe_payment_intent, api_error):
        mock_stripe_payment_intent.create.side_effect = api_error

        with pytest.raises(StripeAPIUnavailableError):
            StripeAdapter.create_payment_intent(_intent_params())

    def test_authentication_error(self, mock_stripe_payment_intent, authentication_error):
        mock_stripe_payment_intent.create.side_effect = authentication_error

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.create_payment_intent(_intent_params())

        assert exc_info.value.stripe_code == "authentication_error"

    def test_unknown_error(self, mock_stripe_payment_intent):
        mock_stripe_payment_intent.create.side_effect = RuntimeError("boom")

        with pytest.raises(StripeAPIUnavailableError):
            StripeAdapter.create_payment_intent(_intent_params())

    def test_translated_errors_are_processor_errors(
        self, mock_stripe_payment_intent, api_error
    ):
        """Every translated error maps to HTTP 502 through ProcessorError."""
        mock_stripe_payment_intent.create.side_effect = api_error

        with pytest.raises(ProcessorError):
            StripeAdapter.create_payment_intent(_intent_params())


# =============================================================================
# Successful Operations
# =============================================================================


class TestStripeAdapterCustomersAndIntents:
    """Tests for customer and PaymentIntent creation."""

    def test_create_customer(self, mock_stripe_customer):
        result = StripeAdapter.create_customer(
            email="brand@example.com",
            idempotency_key="customer:1:1:abcd1234",
            metadata={"user_id": "1"},
        )

        assert result.id == "cus_test123"
        mock_stripe_customer.create.assert_called_once_with(
            email="brand@example.com",
            metadata={"user_id": "1"},
            idempotency_key="customer:1:1:abcd1234",
        )

    def test_create_payment_intent_success(self, mock_stripe_payment_intent):
        result = StripeAdapter.create_payment_intent(
            _intent_params(
                customer_id="cus_test123",
                metadata={"contract_id": "c-1", "escrow": "true", "type": "escrow"},
            )
        )

        assert result.id == "pi_test123456"
        assert result.client_secret == "pi_test123456_secret_abc123"
        assert result.amount_cents == 100000
        call_kwargs = mock_stripe_payment_intent.create.call_args.kwargs
        assert call_kwargs["customer"] == "cus_test123"
        assert call_kwargs["metadata"]["type"] == "escrow"
        assert call_kwargs["idempotency_key"] == "test-key"

    def test_create_payment_intent_omits_missing_customer(self, mock_stripe_payment_intent):
        StripeAdapter.create_payment_intent(_intent_params())

        assert "customer" not in mock_stripe_payment_intent.create.call_args.kwargs


class TestStripeAdapterRefundsAndTransfers:
    """Tests for refunds and transfers."""

    def test_create_full_refund(self, mock_stripe_refund):
        result = StripeAdapter.create_refund(
            payment_intent_id="pi_test123456",
            idempotency_key="escrow_refund:e-1:1:abcd1234",
        )

        assert result.id == "re_test123456"
        assert result.status == "succeeded"
        call_kwargs = mock_stripe_refund.create.call_args.kwargs
        assert "amount" not in call_kwargs
        assert call_kwargs["payment_intent"] == "pi_test123456"

    def test_create_partial_refund(self, mock_stripe_refund):
        StripeAdapter.create_refund(
            payment_intent_id="pi_test123456",
            idempotency_key="key",
            amount_cents=60000,
            reason="requested_by_customer",
        )

        call_kwargs = mock_stripe_refund.create.call_args.kwargs
        assert call_kwargs["amount"] == 60000
        assert call_kwargs["reason"] == "requested_by_customer"

    def test_create_transfer_success(self, mock_stripe_transfer):
        result = StripeAdapter.create_transfer(
            amount_cents=36000,
            destination_account="acct_dest123",
            idempotency_key="milestone_release:m-1:1:abcd1234",
            metadata={"milestone_id": "m-1"},
            transfer_group="contract_c-1",
        )

        assert result.id == "tr_test123456"
        assert result.destination_account == "acct_dest123"
        mock_stripe_transfer.create.assert_called_once_with(
            idempotency_key="milestone_release:m-1:1:abcd1234",
            amount=36000,
            currency="usd",
            destination="acct_dest123",
            metadata={"milestone_id": "m-1"},
            transfer_group="contract_c-1",
        )


class TestStripeAdapterConnect:
    """Tests for Stripe Connect account operations."""

    def test_create_connected_account_requests_transfers(self, mock_stripe_account):
        result = StripeAdapter.create_connected_account(
            email="creator@example.com",
            idempotency_key="connect_account:7:1:abcd1234",
        )

        assert isinstance(result, ConnectedAccountResult)
        assert result.id == "acct_test123456"
        assert result.details_submitted is False
        call_kwargs = mock_stripe_account.create.call_args.kwargs
        assert call_kwargs["type"] == "express"
        assert call_kwargs["capabilities"] == {"transfers": {"requested": True}}

    def test_create_account_link(self, mock_stripe_account_link):
        result = StripeAdapter.create_account_link(
            account_id="acct_test123456",
            refresh_url="https://app.example.com/connect?refresh=true",
            return_url="https://app.example.com/connect?success=true",
        )

        assert result.url.startswith("https://connect.stripe.com/")
        mock_stripe_account_link.create.assert_called_once_with(
            account="acct_test123456",
            refresh_url="https://app.example.com/connect?refresh=true",
            return_url="https://app.example.com/connect?success=true",
            type="account_onboarding",
        )

    def test_retrieve_account_flags(self, mock_stripe_account, mock_account):
        mock_stripe_account.retrieve.return_value = mock_account(
            details_submitted=True, payouts_enabled=True, charges_enabled=True
        )

        result = StripeAdapter.retrieve_account("acct_test123456")

        assert result.details_submitted is True
        assert result.payouts_enabled is True
        assert result.charges_enabled is True


# =============================================================================
# Webhooks & Configuration
# =============================================================================


class TestStripeAdapterVerifyWebhookSignature:
    """Tests for webhook signature verification."""

    def test_verify_webhook_signature_success(self, mock_stripe_webhook):
        event = StripeAdapter.verify_webhook_signature(b"{}", "t=1,v1=sig")

        assert event["id"] == "evt_test123"
        assert event["type"] == "payment_intent.succeeded"

    def test_verify_webhook_signature_invalid(self, mock_stripe_webhook):
        mock_stripe_webhook.construct_event.side_effect = (
            stripe.SignatureVerificationError(
                message="Unable to verify", sig_header="bad"
            )
        )

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.verify_webhook_signature(b"{}", "bad")

        assert exc_info.value.stripe_code == "signature_verification_failed"

    def test_verify_webhook_malformed_payload(self, mock_stripe_webhook):
        mock_stripe_webhook.construct_event.side_effect = ValueError("bad json")

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.verify_webhook_signature(b"not json", "t=1,v1=sig")

        assert exc_info.value.stripe_code == "invalid_payload"


class TestStripeAdapterConfiguration:
    """Tests for Stripe adapter configuration."""

    @override_settings(STRIPE_SECRET_KEY="sk_test_custom")
    def test_uses_settings_api_key(self, mock_stripe_payment_intent):
        StripeAdapter.create_payment_intent(_intent_params())

        assert stripe.api_key == "sk_test_custom"

    @override_settings(STRIPE_API_TIMEOUT_SECONDS=12)
    def test_uses_settings_timeout(
        self, mock_stripe_payment_intent, mock_stripe_http_client
    ):
        StripeAdapter.create_payment_intent(_intent_params())

        mock_stripe_http_client.assert_called_with(timeout=12)

    @override_settings(STRIPE_SECRET_KEY="sk_test_settings", STRIPE_API_TIMEOUT_SECONDS=30)
    def test_bound_config_overrides_settings(
        self, mock_stripe_payment_intent, mock_stripe_http_client
    ):
        adapter = StripeAdapter.with_config(
            EscrowConfig(
                stripe_secret_key="sk_test_injected",
                stripe_api_timeout=5,
                stripe_max_retries=1,
            )
        )

        adapter.create_payment_intent(_intent_params())

        assert stripe.api_key == "sk_test_injected"
        assert stripe.max_network_retries == 1
        mock_stripe_http_client.assert_called_with(timeout=5)

    def test_bound_config_webhook_secret(self, mock_stripe_webhook):
        adapter = StripeAdapter.with_config(EscrowConfig(stripe_webhook_secret="whsec_injected"))

        adapter.verify_webhook_signature(b"{}", "t=1,v1=sig")

        mock_stripe_webhook.construct_event.assert_called_once_with(
            b"{}", "t=1,v1=sig", "whsec_injected"
        )

    def test_binding_leaves_base_adapter_unbound(self):
        adapter = StripeAdapter.with_config(EscrowConfig(stripe_secret_key="sk_test_injected"))

        assert issubclass(adapter, StripeAdapter)
        assert adapter.config.stripe_secret_key == "sk_test_injected"
        assert StripeAdapter.config is None
