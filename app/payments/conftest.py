"""
Shared fixtures for payments tests.

The Stripe adapter is replaced by a MagicMock injected into services at
construction. Its default return values behave like Stripe's idempotency:
repeating a transfer with the same key returns the same transfer.

Usage:
    def test_release(funded_escrow, ready_milestone, active_account, release_service):
        payment = release_service.release_milestone(ready_milestone.id, funded_escrow.brand)
"""

import uuid
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from authentication.tests.factories import BrandFactory, CreatorFactory
from contracts.models import MilestoneStatus
from contracts.tests.factories import ContractFactory, MilestoneFactory
from payments.adapters import (
    AccountLinkResult,
    ConnectedAccountResult,
    CustomerResult,
    PaymentIntentResult,
    RefundResult,
    StripeAdapter,
    TransferResult,
)
from payments.conf import EscrowConfig
from payments.services import (
    EscrowLedgerService,
    MilestoneReleaseService,
    PayoutAccountService,
)
from payments.tests.factories import ConnectedAccountFactory, EscrowTransactionFactory


# =============================================================================
# Parties and contracts
# =============================================================================


@pytest.fixture
def brand(db):
    return BrandFactory()


@pytest.fixture
def creator(db):
    return CreatorFactory()


@pytest.fixture
def contract(db, brand, creator):
    """ACTIVE $1000 contract between brand and creator."""
    return ContractFactory(brand=brand, creator=creator, total_amount=Decimal("1000.00"))


@pytest.fixture
def funded_escrow(db, contract):
    return EscrowTransactionFactory(contract=contract, funded=True)


@pytest.fixture
def ready_milestone(db, contract):
    """READY $400 milestone on the contract."""
    return MilestoneFactory(
        contract=contract,
        amount=Decimal("400.00"),
        order_index=0,
        status=MilestoneStatus.READY,
    )


@pytest.fixture
def active_account(db, creator):
    return ConnectedAccountFactory(user=creator)


# =============================================================================
# Stripe adapter mock
# =============================================================================


def _fake_transfer(transfers: dict):
    def create_transfer(amount_cents, destination_account, idempotency_key, **kwargs):
        if idempotency_key not in transfers:
            transfers[idempotency_key] = TransferResult(
                id=f"tr_test_{uuid.uuid4().hex[:12]}",
                amount_cents=amount_cents,
                currency=kwargs.get("currency", "usd"),
                destination_account=destination_account,
                metadata=kwargs.get("metadata") or {},
            )
        return transfers[idempotency_key]

    return create_transfer


@pytest.fixture
def mock_stripe():
    """MagicMock with the StripeAdapter interface and realistic results."""
    adapter = MagicMock(spec=StripeAdapter)
    adapter.create_customer.return_value = CustomerResult(
        id="cus_test_123", email="brand@example.com"
    )
    adapter.create_payment_intent.return_value = PaymentIntentResult(
        id="pi_test_123",
        status="requires_payment_method",
        amount_cents=100000,
        currency="usd",
        client_secret="pi_test_123_secret_abc",
    )
    adapter.create_refund.return_value = RefundResult(
        id="re_test_123",
        amount_cents=100000,
        currency="usd",
        status="succeeded",
        payment_intent_id="pi_test_123",
    )
    adapter.create_transfer.side_effect = _fake_transfer({})
    adapter.create_connected_account.return_value = ConnectedAccountResult(
        id="acct_test_new"
    )
    adapter.create_account_link.return_value = AccountLinkResult(
        url="https://connect.stripe.com/setup/e/acct_test_new/abc",
        expires_at=1700000000,
    )
    adapter.retrieve_account.return_value = ConnectedAccountResult(id="acct_test_new")
    return adapter


@pytest.fixture
def escrow_config():
    return EscrowConfig(fee_rate=Decimal("0.10"))


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def ledger_service(mock_stripe, escrow_config):
    return EscrowLedgerService(stripe_adapter=mock_stripe, config=escrow_config)


@pytest.fixture
def release_service(mock_stripe, escrow_config):
    return MilestoneReleaseService(stripe_adapter=mock_stripe, config=escrow_config)


@pytest.fixture
def payout_service(mock_stripe, escrow_config):
    return PayoutAccountService(stripe_adapter=mock_stripe, config=escrow_config)
