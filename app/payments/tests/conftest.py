"""
Pytest fixtures for payment model tests.

Escrows and payments in various states for testing state transitions
and constraints. Parties, contracts and the Stripe mock live in
payments/conftest.py.
"""

from decimal import Decimal

import pytest

from payments.tests.factories import EscrowTransactionFactory, PaymentFactory


@pytest.fixture
def pending_escrow(db, contract):
    return EscrowTransactionFactory(contract=contract)


@pytest.fixture
def partially_released_escrow(db, funded_escrow):
    """Funded $1000 escrow with $400 already released."""
    funded_escrow.record_release(Decimal("400.00"))
    funded_escrow.save()
    return funded_escrow


@pytest.fixture
def pending_payment(db, funded_escrow, ready_milestone):
    return PaymentFactory(escrow_transaction=funded_escrow, milestone=ready_milestone)
