"""
Tests for the payments REST API.

Views build their services with default collaborators, so the service
classes are patched to return instances wired to the Stripe mock.
"""

import uuid
from decimal import Decimal

import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from contracts.models import MilestoneStatus
from contracts.tests.factories import ContractFactory
from payments.exceptions import ConsistencyError, StripeAPIUnavailableError
from payments.state_machines import ConnectStatus, EscrowStatus, PaymentStatus
from payments.tests.factories import EscrowTransactionFactory, PaymentFactory


@pytest.fixture(autouse=True)
def use_mock_services(mocker, ledger_service, release_service, payout_service):
    mocker.patch("payments.views.EscrowLedgerService", return_value=ledger_service)
    mocker.patch("payments.views.MilestoneReleaseService", return_value=release_service)
    mocker.patch("payments.views.PayoutAccountService", return_value=payout_service)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def brand_client(api_client, brand):
    api_client.force_authenticate(user=brand)
    return api_client


@pytest.fixture
def creator_client(api_client, creator):
    api_client.force_authenticate(user=creator)
    return api_client


# =============================================================================
# Escrow
# =============================================================================


class TestCreateEscrowView:
    def test_creates_escrow(self, db, brand_client, contract):
        response = brand_client.post(reverse("payments:escrow_create", args=[contract.id]))

        assert response.status_code == 201
        assert response.data["client_secret"] == "pi_test_123_secret_abc"
        assert response.data["escrow"]["status"] == EscrowStatus.PENDING_DEPOSIT
        assert response.data["escrow"]["total_amount"] == "1000.00"
        assert response.data["escrow"]["platform_fee"] == "100.00"

    def test_requires_authentication(self, db, api_client, contract):
        response = api_client.post(reverse("payments:escrow_create", args=[contract.id]))

        assert response.status_code == 401

    def test_creator_cannot_fund(self, db, creator_client, contract):
        response = creator_client.post(reverse("payments:escrow_create", args=[contract.id]))

        assert response.status_code == 403
        assert response.data["error_code"] == "PERMISSION_DENIED"

    def test_unknown_contract(self, db, brand_client):
        response = brand_client.post(reverse("payments:escrow_create", args=[uuid.uuid4()]))

        assert response.status_code == 404
        assert response.data["error_code"] == "CONTRACT_NOT_FOUND"

    def test_existing_escrow_conflicts(self, db, brand_client, funded_escrow):
        response = brand_client.post(
            reverse("payments:escrow_create", args=[funded_escrow.contract_id])
        )

        assert response.status_code == 409
        assert response.data["error_code"] == "ESCROW_ALREADY_EXISTS"

    def test_processor_failure_is_bad_gateway(self, db, brand_client, mock_stripe, contract):
        mock_stripe.create_payment_intent.side_effect = StripeAPIUnavailableError("down")

        response = brand_client.post(reverse("payments:escrow_create", args=[contract.id]))

        assert response.status_code == 502
        assert response.data["error_code"] == "PROCESSOR_ERROR"
        assert response.data["details"]["operation"] == "create_payment_intent"


class TestRefundEscrowView:
    def test_refunds(self, db, brand_client, funded_escrow):
        response = brand_client.post(
            reverse("payments:escrow_refund", args=[funded_escrow.contract_id])
        )

        assert response.status_code == 200
        assert response.data["status"] == EscrowStatus.REFUNDED
        assert response.data["refunded_amount"] == "1000.00"
        assert response.data["remaining_amount"] == "0.00"

    def test_not_refundable(self, db, brand_client, funded_escrow):
        funded_escrow.record_release(Decimal("400.00"))
        funded_escrow.save()

        response = brand_client.post(
            reverse("payments:escrow_refund", args=[funded_escrow.contract_id])
        )

        assert response.status_code == 400
        assert response.data["error_code"] == "ESCROW_NOT_REFUNDABLE"


class TestContractEscrowView:
    def test_creator_sees_escrow_with_payments(self, db, creator_client, funded_escrow, ready_milestone):
        payment = PaymentFactory(escrow_transaction=funded_escrow, milestone=ready_milestone)

        response = creator_client.get(
            reverse("payments:escrow_detail", args=[funded_escrow.contract_id])
        )

        assert response.status_code == 200
        assert response.data["id"] == str(funded_escrow.id)
        assert [p["id"] for p in response.data["payments"]] == [str(payment.id)]

    def test_outsider_forbidden(self, db, api_client, funded_escrow):
        api_client.force_authenticate(user=ContractFactory().brand)

        response = api_client.get(
            reverse("payments:escrow_detail", args=[funded_escrow.contract_id])
        )

        assert response.status_code == 403

    def test_missing_escrow(self, db, brand_client, contract):
        response = brand_client.get(reverse("payments:escrow_detail", args=[contract.id]))

        assert response.status_code == 404
        assert response.data["error_code"] == "ESCROW_NOT_FOUND"


class TestBrandEscrowListView:
    def test_lists_own_escrows(self, db, brand_client, funded_escrow):
        EscrowTransactionFactory()

        response = brand_client.get(reverse("payments:brand_escrows"))

        assert response.status_code == 200
        assert response.data["count"] == 1
        assert response.data["results"][0]["id"] == str(funded_escrow.id)

    def test_creator_forbidden(self, db, creator_client):
        response = creator_client.get(reverse("payments:brand_escrows"))

        assert response.status_code == 403


# =============================================================================
# Releases
# =============================================================================


class TestReleaseMilestoneView:
    def test_releases(self, db, brand_client, funded_escrow, ready_milestone, active_account):
        response = brand_client.post(
            reverse("payments:milestone_release", args=[ready_milestone.id])
        )

        assert response.status_code == 200
        assert response.data["status"] == PaymentStatus.COMPLETED
        assert response.data["amount"] == "400.00"
        assert response.data["platform_fee"] == "40.00"
        assert response.data["net_amount"] == "360.00"

    def test_milestone_not_ready(self, db, brand_client, funded_escrow, ready_milestone, active_account):
        ready_milestone.status = MilestoneStatus.IN_PROGRESS
        ready_milestone.save()

        response = brand_client.post(
            reverse("payments:milestone_release", args=[ready_milestone.id])
        )

        assert response.status_code == 400
        assert response.data["error_code"] == "MILESTONE_NOT_READY"

    def test_consistency_error_is_server_error(self, db, brand_client, release_service, mocker):
        mocker.patch.object(
            release_service,
            "release_milestone",
            side_effect=ConsistencyError(
                "Transfer was sent but could not be recorded",
                details={"stripe_transfer_id": "tr_123"},
            ),
        )

        response = brand_client.post(
            reverse("payments:milestone_release", args=[uuid.uuid4()])
        )

        assert response.status_code == 500
        assert response.data["error_code"] == "CONSISTENCY_ERROR"
        assert response.data["details"] == {"stripe_transfer_id": "tr_123"}


class TestCreatorPaymentHistoryView:
    def test_filters_by_status(self, db, creator_client, funded_escrow, ready_milestone):
        pending = PaymentFactory(escrow_transaction=funded_escrow, milestone=ready_milestone)

        everything = creator_client.get(reverse("payments:creator_history"))
        completed = creator_client.get(
            reverse("payments:creator_history"), {"status": PaymentStatus.COMPLETED}
        )

        assert everything.status_code == 200
        assert [p["id"] for p in everything.data["results"]] == [str(pending.id)]
        assert completed.data["count"] == 0

    def test_invalid_status(self, db, creator_client):
        response = creator_client.get(reverse("payments:creator_history"), {"status": "LOST"})

        assert response.status_code == 400

    def test_brand_forbidden(self, db, brand_client):
        response = brand_client.get(reverse("payments:creator_history"))

        assert response.status_code == 403


# =============================================================================
# Connect
# =============================================================================


class TestConnectViews:
    def test_onboarding_link(self, db, creator_client):
        response = creator_client.post(
            reverse("payments:connect_onboarding"),
            {"return_url": "https://app.example.com/payouts"},
            format="json",
        )

        assert response.status_code == 200
        assert response.data == {"url": "https://connect.stripe.com/setup/e/acct_test_new/abc"}

    def test_onboarding_requires_return_url(self, db, creator_client):
        response = creator_client.post(reverse("payments:connect_onboarding"), {}, format="json")

        assert response.status_code == 400

    def test_brand_cannot_onboard(self, db, brand_client):
        response = brand_client.post(
            reverse("payments:connect_onboarding"),
            {"return_url": "https://app.example.com/payouts"},
            format="json",
        )

        assert response.status_code == 403

    def test_status_not_connected(self, db, creator_client, mock_stripe):
        response = creator_client.get(reverse("payments:connect_status"))

        assert response.status_code == 200
        assert response.data["status"] == ConnectStatus.NOT_CONNECTED
        assert response.data["payouts_enabled"] is False
        mock_stripe.retrieve_account.assert_not_called()
