"""
DRF serializers for the payments app.

This module provides serializers for:
- Escrow display (with nested payments for the contract view)
- Payment history
- Payout account status and onboarding requests

Related files:
    - models/: EscrowTransaction, Payment, ConnectedAccount
    - views.py: Payment API views

Usage:
    serializer = EscrowTransactionSerializer(escrow)
    data = serializer.data
"""

from __future__ import annotations

from rest_framework import serializers

from payments.models import EscrowTransaction, Payment
from payments.state_machines import ConnectStatus, PaymentStatus


class PaymentSerializer(serializers.ModelSerializer):
    """Milestone release payment, as shown to both parties."""

    contract_id = serializers.UUIDField(
        source="escrow_transaction.contract_id", read_only=True
    )

    class Meta:
        model = Payment
        fields = [
            "id",
            "contract_id",
            "milestone",
            "recipient",
            "amount",
            "platform_fee",
            "net_amount",
            "currency",
            "status",
            "payment_type",
            "stripe_transfer_id",
            "attempt",
            "initiated_at",
            "completed_at",
            "failed_at",
            "failure_reason",
        ]
        read_only_fields = fields


class EscrowTransactionSerializer(serializers.ModelSerializer):
    """
    Escrow summary.

    remaining_amount is derived: total - released - refunded.
    """

    remaining_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, read_only=True
    )

    class Meta:
        model = EscrowTransaction
        fields = [
            "id",
            "contract",
            "brand",
            "creator",
            "total_amount",
            "platform_fee",
            "currency",
            "released_amount",
            "refunded_amount",
            "remaining_amount",
            "status",
            "stripe_payment_intent_id",
            "funded_at",
            "released_at",
            "refunded_at",
            "created_at",
        ]
        read_only_fields = fields


class EscrowDetailSerializer(EscrowTransactionSerializer):
    """Escrow with its payments, newest first (prefetched by the service)."""

    payments = PaymentSerializer(many=True, read_only=True)

    class Meta(EscrowTransactionSerializer.Meta):
        fields = EscrowTransactionSerializer.Meta.fields + ["payments"]
        read_only_fields = fields


class EscrowCreatedSerializer(serializers.Serializer):
    """Response for escrow creation: the escrow plus the intent's client secret."""

    escrow = EscrowTransactionSerializer(read_only=True)
    client_secret = serializers.CharField(read_only=True, allow_null=True)


class OnboardingRequestSerializer(serializers.Serializer):
    return_url = serializers.URLField(
        help_text="Where Stripe sends the creator after onboarding",
    )


class OnboardingLinkSerializer(serializers.Serializer):
    url = serializers.URLField(read_only=True)


class ConnectStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ConnectStatus.choices, read_only=True)
    details_submitted = serializers.BooleanField(read_only=True)
    payouts_enabled = serializers.BooleanField(read_only=True)
    charges_enabled = serializers.BooleanField(read_only=True)


class PaymentHistoryQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=PaymentStatus.choices, required=False)
