"""
DRF views for the payments app.

Endpoints (under /api/v1/payments/):
    POST escrow/<contract_id>/                 - Create escrow (brand)
    POST escrow/<contract_id>/refund/          - Refund escrow (brand)
    GET  escrow/contract/<contract_id>/        - Escrow with payments (either party)
    POST milestones/<milestone_id>/release/    - Release a milestone (brand)
    POST connect/onboarding/                   - Stripe onboarding link (creator)
    GET  connect/status/                       - Payout account status (creator)
    GET  brand/escrows/                        - Brand's escrows, paginated
    GET  creator/history/?status=              - Creator's payments, paginated
    POST webhooks/stripe/                      - Stripe webhook (see webhooks/)

Service errors are turned into JSON bodies (BaseApplicationError.to_dict)
with the status from ERROR_STATUS_MAP.
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

from payments.exceptions import ConsistencyError
from payments.serializers import (
    ConnectStatusSerializer,
    EscrowCreatedSerializer,
    EscrowDetailSerializer,
    EscrowTransactionSerializer,
    OnboardingLinkSerializer,
    OnboardingRequestSerializer,
    PaymentHistoryQuerySerializer,
    PaymentSerializer,
)
from payments.services import (
    EscrowLedgerService,
    MilestoneReleaseService,
    PayoutAccountService,
)

logger = logging.getLogger(__name__)


# First match wins, so subclasses come before their bases
ERROR_STATUS_MAP: list[tuple[type[BaseApplicationError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (ConsistencyError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (ExternalServiceError, status.HTTP_502_BAD_GATEWAY),
]

ERROR_RESPONSES = {
    400: OpenApiResponse(description="Precondition failed"),
    403: OpenApiResponse(description="Caller may not act on this record"),
    404: OpenApiResponse(description="Record not found"),
    502: OpenApiResponse(description="Stripe call failed"),
}


def status_for_error(exc: BaseApplicationError) -> int:
    for error_class, status_code in ERROR_STATUS_MAP:
        if isinstance(exc, error_class):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


class ServiceErrorMixin:
    """Render service-layer errors as {error, error_code, details} responses."""

    def handle_exception(self, exc):
        if isinstance(exc, BaseApplicationError):
            status_code = status_for_error(exc)
            log = logger.error if status_code >= 500 else logger.info
            log(
                f"Request failed: {exc.error_code}",
                extra={"error_code": exc.error_code, "path": self.request.path},
            )
            return Response(exc.to_dict(), status=status_code)
        return super().handle_exception(exc)


def require_creator(user) -> None:
    if not user.is_creator:
        raise PermissionDeniedError("Only creators have payout accounts")


# =============================================================================
# Escrow
# =============================================================================


class CreateEscrowView(ServiceErrorMixin, APIView):
    """Open an escrow for a contract and return the PaymentIntent client secret."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Create escrow",
        description=(
            "Create the contract's escrow and a Stripe PaymentIntent for its total. "
            "The client confirms the payment with client_secret; the escrow becomes "
            "FUNDED when Stripe reports success."
        ),
        tags=["Payments - Escrow"],
        request=None,
        responses={201: EscrowCreatedSerializer, 409: OpenApiResponse(), **ERROR_RESPONSES},
    )
    def post(self, request, contract_id):
        creation = EscrowLedgerService().create_escrow(contract_id, request.user)
        serializer = EscrowCreatedSerializer(
            {"escrow": creation.escrow, "client_secret": creation.client_secret}
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)


class RefundEscrowView(ServiceErrorMixin, APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Refund escrow",
        description="Refund a FUNDED escrow to the brand. Released escrows cannot be refunded.",
        tags=["Payments - Escrow"],
        request=None,
        responses={200: EscrowTransactionSerializer, **ERROR_RESPONSES},
    )
    def post(self, request, contract_id):
        escrow = EscrowLedgerService().refund_escrow(contract_id, request.user)
        return Response(EscrowTransactionSerializer(escrow).data)


class ContractEscrowView(ServiceErrorMixin, APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get contract escrow",
        description="The contract's escrow with its payments, newest first.",
        tags=["Payments - Escrow"],
        responses={200: EscrowDetailSerializer, **ERROR_RESPONSES},
    )
    def get(self, request, contract_id):
        escrow = EscrowLedgerService().get_escrow_for_contract(contract_id, request.user)
        return Response(EscrowDetailSerializer(escrow).data)


class BrandEscrowListView(ServiceErrorMixin, generics.ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = EscrowTransactionSerializer

    @extend_schema(summary="List brand escrows", tags=["Payments - Escrow"])
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        if not self.request.user.is_brand:
            raise PermissionDeniedError("Only brands fund escrows")
        return EscrowLedgerService().list_brand_escrows(self.request.user)


# =============================================================================
# Releases
# =============================================================================


class ReleaseMilestoneView(ServiceErrorMixin, APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Release milestone",
        description=(
            "Transfer a READY milestone's amount, less the platform fee, "
            "to the creator's Stripe account."
        ),
        tags=["Payments - Releases"],
        request=None,
        responses={200: PaymentSerializer, **ERROR_RESPONSES},
    )
    def post(self, request, milestone_id):
        payment = MilestoneReleaseService().release_milestone(milestone_id, request.user)
        return Response(PaymentSerializer(payment).data)


class CreatorPaymentHistoryView(ServiceErrorMixin, generics.ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = PaymentSerializer

    @extend_schema(
        summary="Creator payment history",
        tags=["Payments - Releases"],
        parameters=[
            OpenApiParameter(
                "status", str, description="Filter by PENDING, COMPLETED or FAILED"
            )
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        require_creator(self.request.user)
        query = PaymentHistoryQuerySerializer(data=self.request.query_params)
        query.is_valid(raise_exception=True)
        return MilestoneReleaseService().payment_history(
            self.request.user, status=query.validated_data.get("status")
        )


# =============================================================================
# Connect
# =============================================================================


class ConnectOnboardingView(ServiceErrorMixin, APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Start payout onboarding",
        description=(
            "Create the creator's Stripe Express account if needed and return "
            "a fresh onboarding link."
        ),
        tags=["Payments - Connect"],
        request=OnboardingRequestSerializer,
        responses={200: OnboardingLinkSerializer, **ERROR_RESPONSES},
    )
    def post(self, request):
        require_creator(request.user)
        serializer = OnboardingRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        link = PayoutAccountService().ensure_onboarding_link(
            request.user, serializer.validated_data["return_url"]
        )
        return Response(OnboardingLinkSerializer({"url": link.url}).data)


class ConnectStatusView(ServiceErrorMixin, APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Payout account status",
        tags=["Payments - Connect"],
        responses={200: ConnectStatusSerializer, **ERROR_RESPONSES},
    )
    def get(self, request):
        require_creator(request.user)
        snapshot = PayoutAccountService().refresh_connect_status(request.user)
        return Response(ConnectStatusSerializer(snapshot.to_dict()).data)
