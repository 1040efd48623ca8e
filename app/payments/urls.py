"""
URL configuration for the payments app.

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.

Usage:
    # In config/urls.py
    api_v1_patterns = [
        path("payments/", include("payments.urls")),
    ]
"""

from django.urls import path

from payments import views
from payments.webhooks.views import stripe_webhook

app_name = "payments"

urlpatterns = [
    # Escrow
    path("escrow/<uuid:contract_id>/", views.CreateEscrowView.as_view(), name="escrow_create"),
    path(
        "escrow/<uuid:contract_id>/refund/",
        views.RefundEscrowView.as_view(),
        name="escrow_refund",
    ),
    path(
        "escrow/contract/<uuid:contract_id>/",
        views.ContractEscrowView.as_view(),
        name="escrow_detail",
    ),
    path("brand/escrows/", views.BrandEscrowListView.as_view(), name="brand_escrows"),
    # Releases
    path(
        "milestones/<uuid:milestone_id>/release/",
        views.ReleaseMilestoneView.as_view(),
        name="milestone_release",
    ),
    path(
        "creator/history/",
        views.CreatorPaymentHistoryView.as_view(),
        name="creator_history",
    ),
    # Connect
    path("connect/onboarding/", views.ConnectOnboardingView.as_view(), name="connect_onboarding"),
    path("connect/status/", views.ConnectStatusView.as_view(), name="connect_status"),
    # Webhook endpoints
    path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
]
