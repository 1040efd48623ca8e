"""
Root URL configuration.

URL Structure:
    /                                   - ReDoc API documentation
    /admin/                             - Django admin interface
    /health/                            - Health check endpoint (load balancers, Docker)
    /schema/                            - OpenAPI schema (YAML)
    /api/v1/auth/                       - JWT token endpoints
        token/                          - Obtain access/refresh pair
        token/refresh/                  - Refresh access token
    /api/v1/payments/                   - Escrow and payout endpoints
        escrow/{contract_id}/           - Fund a contract's escrow (POST)
        escrow/{contract_id}/refund/    - Refund remaining escrow (POST)
        escrow/contract/{contract_id}/  - Escrow detail with payments
        brand/escrows/                  - Brand's escrows
        milestones/{id}/release/        - Release a milestone payment (POST)
        creator/history/                - Creator's payment history
        connect/onboarding/             - Start payout account onboarding (POST)
        connect/status/                 - Payout account status
        webhooks/stripe/                - Stripe webhook endpoint (POST)
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("auth/", include("authentication.urls")),
    path("payments/", include("payments.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Escrow Admin"
admin.site.site_title = "Escrow Admin Portal"
admin.site.index_title = "Escrows, payments and payout accounts"
