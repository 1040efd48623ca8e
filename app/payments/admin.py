"""
Payment admin configuration.

Escrows, payments and connected accounts are read-only here: every state
change goes through the service layer so the Stripe side stays in step.
"""

from django.contrib import admin

from payments.models import ConnectedAccount, EscrowTransaction, Payment, WebhookEvent

__all__ = [
    "ConnectedAccountAdmin",
    "EscrowTransactionAdmin",
    "PaymentAdmin",
    "WebhookEventAdmin",
]


class ReadOnlyAdminMixin:
    """Disable add/change/delete while keeping list and detail views."""

    def has_add_permission(self, request, obj=None) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


class PaymentInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = Payment
    fk_name = "escrow_transaction"
    extra = 0
    fields = [
        "milestone",
        "amount",
        "platform_fee",
        "net_amount",
        "status",
        "attempt",
        "stripe_transfer_id",
        "initiated_at",
    ]
    readonly_fields = fields


@admin.register(EscrowTransaction)
class EscrowTransactionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        "id",
        "contract",
        "brand",
        "total_amount",
        "released_amount",
        "refunded_amount",
        "status",
        "created_at",
    ]
    list_filter = ["status", "currency", "created_at"]
    search_fields = [
        "id",
        "contract__contract_number",
        "stripe_payment_intent_id",
        "brand__email",
        "creator__email",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    inlines = [PaymentInline]

    fieldsets = (
        (None, {"fields": ("id", "contract", "brand", "creator", "status")}),
        (
            "Amounts",
            {
                "fields": (
                    "total_amount",
                    "platform_fee",
                    "currency",
                    "released_amount",
                    "refunded_amount",
                ),
            },
        ),
        ("Stripe", {"fields": ("stripe_payment_intent_id",)}),
        (
            "Timestamps",
            {"fields": ("funded_at", "released_at", "refunded_at", "created_at", "updated_at", "version")},
        ),
    )


@admin.register(Payment)
class PaymentAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        "id",
        "milestone",
        "recipient",
        "amount",
        "net_amount",
        "status",
        "attempt",
        "initiated_at",
    ]
    list_filter = ["status", "payment_type", "initiated_at"]
    search_fields = ["id", "stripe_transfer_id", "idempotency_key", "recipient__email"]
    date_hierarchy = "initiated_at"
    ordering = ["-initiated_at"]


@admin.register(ConnectedAccount)
class ConnectedAccountAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Visibility into Stripe Connect onboarding status."""

    list_display = [
        "id",
        "user",
        "stripe_account_id",
        "status",
        "details_submitted",
        "payouts_enabled",
        "last_synced_at",
    ]
    list_filter = ["status", "payouts_enabled", "details_submitted"]
    search_fields = ["id", "stripe_account_id", "user__email"]
    ordering = ["-created_at"]


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Webhook events are immutable once received.

    Status and error_message stay editable so an operator can reset a
    failed event before requeueing it.
    """

    list_display = [
        "id",
        "stripe_event_id",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["id", "stripe_event_id", "event_type"]
    readonly_fields = [
        "id",
        "created_at",
        "updated_at",
        "stripe_event_id",
        "event_type",
        "payload",
        "processed_at",
        "retry_count",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    def has_delete_permission(self, request, obj=None) -> bool:
        return False

    def has_add_permission(self, request) -> bool:
        return False
