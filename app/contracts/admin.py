"""
Contract admin configuration.

Contracts and milestones are managed by the contract workflow; the admin
is mainly for support staff inspecting what the escrow engine sees.
"""

from django.contrib import admin

from contracts.models import Contract, Milestone


class MilestoneInline(admin.TabularInline):
    model = Milestone
    extra = 0
    fields = ["order_index", "title", "amount", "status", "due_date", "paid_at"]
    readonly_fields = ["paid_at"]
    ordering = ["order_index"]


@admin.register(Contract)
class ContractAdmin(admin.ModelAdmin):
    """Admin configuration for Contract."""

    list_display = [
        "contract_number",
        "brand",
        "creator",
        "total_amount",
        "currency",
        "status",
        "created_at",
    ]
    list_filter = ["status", "currency"]
    search_fields = ["contract_number", "brand__email", "creator__email"]
    readonly_fields = ["id", "created_at", "updated_at"]
    raw_id_fields = ["brand", "creator"]
    ordering = ["-created_at"]
    inlines = [MilestoneInline]


@admin.register(Milestone)
class MilestoneAdmin(admin.ModelAdmin):
    """Admin configuration for Milestone."""

    list_display = ["title", "contract", "order_index", "amount", "status", "paid_at"]
    list_filter = ["status"]
    search_fields = ["title", "contract__contract_number"]
    readonly_fields = ["id", "paid_at", "created_at", "updated_at"]
    raw_id_fields = ["contract"]
