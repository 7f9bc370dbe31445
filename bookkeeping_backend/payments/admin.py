# payments/admin.py

from django.contrib import admin

from payments.models import OutstandingEntry, Payment, PaymentAllocation

# ============================================================
# OUTSTANDING ENTRY
# ============================================================


@admin.register(OutstandingEntry)
class OutstandingEntryAdmin(admin.ModelAdmin):
    list_display = (
        "sr_no",
        "party",
        "entry_date",
        "due_date",
        "original_net_amount",
        "net_amount",
        "is_deleted",
    )
    list_filter = ("is_deleted", "entry_date", "due_date")
    search_fields = ("sr_no", "description", "party__name")
    ordering = ("entry_date", "sr_no")
    # Totals are owned by the payment services.
    readonly_fields = (
        "id",
        "net_amount",
        "total_paid",
        "total_cd",
        "extra_amount",
        "is_deleted",
        "deleted_at",
        "created_at",
        "updated_at",
    )


# ============================================================
# PAYMENT
# ============================================================


class PaymentAllocationInline(admin.TabularInline):
    model = PaymentAllocation
    extra = 0
    can_delete = False
    readonly_fields = (
        "entry",
        "sr_no",
        "position",
        "amount",
        "cd_amount",
        "cd_applied",
        "adjusted_original",
        "extra_amount",
    )

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = (
        "payment_code",
        "party",
        "payment_date",
        "amount",
        "cd_amount",
        "payment_type",
        "channel",
    )
    list_filter = ("channel", "payment_type", "cd_applied", "payment_date")
    search_fields = ("payment_code", "notes", "party__name")
    ordering = ("-payment_date", "-created_at")
    inlines = [PaymentAllocationInline]
    readonly_fields = (
        "id",
        "party",
        "amount",
        "cd_amount",
        "cd_applied",
        "cd_mode",
        "cd_percent",
        "payment_type",
        "channel",
        "extra_amount",
        "ledger_posting",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
