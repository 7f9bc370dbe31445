# ledger/admin.py

from django.contrib import admin

from ledger.models import Account, LedgerPosting

# ============================================================
# ACCOUNT
# ============================================================


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ("name", "contact", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name", "contact", "address")
    ordering = ("name",)
    readonly_fields = ("id", "created_at", "updated_at")


# ============================================================
# LEDGER POSTING
# ============================================================


@admin.register(LedgerPosting)
class LedgerPostingAdmin(admin.ModelAdmin):
    """
    Read-mostly: edits here bypass counterpart propagation and balance
    recalculation, so amounts and links are read-only.
    """

    list_display = (
        "id",
        "account",
        "date",
        "particulars",
        "debit",
        "credit",
        "balance",
        "link_strategy",
    )
    list_filter = ("link_strategy", "date")
    search_fields = ("particulars", "remarks", "link_group_id", "account__name")
    ordering = ("-date", "-created_at")
    readonly_fields = (
        "account",
        "debit",
        "credit",
        "balance",
        "link_group_id",
        "link_strategy",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
