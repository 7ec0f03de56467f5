"""
Django admin configuration for ledger models.

Accounts and installments are read-only here: every change must go
through the ledger engine so that ``paid_paise`` and the installment log
stay in step. Installments are listed inline under their account.
"""

from django.contrib import admin

from ledger.models import Account, Installment


class ReadOnlyAdminMixin:
    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class InstallmentInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = Installment
    fields = ["id", "amount_paise", "paid_on", "method", "transaction_id", "recorded_by"]
    readonly_fields = fields
    extra = 0
    ordering = ["-paid_on"]


@admin.register(Account)
class AccountAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """
    Admin configuration for Account.

    Status is derived on read, so it is shown but cannot be filtered on.
    """

    list_display = [
        "id",
        "kind",
        "payer_id",
        "amount_display",
        "status_display",
        "due_date",
        "version",
    ]
    list_filter = ["kind", "due_date"]
    search_fields = ["id", "payer_id"]
    readonly_fields = [
        "id",
        "kind",
        "payer_id",
        "total_paise",
        "paid_paise",
        "late_fee_paise",
        "scholarship_paise",
        "currency",
        "due_date",
        "version",
        "created_at",
        "updated_at",
    ]
    ordering = ["due_date"]
    inlines = [InstallmentInline]

    def amount_display(self, obj: Account) -> str:
        return f"{obj.paid_paise / 100:.2f} / {obj.total_paise / 100:.2f}"

    amount_display.short_description = "Paid / Total"

    def status_display(self, obj: Account) -> str:
        return obj.status.label

    status_display.short_description = "Status"


@admin.register(Installment)
class InstallmentAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ["id", "account", "amount_paise", "paid_on", "method", "transaction_id"]
    list_filter = ["method", "paid_on"]
    search_fields = ["id", "transaction_id", "account__payer_id"]
    readonly_fields = [
        "id",
        "account",
        "amount_paise",
        "paid_on",
        "method",
        "transaction_id",
        "recorded_by",
    ]
    ordering = ["-paid_on"]
