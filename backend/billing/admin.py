from django.contrib import admin

from .models import Charge, PaymentAttempt, Receivable


@admin.register(Charge)
class ChargeAdmin(admin.ModelAdmin):
    list_display = ("booking", "kind", "subtype", "amount", "payee", "voucher", "check_date", "is_paid")
    list_filter = ("kind", "is_paid")
    search_fields = ("booking__reference", "payee", "voucher")


@admin.register(Receivable)
class ReceivableAdmin(admin.ModelAdmin):
    list_display = ("booking", "state", "total_expenses", "total_payment", "amount_collected",
                    "collectible_amount", "payment_method", "is_paid", "due_date")
    list_filter = ("state", "payment_method", "is_paid")
    search_fields = ("booking__reference",)
    # state moves only through the reconciliation service
    readonly_fields = [f.name for f in Receivable._meta.fields]

    def has_add_permission(self, request):
        return False


@admin.register(PaymentAttempt)
class PaymentAttemptAdmin(admin.ModelAdmin):
    list_display = ("booking", "method", "amount", "reference_number", "status", "created_at", "verified_at")
    list_filter = ("method", "status")
    search_fields = ("booking__reference", "reference_number")
    readonly_fields = ("method", "amount", "receipt_image", "status", "submitted_by", "created_at", "verified_at")
