from django.contrib import admin

from .models import Commission, Payout, PayoutSettings


@admin.register(Commission)
class CommissionAdmin(admin.ModelAdmin):
    list_display = ("id", "order", "seller", "commission_amount", "net_seller_amount", "status", "created_at")
    search_fields = ("order__order_number", "seller__email")
    list_filter = ("status",)
    readonly_fields = ("payout", "paid_at", "created_at", "updated_at")


@admin.register(Payout)
class PayoutAdmin(admin.ModelAdmin):
    list_display = ("id", "seller", "total_amount", "total_commissions", "payment_method", "status", "created_at")
    search_fields = ("seller__email", "payment_reference")
    list_filter = ("status", "payment_method")


@admin.register(PayoutSettings)
class PayoutSettingsAdmin(admin.ModelAdmin):
    list_display = ("auto_payout_enabled", "minimum_payout_amount", "holding_period_days", "default_payment_method")
