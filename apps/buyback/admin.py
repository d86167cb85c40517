from django.contrib import admin

from .models import BuybackOffer, StoreCreditTransaction


@admin.register(BuybackOffer)
class BuybackOfferAdmin(admin.ModelAdmin):
    list_display = ("item_title", "user", "buyback_offer_price", "valuation_source", "status", "expires_at")
    search_fields = ("item_title", "user__email")
    list_filter = ("status", "valuation_source")


@admin.register(StoreCreditTransaction)
class StoreCreditTransactionAdmin(admin.ModelAdmin):
    list_display = ("user", "transaction_type", "amount", "balance_after", "created_at")
    search_fields = ("user__email", "reference_id")
