from django.contrib import admin

from .models import Order


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "product", "seller", "buyer", "status", "total_amount")
    search_fields = ("order_number", "seller__email")
    list_filter = ("status",)
