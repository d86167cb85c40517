from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("title", "seller", "price", "condition", "category", "is_active")
    search_fields = ("title", "brand")
    list_filter = ("is_active", "condition")
