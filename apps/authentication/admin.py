from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    fieldsets = (
        (None, {"fields": ("email", "password")}),
        (
            "Personal info",
            {
                "fields": (
                    "full_name",
                    "phone_number",
                    "role",
                    "is_verified",
                )
            },
        ),
        (
            "Settlement",
            {
                "fields": (
                    "commission_rate",
                    "store_credit",
                    "stripe_account_id",
                    "paypal_email",
                )
            },
        ),
        (
            "Roles",
            {
                "fields": (
                    "is_active",
                    "is_staff",
                    "is_superuser",
                    "groups",
                    "user_permissions",
                )
            },
        ),
        ("Important dates", {"fields": ("last_login", "created_at", "updated_at")}),
    )
    readonly_fields = ("created_at", "updated_at")
    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "full_name", "role", "password1", "password2"),
            },
        ),
    )
    list_display = ("email", "full_name", "role", "commission_rate", "is_active")
    search_fields = ("email", "full_name")
    list_filter = ("role", "is_active")
    ordering = ("email",)
