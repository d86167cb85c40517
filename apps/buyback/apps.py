from django.apps import AppConfig


class BuybackConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.buyback"
    verbose_name = "Buyback"
