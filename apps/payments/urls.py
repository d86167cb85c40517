from django.urls import path

from .views import PayoutWebhookView

urlpatterns = [
    path("payouts/webhook/", PayoutWebhookView.as_view(), name="payout-webhook"),
]
