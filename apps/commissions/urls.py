from django.urls import path
from rest_framework.routers import DefaultRouter

from .views import CommissionAnalyticsView, CommissionViewSet, PayoutSettingsView, PayoutViewSet

router = DefaultRouter()
router.register("commissions", CommissionViewSet, basename="commission")
router.register("payouts", PayoutViewSet, basename="payout")

urlpatterns = [
    path("analytics/", CommissionAnalyticsView.as_view(), name="commission-analytics"),
    path("settings/", PayoutSettingsView.as_view(), name="payout-settings"),
] + router.urls
