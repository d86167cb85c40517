from django.urls import path

from .views import (
    AcceptBuybackOfferView,
    AdminBuybackOfferListView,
    BuybackAnalyticsView,
    BuybackOfferListCreateView,
    EvaluateItemView,
    RejectBuybackOfferView,
    StoreCreditView,
)

urlpatterns = [
    path("evaluate/", EvaluateItemView.as_view(), name="buyback-evaluate"),
    path("offers/", BuybackOfferListCreateView.as_view(), name="buyback-offers"),
    path("offers/<uuid:offer_id>/accept/", AcceptBuybackOfferView.as_view(), name="buyback-offer-accept"),
    path("offers/<uuid:offer_id>/reject/", RejectBuybackOfferView.as_view(), name="buyback-offer-reject"),
    path("analytics/", BuybackAnalyticsView.as_view(), name="buyback-analytics"),
    path("admin/offers/", AdminBuybackOfferListView.as_view(), name="buyback-admin-offers"),
    path("store-credit/", StoreCreditView.as_view(), name="buyback-store-credit"),
]
