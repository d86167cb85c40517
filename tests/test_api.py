import uuid
from datetime import timedelta
from decimal import Decimal
from unittest import mock

import pytest
from django.utils import timezone

from apps.buyback.exceptions import ValuationProviderError
from apps.buyback.models import BuybackOffer
from apps.commissions.models import Commission, Payout, PayoutSettings
from apps.commissions.services import create_payout, update_payout_settings
from apps.orders.models import Order
from apps.payments.models import PaymentLog

from .conftest import StubProvider

pytestmark = pytest.mark.django_db

WEBHOOK_URL = "/api/payments/payouts/webhook/"


@pytest.fixture
def seller_client(api_client, seller):
    api_client.force_authenticate(seller)
    return api_client


@pytest.fixture
def admin_client(api_client, admin_user):
    api_client.force_authenticate(admin_user)
    return api_client


def test_complete_order_records_commission(seller_client, seller, make_order):
    order = make_order(seller, "100.00", status=Order.Status.SHIPPED)

    response = seller_client.post(f"/api/orders/orders/{order.id}/complete/")

    assert response.status_code == 201
    assert response.data["net_seller_amount"] == "87.39"
    assert response.data["order_number"] == order.order_number
    order.refresh_from_db()
    assert order.status == Order.Status.DELIVERED
    assert order.delivered_at is not None

    again = seller_client.post(f"/api/orders/orders/{order.id}/complete/")
    assert again.status_code == 200
    assert again.data["id"] == response.data["id"]
    assert Commission.objects.count() == 1


def test_cancelled_order_cannot_complete(seller_client, seller, make_order):
    order = make_order(seller, status=Order.Status.CANCELLED)

    response = seller_client.post(f"/api/orders/orders/{order.id}/complete/")

    assert response.status_code == 400
    assert not Commission.objects.exists()


def test_sellers_only_see_their_orders(seller_client, seller, make_seller, make_order):
    make_order(seller)
    make_order(make_seller("other@opshop.test"))

    response = seller_client.get("/api/orders/orders/")

    assert response.status_code == 200
    assert response.data["count"] == 1


def test_buyers_cannot_use_seller_endpoints(api_client, buyer):
    api_client.force_authenticate(buyer)

    assert api_client.get("/api/commissions/commissions/").status_code == 403
    assert api_client.post("/api/commissions/payouts/", {}).status_code == 403


def test_seller_requests_payout(seller_client, seller, make_commission):
    make_commission(seller, "100.00")

    response = seller_client.post("/api/commissions/payouts/", {"payment_method": "paypal"}, format="json")

    assert response.status_code == 201
    assert response.data["total_amount"] == "87.39"
    assert response.data["payment_method"] == "paypal"
    assert response.data["status"] == "pending"

    empty = seller_client.post("/api/commissions/payouts/", {}, format="json")
    assert empty.status_code == 400


def test_seller_payout_respects_configured_holding_period(seller_client, seller, make_commission):
    update_payout_settings({"holding_period_days": 30})
    make_commission(seller, "100.00", age_days=10)

    early = seller_client.post("/api/commissions/payouts/", {}, format="json")

    assert early.status_code == 400
    assert not Payout.objects.exists()

    update_payout_settings({"holding_period_days": 5})
    ready = seller_client.post("/api/commissions/payouts/", {}, format="json")

    assert ready.status_code == 201
    assert ready.data["total_amount"] == "87.39"


def test_admin_payout_requires_seller(admin_client, seller, make_commission):
    make_commission(seller, "100.00")

    missing = admin_client.post("/api/commissions/payouts/", {}, format="json")
    created = admin_client.post("/api/commissions/payouts/", {"seller_id": str(seller.id)}, format="json")

    assert missing.status_code == 400
    assert created.status_code == 201
    assert str(created.data["seller"]) == str(seller.id)


def test_payout_commissions_listing(seller_client, seller, make_commission):
    commission = make_commission(seller)
    payout = create_payout(seller.id)

    response = seller_client.get(f"/api/commissions/payouts/{payout.id}/commissions/")

    assert response.status_code == 200
    assert [row["id"] for row in response.data] == [str(commission.id)]


def test_admin_completes_and_fails_payouts(admin_client, seller, make_commission):
    make_commission(seller)
    payout = create_payout(seller.id)

    completed = admin_client.post(
        f"/api/commissions/payouts/{payout.id}/complete/", {"payment_reference": "po_1"}, format="json"
    )
    conflict = admin_client.post(
        f"/api/commissions/payouts/{payout.id}/fail/", {"failure_reason": "late"}, format="json"
    )

    assert completed.status_code == 200
    assert completed.data["status"] == "completed"
    assert conflict.status_code == 409
    assert Commission.objects.get().status == Commission.Status.PAID


def test_sellers_cannot_complete_payouts(seller_client, seller, make_commission):
    make_commission(seller)
    payout = create_payout(seller.id)

    response = seller_client.post(
        f"/api/commissions/payouts/{payout.id}/complete/", {"payment_reference": "po_1"}, format="json"
    )

    assert response.status_code == 403
    payout.refresh_from_db()
    assert payout.status == Payout.Status.PENDING


def test_unknown_payout_is_404(admin_client):
    response = admin_client.post(
        f"/api/commissions/payouts/{uuid.uuid4()}/complete/", {"payment_reference": "po_1"}, format="json"
    )

    assert response.status_code == 404


def test_run_automated_payouts_endpoint(admin_client, seller, make_commission):
    make_commission(seller, "100.00")

    disabled = admin_client.post("/api/commissions/payouts/run-automated/")
    admin_client.patch("/api/commissions/settings/", {"auto_payout_enabled": True}, format="json")
    enabled = admin_client.post("/api/commissions/payouts/run-automated/")

    assert disabled.status_code == 200
    assert disabled.data["message"] == "Automated payouts are disabled"
    assert enabled.data["successful"] == 1


def test_payout_settings(admin_client, admin_user):
    current = admin_client.get("/api/commissions/settings/")
    updated = admin_client.patch(
        "/api/commissions/settings/",
        {"minimum_payout_amount": "75.00", "holding_period_days": 14},
        format="json",
    )
    invalid = admin_client.patch("/api/commissions/settings/", {"holding_period_days": -1}, format="json")

    assert current.data["minimum_payout_amount"] == "50.00"
    assert updated.status_code == 200
    assert invalid.status_code == 400
    stored = PayoutSettings.load()
    assert stored.minimum_payout_amount == Decimal("75.00")
    assert stored.holding_period_days == 14
    assert stored.updated_by == admin_user


def test_commission_analytics_is_admin_only(admin_client, seller, make_commission, api_client):
    make_commission(seller, "100.00")

    response = admin_client.get("/api/commissions/analytics/")

    assert response.status_code == 200
    assert response.data["total_commissions"] == {"amount": "10.00", "count": 1}

    api_client.force_authenticate(seller)
    assert api_client.get("/api/commissions/analytics/").status_code == 403


def _webhook(api_client, payload, secret="test-webhook-secret"):
    return api_client.post(WEBHOOK_URL, payload, format="json", HTTP_X_WEBHOOK_SECRET=secret)


def test_webhook_settles_payout(api_client, seller, make_commission):
    make_commission(seller)
    payout = create_payout(seller.id)

    processing = _webhook(api_client, {"event": "payout.processing", "data": {"payout_id": str(payout.id)}})
    paid = _webhook(
        api_client,
        {"event": "payout.paid", "data": {"payout_id": str(payout.id), "reference": "tr_123"}},
    )

    assert processing.status_code == 200
    assert paid.data == {"status": "ok"}
    payout.refresh_from_db()
    assert payout.status == Payout.Status.COMPLETED
    assert payout.payment_reference == "tr_123"
    assert PaymentLog.objects.count() == 2


def test_webhook_failure_releases_commissions(api_client, seller, make_commission):
    make_commission(seller)
    payout = create_payout(seller.id)

    response = _webhook(
        api_client,
        {"event": "payout.failed", "data": {"payout_id": str(payout.id), "reason": "Account closed"}},
    )

    assert response.status_code == 200
    payout.refresh_from_db()
    assert payout.failure_reason == "Account closed"
    assert Commission.objects.get().status == Commission.Status.PENDING


def test_webhook_rejects_bad_secret(api_client, seller, make_commission):
    make_commission(seller)
    payout = create_payout(seller.id)

    response = _webhook(api_client, {"event": "payout.paid", "data": {"payout_id": str(payout.id)}}, secret="nope")

    assert response.status_code == 403
    assert not PaymentLog.objects.exists()
    payout.refresh_from_db()
    assert payout.status == Payout.Status.PENDING


def test_webhook_edge_cases(api_client):
    ignored = _webhook(api_client, {"event": "charge.succeeded", "data": {}})
    missing = _webhook(api_client, {"event": "payout.paid", "data": {"payout_id": str(uuid.uuid4())}})

    assert ignored.data == {"status": "ignored"}
    assert missing.status_code == 404


@pytest.mark.parametrize(
    "payload",
    [
        {"event": "payout.paid", "data": "x"},
        {"event": "payout.paid", "data": {"payout_id": {"id": "nested"}}},
        {"event": ["payout.paid"], "data": {}},
        ["payout.paid"],
    ],
)
def test_webhook_rejects_malformed_bodies(api_client, seller, make_commission, payload):
    make_commission(seller)
    payout = create_payout(seller.id)

    response = _webhook(api_client, payload)

    assert response.status_code == 400
    assert not PaymentLog.objects.exists()
    payout.refresh_from_db()
    assert payout.status == Payout.Status.PENDING


def test_evaluate_endpoint_always_prices(api_client, buyer):
    api_client.force_authenticate(buyer)
    offline = StubProvider(error=ValuationProviderError("down"))

    with mock.patch("apps.buyback.valuation.OpenAIValuationProvider", return_value=offline):
        response = api_client.post(
            "/api/buyback/evaluate/",
            {"title": "Gaming console", "condition": "good", "category": "electronics"},
            format="json",
        )

    assert response.status_code == 200
    assert response.data["source"] == "fallback"
    assert response.data["buyback_offer_price"] == "45.00"


def test_evaluate_endpoint_validates_input(api_client, buyer):
    api_client.force_authenticate(buyer)

    response = api_client.post("/api/buyback/evaluate/", {"condition": "good"}, format="json")

    assert response.status_code == 400


def test_buyback_offer_flow(api_client, buyer):
    api_client.force_authenticate(buyer)
    provider = StubProvider('{"estimated_retail_price": 100}')

    with mock.patch("apps.buyback.valuation.OpenAIValuationProvider", return_value=provider):
        created = api_client.post(
            "/api/buyback/offers/",
            {"title": "Road bike", "condition": "good", "category": "sports"},
            format="json",
        )
    offer_id = created.data["id"]
    listed = api_client.get("/api/buyback/offers/")
    accepted = api_client.post(f"/api/buyback/offers/{offer_id}/accept/")
    repeat = api_client.post(f"/api/buyback/offers/{offer_id}/accept/")
    unknown = api_client.post(f"/api/buyback/offers/{uuid.uuid4()}/reject/")

    assert created.status_code == 201
    assert created.data["buyback_offer_price"] == "50.00"
    assert [row["id"] for row in listed.data] == [offer_id]
    assert accepted.status_code == 200
    assert accepted.data["store_credit_added"] == "50.00"
    assert repeat.status_code == 400
    assert unknown.status_code == 400
    assert BuybackOffer.objects.get().status == BuybackOffer.Status.ACCEPTED
    buyer.refresh_from_db()
    assert buyer.store_credit == Decimal("50.00")


def test_store_credit_history(api_client, buyer):
    api_client.force_authenticate(buyer)
    provider = StubProvider('{"estimated_retail_price": 60}')

    with mock.patch("apps.buyback.valuation.OpenAIValuationProvider", return_value=provider):
        first = api_client.post("/api/buyback/offers/", {"title": "Desk lamp", "condition": "good"}, format="json")
        second = api_client.post("/api/buyback/offers/", {"title": "Toaster", "condition": "fair"}, format="json")
    api_client.post(f"/api/buyback/offers/{first.data['id']}/accept/")
    api_client.post(f"/api/buyback/offers/{second.data['id']}/accept/")

    response = api_client.get("/api/buyback/store-credit/")
    limited = api_client.get("/api/buyback/store-credit/", {"limit": 1})

    assert response.status_code == 200
    assert response.data["balance"] == "60.00"
    assert [row["balance_after"] for row in response.data["transactions"]] == ["60.00", "30.00"]
    assert len(limited.data["transactions"]) == 1


def test_admin_lists_all_offers(api_client, admin_user, buyer, make_seller):
    other = make_seller("other@opshop.test")
    for owner in (buyer, buyer, other):
        BuybackOffer.objects.create(
            user=owner,
            item_title="Chair",
            item_condition="good",
            ai_evaluated_retail_price=Decimal("40.00"),
            buyback_offer_price=Decimal("20.00"),
            expires_at=timezone.now() + timedelta(hours=24),
        )
    BuybackOffer.objects.filter(user=other).update(status=BuybackOffer.Status.REJECTED)

    api_client.force_authenticate(buyer)
    assert api_client.get("/api/buyback/admin/offers/").status_code == 403

    api_client.force_authenticate(admin_user)
    everything = api_client.get("/api/buyback/admin/offers/", {"page_size": 2})
    rejected = api_client.get("/api/buyback/admin/offers/", {"status": "rejected"})

    assert everything.data["count"] == 3
    assert len(everything.data["results"]) == 2
    assert everything.data["next"] is not None
    assert rejected.data["count"] == 1
    assert str(rejected.data["results"][0]["user"]) == str(other.id)
