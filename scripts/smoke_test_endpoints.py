from __future__ import annotations

import json
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from apps.buyback.models import BuybackOffer, StoreCreditTransaction
from apps.commissions.models import Commission, Payout, PayoutSettings
from apps.orders.models import Order
from apps.payments.models import PaymentLog
from apps.products.models import Product


def _print(title: str, data) -> None:
    print(f"\n=== {title} ===")
    if isinstance(data, (dict, list)):
        print(json.dumps(data, indent=2, default=str))
    else:
        print(data)


def run() -> None:
    """
    Manual smoke test walking an order through commission, payout and settlement,
    then a buyback offer through acceptance.

    Run with:
      python manage.py shell --settings=config.settings.testing -c "from scripts.smoke_test_endpoints import run; run()"
    """
    User = get_user_model()

    # Clean tables for a deterministic run
    PaymentLog.objects.all().delete()
    StoreCreditTransaction.objects.all().delete()
    BuybackOffer.objects.all().delete()
    Commission.objects.all().delete()
    Payout.objects.all().delete()
    Order.objects.all().delete()
    Product.objects.all().delete()
    PayoutSettings.objects.all().delete()
    User.objects.all().delete()

    admin = User.objects.create_superuser(email="admin@example.com", password="Admin123!", full_name="Admin User")
    seller = User.objects.create_user(
        email="seller@example.com",
        password="Seller123!",
        full_name="Seller User",
        role="seller",
    )
    buyer = User.objects.create_user(email="buyer@example.com", password="Buyer123!", full_name="Buyer User")
    _print("Users created", {"admin": admin.email, "seller": seller.email, "buyer": buyer.email})

    admin_client = APIClient()
    admin_client.force_authenticate(admin)
    seller_client = APIClient()
    seller_client.force_authenticate(seller)
    buyer_client = APIClient()
    buyer_client.force_authenticate(buyer)

    product = Product.objects.create(seller=seller, title="Mid-century armchair", category="furniture", price="240.00")
    order = Order.objects.create(
        order_number="ORD-SMOKE-1",
        product=product,
        seller=seller,
        buyer=buyer,
        total_amount=product.price,
        status=Order.Status.SHIPPED,
    )

    resp = seller_client.post(f"/api/orders/orders/{order.id}/complete/")
    _print("POST /api/orders/orders/<id>/complete/", {"status": resp.status_code, "data": resp.data})

    # Skip the holding period so the commission is eligible right away
    Commission.objects.filter(order=order).update(created_at=timezone.now() - timedelta(days=8))

    resp = seller_client.post("/api/commissions/payouts/", {"payment_method": "stripe"}, format="json")
    _print("POST /api/commissions/payouts/", {"status": resp.status_code, "data": resp.data})
    payout_id = resp.data.get("id")

    resp = seller_client.get(f"/api/commissions/payouts/{payout_id}/commissions/")
    _print("GET /api/commissions/payouts/<id>/commissions/", {"status": resp.status_code, "count": len(resp.data)})

    webhook_client = APIClient()
    resp = webhook_client.post(
        "/api/payments/payouts/webhook/",
        {"event": "payout.paid", "data": {"payout_id": payout_id, "reference": "tr_smoke_1"}},
        format="json",
        HTTP_X_WEBHOOK_SECRET=settings.PAYOUT_WEBHOOK_SECRET,
    )
    _print("Payout paid webhook", {"status": resp.status_code, "data": resp.data})

    resp = admin_client.post("/api/commissions/payouts/run-automated/")
    _print("POST /api/commissions/payouts/run-automated/", {"status": resp.status_code, "data": resp.data})

    resp = admin_client.get("/api/commissions/analytics/")
    _print("GET /api/commissions/analytics/", {"status": resp.status_code, "data": resp.data})

    # Buyback (falls back to rule pricing when no OpenAI key is configured)
    item = {"title": "Espresso machine", "condition": "good", "category": "home", "brand": "Breville"}
    resp = buyer_client.post("/api/buyback/offers/", item, format="json")
    _print("POST /api/buyback/offers/", {"status": resp.status_code, "data": resp.data})

    resp = buyer_client.post(f"/api/buyback/offers/{resp.data['id']}/accept/")
    _print("POST /api/buyback/offers/<id>/accept/", {"status": resp.status_code, "data": resp.data})

    resp = admin_client.get("/api/buyback/analytics/")
    _print("GET /api/buyback/analytics/", {"status": resp.status_code, "data": resp.data})

    _print("Smoke test complete", "OK")
