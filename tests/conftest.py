import itertools
from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from apps.authentication.models import User
from apps.commissions.models import Commission
from apps.commissions.services import create_commission_from_order
from apps.orders.models import Order
from apps.products.models import Product

_order_numbers = itertools.count(1000)


class StubProvider:
    """In-memory valuation provider recording the prompts it receives."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.prompts = []

    def request_valuation(self, prompt, system_prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def admin_user(db):
    return User.objects.create_superuser(email="admin@opshop.test", password="Admin123!", full_name="Admin")


@pytest.fixture
def make_seller(db):
    def _make(email="seller@opshop.test", commission_rate=Decimal("10.00")):
        return User.objects.create_user(
            email=email,
            password="Seller123!",
            full_name="Seller",
            role=User.Role.SELLER,
            commission_rate=commission_rate,
        )

    return _make


@pytest.fixture
def seller(make_seller):
    return make_seller()


@pytest.fixture
def buyer(db):
    return User.objects.create_user(email="buyer@opshop.test", password="Buyer123!", full_name="Buyer")


@pytest.fixture
def make_order(db):
    def _make(seller, total_amount="100.00", status=Order.Status.DELIVERED):
        product = Product.objects.create(seller=seller, title="Vintage lamp", price=total_amount)
        return Order.objects.create(
            order_number=f"ORD{next(_order_numbers)}",
            product=product,
            seller=seller,
            total_amount=Decimal(total_amount),
            status=status,
        )

    return _make


@pytest.fixture
def make_commission(make_order):
    """Record a commission for a fresh order, aged ``age_days`` days."""

    def _make(seller, total_amount="100.00", age_days=10):
        commission = create_commission_from_order(make_order(seller, total_amount), seller)
        Commission.objects.filter(pk=commission.pk).update(
            created_at=timezone.now() - timedelta(days=age_days)
        )
        commission.refresh_from_db()
        return commission

    return _make
