from decimal import Decimal
from unittest import mock

import pytest

from apps.commissions.exceptions import NoEligibleCommissions
from apps.commissions.models import Commission, Payout, PayoutConfig, PayoutSettings
from apps.commissions.scheduler import (
    DISABLED_MESSAGE,
    find_eligible_sellers,
    process_automated_payouts,
)
from apps.commissions.services import create_payout, update_payout_settings
from apps.commissions.tasks import process_completed_orders, run_automated_payouts
from apps.orders.models import Order

pytestmark = pytest.mark.django_db

ENABLED = PayoutConfig(
    auto_payout_enabled=True,
    minimum_payout_amount=Decimal("50.00"),
    holding_period_days=7,
    default_payment_method=Payout.PaymentMethod.PAYPAL,
)


def test_disabled_run_writes_nothing(seller, make_commission):
    make_commission(seller, "500.00")

    run = process_automated_payouts(PayoutConfig(auto_payout_enabled=False))

    assert run.message == DISABLED_MESSAGE
    assert run.total_payouts == 0
    assert run.as_dict()["message"] == DISABLED_MESSAGE
    assert not Payout.objects.exists()
    assert Commission.objects.get().status == Commission.Status.PENDING


def test_run_reads_stored_settings_by_default(seller, make_commission):
    make_commission(seller, "500.00")

    run = process_automated_payouts()

    assert PayoutSettings.load().auto_payout_enabled is False
    assert run.message == DISABLED_MESSAGE
    assert not Payout.objects.exists()


def test_sellers_below_minimum_are_skipped(make_seller, make_commission):
    rich = make_seller("rich@opshop.test")
    poor = make_seller("poor@opshop.test")
    make_commission(rich, "100.00")
    make_commission(poor, "20.00")

    run = process_automated_payouts(ENABLED)

    assert run.total_payouts == run.successful == 1
    assert run.failed == 0
    payout = Payout.objects.get()
    assert payout.seller == rich
    assert payout.payment_method == Payout.PaymentMethod.PAYPAL
    assert payout.scheduled_date == run.processed_at
    assert Commission.objects.get(seller=poor).status == Commission.Status.PENDING


def test_minimum_is_met_by_summed_balance(seller, make_commission):
    make_commission(seller, "30.00")
    make_commission(seller, "30.00")

    rows = find_eligible_sellers(ENABLED)

    assert len(rows) == 1
    assert rows[0]["seller_id"] == seller.id
    assert rows[0]["total_amount"] == Decimal("52.44")
    assert rows[0]["commission_count"] == 2


def test_holding_period_from_config(seller, make_commission):
    make_commission(seller, "100.00", age_days=3)

    assert process_automated_payouts(ENABLED).total_payouts == 0

    run = process_automated_payouts(
        PayoutConfig(auto_payout_enabled=True, minimum_payout_amount=Decimal("50.00"), holding_period_days=2)
    )
    assert run.successful == 1


def test_failure_for_one_seller_does_not_stop_others(make_seller, make_commission):
    first = make_seller("first@opshop.test")
    second = make_seller("second@opshop.test")
    make_commission(first, "100.00")
    make_commission(second, "100.00")

    def flaky(seller_id, **kwargs):
        if seller_id == first.id:
            raise RuntimeError("processor exploded")
        return create_payout(seller_id, **kwargs)

    with mock.patch("apps.commissions.scheduler.create_payout", side_effect=flaky):
        run = process_automated_payouts(ENABLED)

    assert run.total_payouts == 2
    assert run.successful == 1
    assert run.failed == 1
    failed = next(r for r in run.results if r.seller_id == first.id)
    assert failed.error == "processor exploded"
    assert failed.as_dict()["status"] == "failed"
    assert Payout.objects.get().seller == second
    assert Commission.objects.get(seller=first).status == Commission.Status.PENDING


def test_settlement_errors_are_reported_per_seller(seller, make_commission):
    make_commission(seller, "100.00")

    with mock.patch(
        "apps.commissions.scheduler.create_payout",
        side_effect=NoEligibleCommissions(seller.id),
    ):
        run = process_automated_payouts(ENABLED)

    assert run.failed == 1
    assert run.results[0].payout is None


def test_run_summary_shape(seller, make_commission):
    make_commission(seller, "100.00")

    summary = process_automated_payouts(ENABLED).as_dict()

    assert summary["total_payouts"] == 1
    assert summary["successful"] == 1
    assert summary["failed"] == 0
    assert "message" not in summary
    result = summary["results"][0]
    assert result["seller_id"] == str(seller.id)
    assert result["status"] == "created"
    assert result["total_amount"] == "87.39"


def test_run_automated_payouts_task(seller, make_commission):
    make_commission(seller, "100.00")
    update_payout_settings({"auto_payout_enabled": True})

    summary = run_automated_payouts.delay().get()

    assert summary["successful"] == 1
    assert Payout.objects.filter(seller=seller).count() == 1


def test_process_completed_orders_task(seller, make_order):
    delivered = make_order(seller, "100.00")
    make_order(seller, "40.00", status=Order.Status.SHIPPED)
    broken = make_order(seller, "-5.00")

    assert process_completed_orders.delay().get() == 1
    assert Commission.objects.get().order == delivered
    assert not Commission.objects.filter(order=broken).exists()
    assert process_completed_orders() == 0
