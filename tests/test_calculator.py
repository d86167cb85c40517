from decimal import Decimal
from types import SimpleNamespace

import pytest

from apps.commissions.calculator import calculate_commission
from apps.commissions.exceptions import InvalidOrderAmount


def _order(total):
    return SimpleNamespace(total_amount=total)


def _seller(rate="10.00"):
    return SimpleNamespace(commission_rate=rate)


def test_standard_split():
    calc = calculate_commission(_order("100.00"), _seller("10.00")).quantized()

    assert calc.commission_amount == Decimal("10.00")
    assert calc.seller_amount == Decimal("90.00")
    assert calc.processing_fee == Decimal("2.61")
    assert calc.net_seller_amount == Decimal("87.39")


def test_unrounded_values_keep_full_precision():
    calc = calculate_commission(_order("33.33"), _seller("12.5"))

    assert calc.commission_amount == Decimal("4.16625")
    assert calc.seller_amount == Decimal("29.16375")
    assert isinstance(calc.net_seller_amount, Decimal)


@pytest.mark.parametrize(
    "total,rate",
    [
        ("100.00", "10.00"),
        ("33.33", "12.5"),
        ("0.05", "10"),
        ("19.99", "7.25"),
        ("1234.57", "15.15"),
        ("0.00", "10"),
    ],
)
def test_quantized_amounts_add_up(total, rate):
    calc = calculate_commission(_order(total), _seller(rate)).quantized()

    assert calc.commission_amount + calc.seller_amount == calc.sale_price
    assert calc.processing_fee + calc.net_seller_amount == calc.seller_amount
    for amount in (calc.commission_amount, calc.seller_amount, calc.processing_fee, calc.net_seller_amount):
        assert amount == amount.quantize(Decimal("0.01"))


@pytest.mark.parametrize("rate", [None, "", "ten percent", "NaN"])
def test_missing_or_unparseable_rate_uses_default(rate):
    calc = calculate_commission(_order("200"), _seller(rate))

    assert calc.commission_rate == Decimal("10.00")
    assert calc.commission_amount == Decimal("20")


def test_seller_without_rate_attribute_uses_default():
    calc = calculate_commission(_order("50"), object())

    assert calc.commission_rate == Decimal("10.00")


def test_default_rate_comes_from_settings(settings):
    settings.DEFAULT_COMMISSION_RATE = Decimal("15")

    calc = calculate_commission(_order("100"), _seller(None))

    assert calc.commission_amount == Decimal("15")


def test_processing_fee_rate_is_configurable(settings):
    settings.COMMISSION_PROCESSING_FEE_RATE = Decimal("3.5")

    calc = calculate_commission(_order("100.00"), _seller("10")).quantized()

    assert calc.processing_fee_rate == Decimal("3.50")
    assert calc.processing_fee == Decimal("3.15")
    assert calc.net_seller_amount == Decimal("86.85")


def test_processing_fee_rate_can_be_passed_per_call():
    calc = calculate_commission(_order("100.00"), _seller("10"), processing_fee_rate=Decimal("0"))

    assert calc.processing_fee == 0
    assert calc.net_seller_amount == calc.seller_amount


def test_accepts_numeric_totals():
    calc = calculate_commission(_order(Decimal("80")), _seller(Decimal("5")))

    assert calc.commission_amount == Decimal("4")


@pytest.mark.parametrize("total", [None, "", "abc", "-1.00", "NaN", "Infinity", True])
def test_invalid_amount_is_rejected(total):
    with pytest.raises(InvalidOrderAmount):
        calculate_commission(_order(total), _seller())
