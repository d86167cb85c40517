from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.conf import settings

from .exceptions import InvalidOrderAmount

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def _to_decimal(value: object) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def resolve_commission_rate(seller) -> Decimal:
    rate = _to_decimal(getattr(seller, "commission_rate", None))
    if rate is None or rate < 0:
        return Decimal(settings.DEFAULT_COMMISSION_RATE)
    return rate


@dataclass(frozen=True)
class CommissionCalculation:
    sale_price: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    seller_amount: Decimal
    processing_fee_rate: Decimal
    processing_fee: Decimal
    net_seller_amount: Decimal

    def quantized(self) -> "CommissionCalculation":
        """
        Round to cents for persistence.

        Only the commission and the processing fee are rounded; the seller and
        net amounts are derived from them so that
        ``commission_amount + seller_amount == sale_price`` and
        ``processing_fee + net_seller_amount == seller_amount`` hold exactly.
        """
        sale_price = self.sale_price.quantize(CENT, rounding=ROUND_HALF_UP)
        commission_amount = self.commission_amount.quantize(CENT, rounding=ROUND_HALF_UP)
        seller_amount = sale_price - commission_amount
        processing_fee = (seller_amount * self.processing_fee_rate / HUNDRED).quantize(
            CENT, rounding=ROUND_HALF_UP
        )
        return CommissionCalculation(
            sale_price=sale_price,
            commission_rate=self.commission_rate.quantize(CENT, rounding=ROUND_HALF_UP),
            commission_amount=commission_amount,
            seller_amount=seller_amount,
            processing_fee_rate=self.processing_fee_rate.quantize(CENT, rounding=ROUND_HALF_UP),
            processing_fee=processing_fee,
            net_seller_amount=seller_amount - processing_fee,
        )


def calculate_commission(order, seller, processing_fee_rate: Decimal | None = None) -> CommissionCalculation:
    sale_price = _to_decimal(getattr(order, "total_amount", None))
    if sale_price is None or sale_price < 0:
        raise InvalidOrderAmount(getattr(order, "total_amount", None))

    commission_rate = resolve_commission_rate(seller)
    if processing_fee_rate is None:
        processing_fee_rate = Decimal(settings.COMMISSION_PROCESSING_FEE_RATE)

    commission_amount = (sale_price * commission_rate) / HUNDRED
    seller_amount = sale_price - commission_amount
    processing_fee = (seller_amount * processing_fee_rate) / HUNDRED
    net_seller_amount = seller_amount - processing_fee

    return CommissionCalculation(
        sale_price=sale_price,
        commission_rate=commission_rate,
        commission_amount=commission_amount,
        seller_amount=seller_amount,
        processing_fee_rate=processing_fee_rate,
        processing_fee=processing_fee,
        net_seller_amount=net_seller_amount,
    )
