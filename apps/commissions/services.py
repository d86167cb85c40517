from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Count, QuerySet, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone

from apps.orders.models import Order

from .calculator import CENT, calculate_commission
from .exceptions import (
    InvalidPayoutTransition,
    NoEligibleCommissions,
    PayoutBelowMinimum,
    PayoutConflict,
    PayoutNotFound,
    SettlementError,
)
from .models import Commission, Payout, PayoutConfig, PayoutSettings

logger = logging.getLogger(__name__)

DEFAULT_HOLDING_PERIOD_DAYS = 7
DEFAULT_MINIMUM_PAYOUT = Decimal("50.00")

PAYOUT_SETTINGS_FIELDS = (
    "auto_payout_enabled",
    "minimum_payout_amount",
    "holding_period_days",
    "default_payment_method",
)


@dataclass
class PayoutAmount:
    total_amount: Decimal
    commission_count: int
    commissions: List[Commission] = field(default_factory=list)


def _holding_cutoff(holding_period_days: int) -> datetime:
    return timezone.now() - timedelta(days=holding_period_days)


def _sum_net(commissions: Iterable[Commission]) -> Decimal:
    return sum((c.net_seller_amount for c in commissions), Decimal("0"))


def _money(value: Optional[Decimal]) -> str:
    return str(Decimal(value or 0).quantize(CENT))


def create_commission_from_order(order: Order, seller=None) -> Commission:
    """
    Record the marketplace commission for a completed order.

    An order carries at most one commission; calling this again for the same
    order returns the existing record untouched.
    """
    seller = seller or order.seller

    existing = Commission.objects.filter(order=order).first()
    if existing:
        return existing

    calculation = calculate_commission(order, seller).quantized()

    try:
        with transaction.atomic():
            commission = Commission.objects.create(
                order=order,
                product_id=order.product_id,
                seller=seller,
                sale_price=calculation.sale_price,
                commission_rate=calculation.commission_rate,
                commission_amount=calculation.commission_amount,
                seller_amount=calculation.seller_amount,
                processing_fee_rate=calculation.processing_fee_rate,
                processing_fee=calculation.processing_fee,
                net_seller_amount=calculation.net_seller_amount,
                status=Commission.Status.PENDING,
            )
    except IntegrityError:
        # Another worker recorded the commission first.
        return Commission.objects.get(order=order)

    logger.info(
        "Commission %s recorded for order %s: sale=%s commission=%s net=%s",
        commission.id,
        order.order_number,
        calculation.sale_price,
        calculation.commission_amount,
        calculation.net_seller_amount,
    )
    return commission


def get_pending_commissions(
    seller_id,
    minimum_amount: Decimal = DEFAULT_MINIMUM_PAYOUT,  # noqa: ARG001
    holding_period_days: int = DEFAULT_HOLDING_PERIOD_DAYS,
) -> QuerySet[Commission]:
    """
    Pending, unbatched commissions for a seller that are past the holding period.

    ``minimum_amount`` is not applied per commission. Payout thresholds are
    checked against the aggregate balance by the payout scheduler.
    """
    return Commission.objects.filter(
        seller_id=seller_id,
        status=Commission.Status.PENDING,
        payout__isnull=True,
        created_at__lt=_holding_cutoff(holding_period_days),
    ).order_by("-created_at")


def calculate_payout_amount(seller_id, holding_period_days: int = DEFAULT_HOLDING_PERIOD_DAYS) -> PayoutAmount:
    commissions = list(get_pending_commissions(seller_id, Decimal("0"), holding_period_days))
    return PayoutAmount(
        total_amount=_sum_net(commissions),
        commission_count=len(commissions),
        commissions=commissions,
    )


def create_payout(
    seller_id,
    payment_method: str = Payout.PaymentMethod.STRIPE,
    scheduled_date: Optional[datetime] = None,
    holding_period_days: int = DEFAULT_HOLDING_PERIOD_DAYS,
    minimum_amount: Optional[Decimal] = None,
) -> Payout:
    if payment_method not in Payout.PaymentMethod.values:
        raise SettlementError(f"Unsupported payment method: {payment_method}")

    with transaction.atomic():
        # Lock the seller's eligible rows so concurrent payout runs cannot
        # attach the same commission twice.
        commissions = list(
            get_pending_commissions(seller_id, holding_period_days=holding_period_days).select_for_update()
        )
        total_amount = _sum_net(commissions)

        if not commissions or total_amount == 0:
            raise NoEligibleCommissions(seller_id)
        if minimum_amount is not None and total_amount < minimum_amount:
            raise PayoutBelowMinimum(total_amount, minimum_amount)

        now = timezone.now()
        payout = Payout.objects.create(
            seller_id=seller_id,
            total_amount=total_amount,
            total_commissions=len(commissions),
            payment_method=payment_method,
            status=Payout.Status.PENDING,
            scheduled_date=scheduled_date or now,
        )

        attached = Commission.objects.filter(
            id__in=[c.id for c in commissions],
            status=Commission.Status.PENDING,
            payout__isnull=True,
        ).update(payout=payout, status=Commission.Status.PROCESSING, updated_at=now)
        if attached != len(commissions):
            raise PayoutConflict(seller_id)

    logger.info(
        "Payout %s created for seller %s: %s across %d commissions via %s",
        payout.id,
        seller_id,
        total_amount,
        len(commissions),
        payment_method,
    )
    return payout


def _lock_payout(payout_id) -> Payout:
    try:
        return Payout.objects.select_for_update().get(pk=payout_id)
    except (Payout.DoesNotExist, ValidationError, ValueError):
        raise PayoutNotFound(payout_id)


def mark_payout_processing(payout_id) -> Payout:
    with transaction.atomic():
        payout = _lock_payout(payout_id)
        if payout.status == Payout.Status.PROCESSING:
            return payout
        if payout.status != Payout.Status.PENDING:
            raise InvalidPayoutTransition(payout.id, payout.status, Payout.Status.PROCESSING)
        payout.status = Payout.Status.PROCESSING
        payout.save(update_fields=["status", "updated_at"])
    return payout


def complete_payout(payout_id, payment_reference: str) -> Payout:
    with transaction.atomic():
        payout = _lock_payout(payout_id)
        if payout.status == Payout.Status.COMPLETED:
            logger.info("Payout %s already completed; ignoring repeat completion", payout.id)
            return payout
        if payout.status == Payout.Status.FAILED:
            raise InvalidPayoutTransition(payout.id, payout.status, Payout.Status.COMPLETED)

        now = timezone.now()
        payout.status = Payout.Status.COMPLETED
        payout.processed_date = now
        payout.payment_reference = payment_reference
        payout.save(update_fields=["status", "processed_date", "payment_reference", "updated_at"])

        paid = Commission.objects.filter(
            payout=payout,
            status=Commission.Status.PROCESSING,
        ).update(status=Commission.Status.PAID, paid_at=now, updated_at=now)

    logger.info("Payout %s completed (ref %s); %d commissions paid", payout.id, payment_reference, paid)
    return payout


def fail_payout(payout_id, failure_reason: str) -> Payout:
    with transaction.atomic():
        payout = _lock_payout(payout_id)
        if payout.status == Payout.Status.FAILED:
            return payout
        if payout.status == Payout.Status.COMPLETED:
            raise InvalidPayoutTransition(payout.id, payout.status, Payout.Status.FAILED)

        now = timezone.now()
        payout.status = Payout.Status.FAILED
        payout.failure_reason = failure_reason
        payout.save(update_fields=["status", "failure_reason", "updated_at"])

        # Released commissions become eligible for a later batch.
        released = Commission.objects.filter(
            payout=payout,
            status=Commission.Status.PROCESSING,
        ).update(status=Commission.Status.PENDING, payout=None, updated_at=now)

    logger.warning("Payout %s failed: %s; %d commissions released", payout.id, failure_reason, released)
    return payout


def get_seller_payouts(seller_id) -> QuerySet[Payout]:
    return Payout.objects.filter(seller_id=seller_id).order_by("-created_at")


def get_payout_commissions(payout_id) -> QuerySet[Commission]:
    try:
        exists = Payout.objects.filter(pk=payout_id).exists()
    except (ValidationError, ValueError):
        exists = False
    if not exists:
        raise PayoutNotFound(payout_id)
    return (
        Commission.objects.filter(payout_id=payout_id)
        .select_related("order", "product")
        .order_by("-created_at")
    )


def _months_back(now: datetime, months: int) -> datetime:
    year, month = now.year, now.month - months
    while month <= 0:
        month += 12
        year -= 1
    return now.replace(year=year, month=month, day=1, hour=0, minute=0, second=0, microsecond=0)


def get_commission_analytics() -> Dict[str, Any]:
    commissions = Commission.objects.aggregate(total=Sum("commission_amount"), count=Count("id"))
    completed = Payout.objects.filter(status=Payout.Status.COMPLETED).aggregate(
        total=Sum("total_amount"), count=Count("id")
    )
    pending = Payout.objects.filter(status=Payout.Status.PENDING).aggregate(
        total=Sum("total_amount"), count=Count("id")
    )

    since = _months_back(timezone.localtime(), 12)
    monthly = (
        Commission.objects.filter(created_at__gte=since)
        .annotate(month=TruncMonth("created_at"))
        .values("month")
        .annotate(total=Sum("commission_amount"), count=Count("id"))
        .order_by("month")
    )

    return {
        "total_commissions": {"amount": _money(commissions["total"]), "count": commissions["count"]},
        "total_payouts": {"amount": _money(completed["total"]), "count": completed["count"]},
        "pending_payouts": {"amount": _money(pending["total"]), "count": pending["count"]},
        "monthly_stats": [
            {
                "month": row["month"].strftime("%Y-%m"),
                "amount": _money(row["total"]),
                "count": row["count"],
            }
            for row in monthly
        ],
    }


def load_payout_config() -> PayoutConfig:
    return PayoutSettings.load().to_config()


def update_payout_settings(updates: Dict[str, Any], updated_by=None) -> PayoutSettings:
    with transaction.atomic():
        PayoutSettings.load()
        payout_settings = PayoutSettings.objects.select_for_update().get(pk=PayoutSettings.SINGLETON_ID)
        for name, value in updates.items():
            if name not in PAYOUT_SETTINGS_FIELDS:
                raise SettlementError(f"Unknown payout setting: {name}")
            setattr(payout_settings, name, value)
        payout_settings.updated_by = updated_by
        payout_settings.save()

    logger.info("Payout settings updated by %s: %s", getattr(updated_by, "email", None), sorted(updates))
    return payout_settings
