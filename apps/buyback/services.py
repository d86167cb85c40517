from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Avg, Count, Q, Sum
from django.utils import timezone

from apps.authentication.models import User

from .exceptions import BuybackOfferExpired, BuybackOfferNotFound, BuybackOfferUnavailable
from .models import BuybackOffer, StoreCreditTransaction
from .valuation import ItemDetails, ValuationProvider, evaluate_item

logger = logging.getLogger(__name__)


def create_buyback_offer(user: User, item: ItemDetails, provider: Optional[ValuationProvider] = None) -> BuybackOffer:
    valuation = evaluate_item(item, provider=provider)

    offer = BuybackOffer.objects.create(
        user=user,
        item_title=item.title,
        item_description=item.description or "",
        item_condition=item.condition,
        item_age=item.age,
        item_brand=item.brand,
        item_category=item.category,
        images=list(item.images),
        ai_evaluated_retail_price=valuation.estimated_retail_price,
        buyback_offer_price=valuation.buyback_offer_price,
        ai_evaluation_data=valuation.as_dict(),
        valuation_source=valuation.source,
        expires_at=timezone.now() + timedelta(hours=settings.BUYBACK_OFFER_EXPIRY_HOURS),
    )
    logger.info(
        "Buyback offer %s created for %s: %s (%s valuation)",
        offer.id,
        user.email,
        offer.buyback_offer_price,
        valuation.source,
    )
    return offer


def _lock_offer(offer_id, user: User) -> BuybackOffer:
    try:
        return BuybackOffer.objects.select_for_update().get(pk=offer_id, user=user)
    except (BuybackOffer.DoesNotExist, ValidationError, ValueError):
        raise BuybackOfferNotFound(offer_id)


def accept_buyback_offer(offer_id, user: User) -> StoreCreditTransaction:
    """
    Accept a pending offer and credit its price to the user's store credit.

    An offer found past its expiry is marked expired and BuybackOfferExpired
    is raised; the expiry is persisted even though the acceptance fails.
    """
    credit: Optional[StoreCreditTransaction] = None
    with transaction.atomic():
        offer = _lock_offer(offer_id, user)
        if offer.status != BuybackOffer.Status.PENDING:
            raise BuybackOfferUnavailable(offer.id)

        now = timezone.now()
        if offer.expires_at <= now:
            offer.status = BuybackOffer.Status.EXPIRED
            offer.save(update_fields=["status"])
        else:
            account = User.objects.select_for_update().get(pk=user.pk)
            balance_before = Decimal(account.store_credit)
            balance_after = balance_before + offer.buyback_offer_price
            account.store_credit = balance_after
            account.save(update_fields=["store_credit", "updated_at"])

            offer.status = BuybackOffer.Status.ACCEPTED
            offer.accepted_at = now
            offer.save(update_fields=["status", "accepted_at"])

            credit = StoreCreditTransaction.objects.create(
                user=account,
                transaction_type="buyback",
                amount=offer.buyback_offer_price,
                description=f"Buyback offer accepted: {offer.item_title}",
                reference_id=str(offer.id),
                reference_type="buyback_offer",
                balance_before=balance_before,
                balance_after=balance_after,
            )

    if credit is None:
        raise BuybackOfferExpired(offer.id)

    logger.info("Buyback offer %s accepted; %s credited to %s", offer.id, credit.amount, user.email)
    return credit


def reject_buyback_offer(offer_id, user: User) -> None:
    try:
        updated = BuybackOffer.objects.filter(
            pk=offer_id,
            user=user,
            status=BuybackOffer.Status.PENDING,
        ).update(status=BuybackOffer.Status.REJECTED)
    except (ValidationError, ValueError):
        updated = 0
    if not updated:
        raise BuybackOfferUnavailable(offer_id, "Offer not found or cannot be rejected")


def expire_old_offers() -> int:
    expired = BuybackOffer.objects.filter(
        status=BuybackOffer.Status.PENDING,
        expires_at__lte=timezone.now(),
    ).update(status=BuybackOffer.Status.EXPIRED)
    if expired:
        logger.info("Expired %d buyback offers", expired)
    return expired


def get_user_buyback_offers(user: User, limit: int = 20):
    return BuybackOffer.objects.filter(user=user).order_by("-created_at")[:limit]


def get_user_store_credit(user: User) -> Decimal:
    return Decimal(User.objects.values_list("store_credit", flat=True).get(pk=user.pk))


def get_user_store_credit_transactions(user: User, limit: int = 50):
    return StoreCreditTransaction.objects.filter(user=user).order_by("-created_at")[:limit]


def get_all_buyback_offers(status: Optional[str] = None):
    offers = BuybackOffer.objects.select_related("user").order_by("-created_at")
    if status:
        offers = offers.filter(status=status)
    return offers


def get_buyback_analytics() -> Dict[str, Any]:
    accepted = Q(status=BuybackOffer.Status.ACCEPTED)
    stats = BuybackOffer.objects.aggregate(
        total=Count("id"),
        accepted=Count("id", filter=accepted),
        rejected=Count("id", filter=Q(status=BuybackOffer.Status.REJECTED)),
        expired=Count("id", filter=Q(status=BuybackOffer.Status.EXPIRED)),
        disbursed=Sum("buyback_offer_price", filter=accepted),
        average=Avg("buyback_offer_price", filter=accepted),
    )

    total = stats["total"] or 0
    acceptance_rate = (Decimal(stats["accepted"]) / Decimal(total) * 100) if total else Decimal("0")
    return {
        "total_offers": total,
        "accepted_offers": stats["accepted"],
        "rejected_offers": stats["rejected"],
        "expired_offers": stats["expired"],
        "total_value_disbursed": str(Decimal(stats["disbursed"] or 0).quantize(Decimal("0.01"))),
        "average_offer_value": str(Decimal(stats["average"] or 0).quantize(Decimal("0.01"))),
        "acceptance_rate": float(acceptance_rate.quantize(Decimal("0.01"))),
    }
