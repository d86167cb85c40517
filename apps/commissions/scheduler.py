from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.db.models import Count, Sum
from django.utils import timezone

from .models import Commission, Payout, PayoutConfig
from .services import create_payout, load_payout_config

logger = logging.getLogger(__name__)

DISABLED_MESSAGE = "Automated payouts are disabled"


@dataclass
class SellerPayoutOutcome:
    seller_id: Any
    status: str
    eligible_amount: Decimal
    payout: Optional[Payout] = None
    error: Optional[str] = None

    CREATED = "created"
    FAILED = "failed"

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "seller_id": str(self.seller_id),
            "status": self.status,
            "eligible_amount": str(self.eligible_amount),
        }
        if self.payout is not None:
            data["payout_id"] = str(self.payout.id)
            data["total_amount"] = str(self.payout.total_amount)
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class AutomatedPayoutRun:
    processed_at: datetime
    results: List[SellerPayoutOutcome] = field(default_factory=list)
    message: Optional[str] = None

    @property
    def total_payouts(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.status == SellerPayoutOutcome.CREATED)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == SellerPayoutOutcome.FAILED)

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "processed_at": self.processed_at.isoformat(),
            "total_payouts": self.total_payouts,
            "successful": self.successful,
            "failed": self.failed,
            "results": [r.as_dict() for r in self.results],
        }
        if self.message:
            data["message"] = self.message
        return data


def find_eligible_sellers(config: PayoutConfig) -> List[Dict[str, Any]]:
    cutoff = timezone.now() - timedelta(days=config.holding_period_days)
    rows = (
        Commission.objects.filter(
            status=Commission.Status.PENDING,
            payout__isnull=True,
            created_at__lt=cutoff,
        )
        .values("seller_id")
        .annotate(total_amount=Sum("net_seller_amount"), commission_count=Count("id"))
        .filter(total_amount__gte=config.minimum_payout_amount)
        .order_by("seller_id")
    )
    return list(rows)


def process_automated_payouts(config: Optional[PayoutConfig] = None) -> AutomatedPayoutRun:
    """
    Create a payout for every seller whose eligible balance meets the minimum.

    Sellers are processed independently: a failure while batching one seller
    is recorded in the run and the remaining sellers are still attempted.
    """
    if config is None:
        config = load_payout_config()

    run = AutomatedPayoutRun(processed_at=timezone.now())
    if not config.auto_payout_enabled:
        logger.info(DISABLED_MESSAGE)
        run.message = DISABLED_MESSAGE
        return run

    for row in find_eligible_sellers(config):
        seller_id = row["seller_id"]
        eligible_amount = row["total_amount"]
        try:
            payout = create_payout(
                seller_id,
                payment_method=config.default_payment_method,
                scheduled_date=run.processed_at,
                holding_period_days=config.holding_period_days,
                minimum_amount=config.minimum_payout_amount,
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("Automated payout failed for seller %s", seller_id)
            run.results.append(
                SellerPayoutOutcome(
                    seller_id=seller_id,
                    status=SellerPayoutOutcome.FAILED,
                    eligible_amount=eligible_amount,
                    error=str(exc),
                )
            )
            continue

        run.results.append(
            SellerPayoutOutcome(
                seller_id=seller_id,
                status=SellerPayoutOutcome.CREATED,
                eligible_amount=eligible_amount,
                payout=payout,
            )
        )

    logger.info(
        "Automated payout run finished: %d attempted, %d created, %d failed",
        run.total_payouts,
        run.successful,
        run.failed,
    )
    return run
