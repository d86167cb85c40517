import logging

from celery import shared_task

from apps.orders.models import Order

from .exceptions import InvalidOrderAmount
from .scheduler import process_automated_payouts
from .services import create_commission_from_order

logger = logging.getLogger(__name__)


@shared_task
def process_completed_orders() -> int:
    processed = 0
    orders = Order.objects.select_related("seller").filter(
        status=Order.Status.DELIVERED,
        commission__isnull=True,
    )
    for order in orders:
        try:
            create_commission_from_order(order, order.seller)
        except InvalidOrderAmount:
            logger.error("Skipping order %s with invalid total %r", order.order_number, order.total_amount)
            continue
        processed += 1
    return processed


@shared_task
def run_automated_payouts() -> dict:
    return process_automated_payouts().as_dict()
