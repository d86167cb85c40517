from celery import shared_task

from .services import expire_old_offers


@shared_task
def expire_buyback_offers() -> int:
    return expire_old_offers()
