import logging

from celery import shared_task

from common.clock import get_clock
from .models import HealthCard

logger = logging.getLogger(__name__)


@shared_task
def refresh_health_card_statuses():
    """
    Celery task that rewrites the cached status of every card.
    Read paths refresh the cache anyway, this keeps list views and
    admin filters accurate for cards nobody opened recently.
    """
    today = get_clock().today()
    changed = 0

    for card in HealthCard.objects.all().iterator():
        status = card.compute_status(today)
        if status != card.status:
            HealthCard.objects.filter(pk=card.pk).update(status=status)
            changed += 1

    logger.info(f"Health card status sweep finished, {changed} card(s) updated")
    return changed
