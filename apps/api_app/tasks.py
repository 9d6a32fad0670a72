# apps/api_app/tasks.py
from celery import shared_task
from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from datetime import timedelta, timezone as dt_timezone
import logging

from .models import Child, LocationPoint

logger = logging.getLogger(__name__)


def _parse_sample_time(value):
    try:
        parsed = parse_datetime(value) if isinstance(value, str) else None
    except ValueError:
        parsed = None
    if parsed is None:
        return timezone.now()
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


@shared_task(name="record_child_location")
def record_child_location(family_code, latitude, longitude, timestamp=None):
    """
    Presence bookkeeping for a relayed location sample: marks the child online
    and appends the sample to its location history.
    """
    child = Child.objects.filter(family_code=family_code).first()
    if not child:
        logger.info(f"Ignoring location sample for unknown family code {family_code}")
        return False

    LocationPoint.objects.create(
        child=child,
        latitude=latitude,
        longitude=longitude,
        timestamp=_parse_sample_time(timestamp),
    )
    child.is_online = True
    child.last_seen = timezone.now()
    child.save(update_fields=['is_online', 'last_seen', 'updated_at'])
    logger.debug(f"Recorded location for child {child.id}")
    return True


@shared_task(name="mark_idle_children_offline")
def mark_idle_children_offline():
    cutoff = timezone.now() - timedelta(seconds=settings.CHILD_OFFLINE_AFTER_SECONDS)
    updated = Child.objects.filter(is_online=True, last_seen__lt=cutoff).update(is_online=False)
    # Children that never reported cannot be online.
    updated += Child.objects.filter(is_online=True, last_seen__isnull=True).update(is_online=False)
    if updated:
        logger.info(f"Marked {updated} idle children offline")
    return updated
