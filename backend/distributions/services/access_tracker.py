import logging
from typing import Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from core.exceptions import NotFoundError, ValidationError
from distributions import models as dist_models

logger = logging.getLogger(__name__)

_COUNTERS = {
    dist_models.AccessAction.VIEW: 'total_views',
    dist_models.AccessAction.DOWNLOAD: 'total_downloads',
}


def trim_access_log(distribution_id: int, limit: int = dist_models.ACCESS_LOG_LIMIT) -> int:
    """Drop the oldest log entries beyond the newest `limit`."""
    stale_ids = list(
        dist_models.AccessLogEntry.objects
        .filter(distribution_id=distribution_id)
        .order_by('-id')
        .values_list('id', flat=True)[limit:]
    )
    if not stale_ids:
        return 0
    deleted, _ = dist_models.AccessLogEntry.objects.filter(id__in=stale_ids).delete()
    return deleted


def track_access(distribution_id: str, user_id: int, action: str, ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> None:
    """Record one access event against a distribution.

    Counters move with F() increments; the distribution row is locked so the
    log trim for concurrent events runs one at a time.
    """
    if action not in dist_models.AccessAction.values:
        raise ValidationError('Invalid access action', action=action)

    now = timezone.now()
    with transaction.atomic():
        pk = (
            dist_models.DocumentDistribution.objects
            .select_for_update()
            .filter(distribution_id=distribution_id)
            .values_list('pk', flat=True)
            .first()
        )
        if pk is None:
            raise NotFoundError('Distribution not found')

        updates = {'last_accessed_at': now}
        counter = _COUNTERS.get(action)
        if counter:
            updates[counter] = F(counter) + 1
            dist_models.DistributionAccess.objects.bulk_create(
                [dist_models.DistributionAccess(distribution_id=pk, user_id=user_id, action=action, first_accessed_at=now)],
                ignore_conflicts=True,
            )
        dist_models.DocumentDistribution.objects.filter(pk=pk).update(**updates)

        dist_models.AccessLogEntry.objects.create(
            distribution_id=pk,
            user_id=user_id,
            action=action,
            timestamp=now,
            ip_address=ip_address or None,
            user_agent=(user_agent or '')[:512],
        )
        trimmed = trim_access_log(pk)

    logger.debug('%s', {
        'event': 'distribution_access_tracked',
        'distribution_id': distribution_id,
        'user_id': user_id,
        'action': action,
        'trimmed': trimmed,
    })
