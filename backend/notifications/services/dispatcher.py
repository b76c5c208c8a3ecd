"""Fire-and-forget delivery of workflow notifications.

Every delivery channel is best-effort: failures are logged and never
propagate to the operation that triggered the notification.
"""
import logging
from typing import Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail
from django.db import transaction
from django.utils import timezone

from notifications.models import Notification

logger = logging.getLogger(__name__)


def _truncate(value: str, limit: int = 200) -> str:
    raw = str(value or '')
    return raw if len(raw) <= limit else (raw[: limit - 3] + '...')


class NotificationDispatcher:
    """Deliver a notification payload to one recipient.

    `payload` keys: type, title, message, data (dict), sender_id (optional).
    """

    def __init__(self, email_enabled: Optional[bool] = None):
        if email_enabled is None:
            email_enabled = getattr(settings, 'COURSE_ACCESS_NOTIFICATION_EMAIL_ENABLED', False)
        self.email_enabled = email_enabled

    def send(self, recipient_id: int, payload: dict) -> Optional[Notification]:
        notification = None
        try:
            with transaction.atomic():
                notification = Notification.objects.create(
                    recipient_id=recipient_id,
                    sender_id=payload.get('sender_id'),
                    type=payload['type'],
                    title=_truncate(payload.get('title', '')),
                    message=payload.get('message', ''),
                    data=payload.get('data') or {},
                )
        except Exception:
            logger.exception('Failed to store notification %s for user %s', payload.get('type'), recipient_id)

        if self.email_enabled:
            self._send_email(recipient_id, payload)

        logger.info('%s', {
            'event': 'notification_dispatched',
            'type': payload.get('type'),
            'recipient_id': recipient_id,
            'stored': notification is not None,
        })
        return notification

    def _send_email(self, recipient_id: int, payload: dict) -> bool:
        try:
            user = get_user_model().objects.filter(pk=recipient_id).only('email').first()
            email = str(getattr(user, 'email', '') or '').strip()
            if not email:
                logger.warning('Notification email skipped: user %s has no email address', recipient_id)
                return False
            send_mail(
                subject=_truncate(payload.get('title', ''), 150),
                message=payload.get('message', ''),
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[email],
                fail_silently=False,
            )
            return True
        except Exception as exc:
            logger.warning('Notification email to user %s failed: %s', recipient_id, exc)
            return False


def mark_read(notification: Notification) -> Notification:
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = timezone.now()
        notification.save(update_fields=['is_read', 'read_at'])
    return notification


def mark_all_read(user) -> int:
    return Notification.objects.filter(recipient=user, is_read=False).update(is_read=True, read_at=timezone.now())
