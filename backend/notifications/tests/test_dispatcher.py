from unittest import mock

from django.contrib.auth import get_user_model
from django.core import mail
from django.test import TestCase, override_settings

from notifications.models import Notification
from notifications.services import dispatcher as dispatcher_module
from notifications.services.dispatcher import NotificationDispatcher


def _payload(**overrides):
    payload = {
        'type': Notification.Type.COURSE_APPROVED,
        'title': 'Course Access Approved',
        'message': 'Your request for CSE101 has been approved',
        'data': {'request_id': 1},
    }
    payload.update(overrides)
    return payload


@override_settings(EMAIL_BACKEND='django.core.mail.backends.locmem.EmailBackend')
class NotificationDispatcherTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.teacher = User.objects.create_user(username='teacher1', email='teacher1@example.com')
        self.leader = User.objects.create_user(username='leader1', role='module-leader')

    def test_send_stores_in_app_notification(self):
        notification = NotificationDispatcher(email_enabled=False).send(self.teacher.pk, _payload(sender_id=self.leader.pk))
        self.assertIsNotNone(notification)
        stored = Notification.objects.get(recipient=self.teacher)
        self.assertEqual(stored.type, 'course_approved')
        self.assertEqual(stored.sender_id, self.leader.pk)
        self.assertEqual(stored.data, {'request_id': 1})
        self.assertFalse(stored.is_read)
        self.assertEqual(len(mail.outbox), 0)

    def test_send_email_when_enabled(self):
        NotificationDispatcher(email_enabled=True).send(self.teacher.pk, _payload())
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['teacher1@example.com'])

    def test_email_failure_is_swallowed(self):
        with mock.patch.object(dispatcher_module, 'send_mail', side_effect=ConnectionError('smtp down')):
            notification = NotificationDispatcher(email_enabled=True).send(self.teacher.pk, _payload())
        self.assertIsNotNone(notification)
        self.assertEqual(Notification.objects.filter(recipient=self.teacher).count(), 1)

    def test_storage_failure_does_not_raise(self):
        with mock.patch.object(Notification.objects, 'create', side_effect=RuntimeError('db gone')):
            result = NotificationDispatcher(email_enabled=False).send(self.teacher.pk, _payload())
        self.assertIsNone(result)

    def test_mark_read_and_mark_all_read(self):
        d = NotificationDispatcher(email_enabled=False)
        first = d.send(self.teacher.pk, _payload())
        d.send(self.teacher.pk, _payload(type=Notification.Type.COURSE_REJECTED))

        dispatcher_module.mark_read(first)
        first.refresh_from_db()
        self.assertTrue(first.is_read)
        self.assertIsNotNone(first.read_at)

        updated = dispatcher_module.mark_all_read(self.teacher)
        self.assertEqual(updated, 1)
        self.assertFalse(Notification.objects.filter(recipient=self.teacher, is_read=False).exists())
