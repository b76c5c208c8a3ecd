from django.contrib.auth import get_user_model
from django.test import TestCase

from academics.models import Course, Department
from core.exceptions import NotFoundError, ValidationError
from core.identity import identity_for
from distributions import models as dist_models
from distributions.services import access_tracker
from distributions.services.distribution_store import DistributionStore
from distributions.services.storage import NullStorageProvider


class AccessTrackerTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.owner = User.objects.create_user(username='leader', role='module-leader')
        self.viewer = User.objects.create_user(username='viewer', role='teacher')
        self.viewer2 = User.objects.create_user(username='viewer2', role='student')
        dept = Department.objects.create(code='CSE', name='Computer Science')
        course = Course.objects.create(code='CSE101', name='Programming I', department=dept)
        self.store = DistributionStore(storage_provider=NullStorageProvider())
        self.d = self.store.create(identity_for(self.owner), {
            'title': 'Syllabus', 'category': 'syllabus', 'course_id': course.pk,
            'academic_year': '2025', 'semester': 'Spring', 'batch': '2024',
        })

    def track(self, user, action='view', **kwargs):
        access_tracker.track_access(self.d.distribution_id, user.pk, action, **kwargs)

    def test_counters_and_unique_sets(self):
        self.track(self.viewer, ip_address='10.0.0.1', user_agent='pytest')
        self.track(self.viewer)
        self.track(self.viewer2)
        self.track(self.viewer, 'download')
        self.track(self.viewer, 'comment')

        self.d.refresh_from_db()
        self.assertEqual(self.d.total_views, 3)
        self.assertEqual(self.d.total_downloads, 1)
        self.assertIsNotNone(self.d.last_accessed_at)

        analytics = self.store.analytics(self.d.distribution_id, identity_for(self.owner))
        self.assertEqual(analytics['unique_viewers'], 2)
        self.assertEqual(analytics['unique_downloaders'], 1)

        first = self.d.access_log.order_by('id').first()
        self.assertEqual(first.ip_address, '10.0.0.1')
        self.assertEqual(first.user_agent, 'pytest')
        self.assertEqual(self.d.access_log.count(), 5)

    def test_tracking_does_not_bump_version_or_audit(self):
        self.track(self.viewer)
        self.d.refresh_from_db()
        self.assertEqual(self.d.version, 1)
        self.assertEqual(self.d.audit_trail.count(), 1)

    def test_log_is_bounded_to_most_recent_entries(self):
        self.track(self.viewer)
        oldest_id = self.d.access_log.get().id
        for _ in range(dist_models.ACCESS_LOG_LIMIT):
            self.track(self.viewer)

        self.d.refresh_from_db()
        self.assertEqual(self.d.total_views, 1001)
        log_ids = list(self.d.access_log.order_by('id').values_list('id', flat=True))
        self.assertEqual(len(log_ids), 1000)

        self.assertNotIn(oldest_id, log_ids)
        self.assertEqual(log_ids[-1], dist_models.AccessLogEntry.objects.order_by('-id').first().id)

    def test_trim_keeps_log_at_limit(self):
        for _ in range(5):
            self.track(self.viewer)
        removed = access_tracker.trim_access_log(self.d.pk, limit=3)
        self.assertEqual(removed, 2)
        self.assertEqual(self.d.access_log.count(), 3)

    def test_invalid_action_and_missing_distribution(self):
        with self.assertRaises(ValidationError):
            self.track(self.viewer, 'share')
        with self.assertRaises(NotFoundError):
            access_tracker.track_access('DOC-NOPE', self.viewer.pk, 'view')
