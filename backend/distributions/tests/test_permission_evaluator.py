import itertools

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase

from academics.models import Course, Department
from core.identity import Identity, identity_for
from distributions import models as dist_models
from distributions.services.distribution_store import DistributionStore
from distributions.services.permission_evaluator import (
    AccessDecision,
    AccessPolicy,
    can_download,
    decide,
    evaluate_access,
)
from distributions.services.storage import NullStorageProvider

ALLOW = AccessDecision.ALLOW
DENY = AccessDecision.DENY


def matrix(teachers=True, students=True, public=False, teacher_download=True):
    return {
        'teachers': {'can_view': teachers, 'can_download': teacher_download, 'can_comment': False, 'can_edit': False},
        'students': {'can_view': students, 'can_download': students, 'can_comment': False, 'can_edit': False},
        'public': {'can_view': public, 'can_download': public, 'can_comment': False, 'can_edit': False},
    }


class DecideTests(SimpleTestCase):
    owner = Identity(id=1, role='module-leader', name='Owner')
    t1 = Identity(id=2, role='teacher')
    t2 = Identity(id=3, role='teacher')
    student = Identity(id=4, role='student')
    other_leader = Identity(id=5, role='module-leader')

    def test_owner_allowed_for_every_configuration(self):
        for teachers, students, public in itertools.product([True, False], repeat=3):
            for narrowed in (frozenset(), frozenset({2})):
                policy = AccessPolicy(owner_id=1, permissions=matrix(teachers, students, public), specific_teacher_ids=narrowed)
                self.assertIs(decide(policy, self.owner), ALLOW)
        self.assertIs(decide(AccessPolicy(owner_id=1, permissions={}), self.owner), ALLOW)

    def test_teacher_blanket_permission(self):
        self.assertIs(decide(AccessPolicy(owner_id=1, permissions=matrix()), self.t1), ALLOW)
        self.assertIs(decide(AccessPolicy(owner_id=1, permissions=matrix(teachers=False)), self.t1), DENY)

    def test_allow_list_is_exclusive(self):
        policy = AccessPolicy(owner_id=1, permissions=matrix(), specific_teacher_ids=frozenset({3}))
        self.assertIs(decide(policy, self.t1), DENY)
        self.assertIs(decide(policy, self.t2), ALLOW)

    def test_shares_alone_do_not_narrow(self):
        policy = AccessPolicy(owner_id=1, permissions=matrix(), shared_teacher_ids=frozenset({3}))
        self.assertIs(decide(policy, self.t1), ALLOW)
        self.assertIs(decide(policy, self.t2), ALLOW)

    def test_shared_teacher_joins_active_allow_list(self):
        policy = AccessPolicy(owner_id=1, permissions=matrix(), specific_teacher_ids=frozenset({3}), shared_teacher_ids=frozenset({2}))
        self.assertIs(decide(policy, self.t1), ALLOW)

    def test_allow_list_denies_before_public(self):
        policy = AccessPolicy(owner_id=1, permissions=matrix(public=True), specific_teacher_ids=frozenset({3}))
        self.assertIs(decide(policy, self.t1), DENY)

    def test_students(self):
        self.assertIs(decide(AccessPolicy(owner_id=1, permissions=matrix()), self.student), ALLOW)
        self.assertIs(decide(AccessPolicy(owner_id=1, permissions=matrix(students=False)), self.student), DENY)

    def test_public_fallback(self):
        self.assertIs(decide(AccessPolicy(owner_id=1, permissions=matrix(teachers=False, students=False, public=True)), self.other_leader), ALLOW)
        self.assertIs(decide(AccessPolicy(owner_id=1, permissions=matrix(public=False)), self.other_leader), DENY)

    def test_download_needs_download_flag(self):
        policy = AccessPolicy(owner_id=1, permissions=matrix(teacher_download=False))
        self.assertFalse(can_download(policy, self.t1))
        self.assertTrue(can_download(policy, self.owner))
        self.assertTrue(can_download(AccessPolicy(owner_id=1, permissions=matrix()), self.t1))


class EvaluateAccessScenarioTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.owner = User.objects.create_user(username='leader', role='module-leader')
        self.t1 = User.objects.create_user(username='t1', role='teacher')
        self.t2 = User.objects.create_user(username='t2', role='teacher')
        dept = Department.objects.create(code='CSE', name='Computer Science')
        course = Course.objects.create(code='C1', name='Course One', department=dept)
        self.store = DistributionStore(storage_provider=NullStorageProvider())
        self.d = self.store.create(identity_for(self.owner), {
            'title': 'Handouts', 'category': 'reading-material', 'course_id': course.pk,
            'academic_year': '2025', 'semester': 'Fall', 'batch': '2024',
        })

    def test_default_permissions_allow_teachers(self):
        self.assertIs(evaluate_access(self.store.get(self.d.distribution_id), identity_for(self.t1)), ALLOW)

    def test_share_does_not_lock_out_other_teachers(self):
        self.store.share_with_teacher(self.d.distribution_id, self.t2.pk, identity_for(self.owner))
        d = self.store.get(self.d.distribution_id)
        self.assertIs(evaluate_access(d, identity_for(self.t1)), ALLOW)
        self.assertIs(evaluate_access(d, identity_for(self.t2)), ALLOW)

    def test_seeded_allow_list_excludes_others(self):
        dist_models.DistributionTeacherShare.objects.create(
            distribution=self.d, teacher=self.t2, narrowed=True
        )
        d = self.store.get(self.d.distribution_id)
        self.assertIs(evaluate_access(d, identity_for(self.t1)), DENY)
        self.assertIs(evaluate_access(d, identity_for(self.t2)), ALLOW)
        self.assertIs(evaluate_access(d, identity_for(self.owner)), ALLOW)

    def narrow(self, *teachers):
        self.store.update(self.d.distribution_id, identity_for(self.owner), {
            'permissions': {'teachers': {'specific_teachers': [t.pk for t in teachers]}},
        })
        return self.store.get(self.d.distribution_id)

    def test_shared_teacher_survives_being_narrowed_out(self):
        t3 = get_user_model().objects.create_user(username='t3', role='teacher')
        self.store.share_with_teacher(self.d.distribution_id, self.t2.pk, identity_for(self.owner))
        self.narrow(self.t2, t3)
        d = self.narrow(t3)

        share = d.teacher_shares.get(teacher=self.t2)
        self.assertTrue(share.shared)
        self.assertFalse(share.narrowed)
        self.assertIs(evaluate_access(d, identity_for(self.t2)), ALLOW)
        self.assertIs(evaluate_access(d, identity_for(t3)), ALLOW)
        self.assertIs(evaluate_access(d, identity_for(self.t1)), DENY)

    def test_share_after_narrowing_is_kept_when_narrowed_out(self):
        t3 = get_user_model().objects.create_user(username='t3', role='teacher')
        self.narrow(self.t2, t3)
        self.assertFalse(self.store.share_with_teacher(self.d.distribution_id, self.t2.pk, identity_for(self.owner)))
        d = self.narrow(t3)
        self.assertIs(evaluate_access(d, identity_for(self.t2)), ALLOW)

    def test_narrowed_only_teacher_is_removed(self):
        t3 = get_user_model().objects.create_user(username='t3', role='teacher')
        self.narrow(self.t2, t3)
        d = self.narrow(t3)
        self.assertFalse(d.teacher_shares.filter(teacher=self.t2).exists())
        self.assertIs(evaluate_access(d, identity_for(self.t2)), DENY)
