from django.contrib.auth import get_user_model
from django.test import TestCase

from academics.models import Course, Department
from core.exceptions import AuthorizationError, NotFoundError, ValidationError
from core.identity import identity_for
from distributions import models as dist_models
from distributions.services.distribution_store import DistributionStore, generate_distribution_id
from distributions.services.storage import FileStorageProvider, NullStorageProvider


class RecordingStorage(FileStorageProvider):
    name = 'recording'

    def __init__(self, folder_id='folder-123'):
        self.paths = []
        self.folder_id = folder_id

    def create_folder(self, path):
        self.paths.append(path)
        return self.folder_id


class BrokenStorage(FileStorageProvider):
    name = 'broken'

    def create_folder(self, path):
        raise ConnectionError('drive unreachable')


class DistributionTestBase(TestCase):
    def setUp(self):
        User = get_user_model()
        self.owner = User.objects.create_user(username='leader', first_name='Mona', last_name='Leader', email='ml@example.com', role='module-leader', employee_id='E-7')
        self.other_leader = User.objects.create_user(username='leader2', role='module-leader')
        self.t1 = User.objects.create_user(username='t1', role='teacher')
        self.t2 = User.objects.create_user(username='t2', role='teacher')
        dept = Department.objects.create(code='CSE', name='Computer Science')
        self.course = Course.objects.create(code='CSE101', name='Programming I', credit_hours=3, department=dept)
        self.store = DistributionStore(storage_provider=NullStorageProvider())

    def metadata(self, **overrides):
        data = {
            'title': 'Week 1 lecture notes',
            'description': 'Slides and handouts',
            'category': 'lecture-notes',
            'tags': ['week1', ' intro '],
            'course_id': self.course.pk,
            'academic_year': '2025',
            'semester': 'Spring',
            'batch': '2024',
            'section': 'A',
        }
        data.update(overrides)
        return data

    def make(self, store=None, **overrides):
        return (store or self.store).create(identity_for(self.owner), self.metadata(**overrides))


class CreateTests(DistributionTestBase):
    def test_create_initial_state(self):
        d = self.make()
        self.assertTrue(d.distribution_id.startswith('DOC-'))
        self.assertEqual(d.distribution_id, d.distribution_id.upper())
        self.assertEqual(d.version, 1)
        self.assertEqual(d.file_count, 0)
        self.assertEqual(d.total_file_size, 0)
        self.assertEqual(d.status, dist_models.DocumentDistribution.Status.PENDING)
        self.assertEqual(d.total_views, 0)
        self.assertEqual(d.tags, ['week1', 'intro'])
        self.assertEqual(d.permissions, dist_models.DEFAULT_PERMISSIONS)
        self.assertEqual(d.course_code, 'CSE101')
        self.assertEqual(d.department_name, 'Computer Science')
        self.assertEqual(d.module_leader_name, 'Mona Leader')
        self.assertEqual(d.module_leader_employee_id, 'E-7')

        trail = list(d.audit_trail.all())
        self.assertEqual(len(trail), 1)
        self.assertEqual(trail[0].action, 'created')
        self.assertEqual(trail[0].actor_id, self.owner.pk)

    def test_generated_ids_differ(self):
        ids = {generate_distribution_id() for _ in range(50)}
        self.assertEqual(len(ids), 50)

    def test_storage_folder_is_recorded(self):
        storage = RecordingStorage()
        d = self.make(store=DistributionStore(storage_provider=storage))
        self.assertEqual(storage.paths, ['2025/Spring/2024/CSE101/lecture-notes'])
        self.assertEqual(d.storage_folder_id, 'folder-123')
        self.assertEqual(d.storage_folder_path, '2025/Spring/2024/CSE101/lecture-notes')
        self.assertEqual(d.folder_structure['course_code'], 'CSE101')

    def test_storage_failure_degrades_to_no_folder(self):
        with self.assertLogs('distributions.services.storage', level='WARNING'):
            d = self.make(store=DistributionStore(storage_provider=BrokenStorage()))
        self.assertEqual(d.storage_folder_id, '')
        self.assertEqual(d.storage_folder_path, '')
        self.assertEqual(d.status, 'pending')

    def test_supplied_permissions_merge_over_defaults(self):
        d = self.make(permissions={'students': {'can_view': False}, 'teachers': {'specific_teachers': [self.t2.pk]}})
        self.assertFalse(d.permissions['students']['can_view'])
        self.assertTrue(d.permissions['students']['can_download'])
        self.assertTrue(d.permissions['teachers']['can_view'])
        self.assertEqual(
            list(d.teacher_shares.values_list('teacher_id', 'narrowed', 'shared')),
            [(self.t2.pk, True, False)],
        )

    def test_only_module_leaders_create(self):
        with self.assertRaises(AuthorizationError):
            self.store.create(identity_for(self.t1), self.metadata())

    def test_invalid_metadata(self):
        with self.assertRaises(ValidationError):
            self.make(category='memes')
        with self.assertRaises(ValidationError):
            self.make(title='')
        with self.assertRaises(NotFoundError):
            self.make(course_id=987654)
        self.assertFalse(dist_models.DocumentDistribution.objects.exists())


class MutationTests(DistributionTestBase):
    def setUp(self):
        super().setUp()
        self.d = self.make()
        self.owner_id = identity_for(self.owner)

    def test_add_files_recomputes_totals(self):
        self.store.add_files(self.d.distribution_id, self.owner_id, [
            {'name': 'week1.pdf', 'size': 1000, 'mime_type': 'application/pdf'},
            {'name': 'week1.pptx', 'size': 2500},
        ])
        files = self.store.add_files(self.d.distribution_id, self.owner_id, [{'name': 'notes.docx', 'size': 500}])

        self.d.refresh_from_db()
        self.assertEqual(self.d.file_count, 3)
        self.assertEqual(self.d.total_file_size, 4000)
        self.assertEqual(self.d.version, 3)
        self.assertEqual([f.original_name for f in files], ['week1.pdf', 'week1.pptx', 'notes.docx'])
        self.assertEqual([f.position for f in files], [1, 2, 3])
        self.assertEqual(files[0].file_type, 'pdf')

        last = self.d.audit_trail.order_by('-id').first()
        self.assertEqual(last.action, 'file-added')
        self.assertEqual([f['name'] for f in last.previous_state['files']], ['week1.pdf', 'week1.pptx'])

    def test_non_owner_cannot_mutate(self):
        other = identity_for(self.other_leader)
        with self.assertRaises(AuthorizationError):
            self.store.add_files(self.d.distribution_id, other, [{'name': 'x.pdf', 'size': 1}])
        with self.assertRaises(AuthorizationError):
            self.store.share_with_teacher(self.d.distribution_id, self.t1.pk, other)
        with self.assertRaises(AuthorizationError):
            self.store.update_status(self.d.distribution_id, 'distributed', other)
        with self.assertRaises(AuthorizationError):
            self.store.update(self.d.distribution_id, other, {'title': 'Hijacked'})
        self.d.refresh_from_db()
        self.assertEqual(self.d.version, 1)
        self.assertEqual(self.d.audit_trail.count(), 1)

    def test_unknown_distribution(self):
        with self.assertRaises(NotFoundError):
            self.store.update_status('DOC-NOPE', 'archived', self.owner_id)

    def test_share_is_idempotent(self):
        self.assertTrue(self.store.share_with_teacher(self.d.distribution_id, self.t1.pk, self.owner_id))
        self.assertFalse(self.store.share_with_teacher(self.d.distribution_id, self.t1.pk, self.owner_id))

        self.d.refresh_from_db()
        self.assertEqual(self.d.teacher_shares.count(), 1)
        self.assertEqual(self.d.version, 2)
        actions = list(self.d.audit_trail.values_list('action', flat=True))
        self.assertEqual(actions, ['created', 'permission-changed'])

    def test_status_transitions_are_audited(self):
        self.store.update_status(self.d.distribution_id, 'distributed', self.owner_id, notes='Shared with all sections')
        d = self.store.update_status(self.d.distribution_id, 'archived', self.owner_id, reason='End of term')

        self.assertEqual(d.status, 'archived')
        self.assertIsNotNone(d.distributed_at)
        self.assertEqual(d.distribution_notes, 'Shared with all sections')
        self.assertIsNotNone(d.archived_at)
        self.assertEqual(d.archived_by_id, self.owner.pk)
        self.assertEqual(d.archive_reason, 'End of term')
        self.assertEqual(d.version, 3)

        entries = list(d.audit_trail.order_by('id').values_list('action', 'details'))
        self.assertEqual(entries[1], ('distributed', 'Status changed from pending → distributed: Shared with all sections'))
        self.assertEqual(entries[2], ('archived', 'Status changed from distributed → archived'))

    def test_expire_is_recorded_as_update(self):
        self.store.update_status(self.d.distribution_id, 'expired', self.owner_id)
        self.assertEqual(self.d.audit_trail.order_by('-id').first().action, 'updated')

    def test_invalid_status(self):
        with self.assertRaises(ValidationError):
            self.store.update_status(self.d.distribution_id, 'deleted', self.owner_id)

    def test_archive_uses_delete_reason(self):
        d = self.store.archive(self.d.distribution_id, self.owner_id)
        self.assertEqual(d.status, 'archived')
        self.assertEqual(d.archive_reason, 'Deleted by module leader')
        self.assertTrue(dist_models.DocumentDistribution.objects.filter(pk=self.d.pk).exists())

    def test_update_metadata_records_previous_state(self):
        d = self.store.update(self.d.distribution_id, self.owner_id, {'title': 'Week 1 (revised)', 'priority': 'high'})
        self.assertEqual(d.title, 'Week 1 (revised)')
        self.assertEqual(d.priority, 'high')
        self.assertEqual(d.version, 2)
        entry = d.audit_trail.order_by('-id').first()
        self.assertEqual(entry.action, 'updated')
        self.assertEqual(entry.previous_state['title'], 'Week 1 lecture notes')

    def test_permission_only_update_narrows_teachers(self):
        self.store.share_with_teacher(self.d.distribution_id, self.t1.pk, self.owner_id)
        d = self.store.update(self.d.distribution_id, self.owner_id, {
            'permissions': {'teachers': {'specific_teachers': [self.t2.pk]}, 'public': {'can_view': True}},
        })
        self.assertTrue(d.permissions['public']['can_view'])
        self.assertEqual(d.audit_trail.order_by('-id').first().action, 'permission-changed')
        flags = {tid: (narrowed, shared) for tid, narrowed, shared in d.teacher_shares.values_list('teacher_id', 'narrowed', 'shared')}
        self.assertEqual(flags, {self.t1.pk: (False, True), self.t2.pk: (True, False)})

    def test_version_increments_on_every_mutation(self):
        versions = [self.d.version]
        self.store.add_files(self.d.distribution_id, self.owner_id, [{'name': 'a.pdf', 'size': 1}])
        versions.append(self.store.get(self.d.distribution_id).version)
        self.store.share_with_teacher(self.d.distribution_id, self.t1.pk, self.owner_id)
        versions.append(self.store.get(self.d.distribution_id).version)
        self.store.update(self.d.distribution_id, self.owner_id, {'tags': ['x']})
        versions.append(self.store.get(self.d.distribution_id).version)
        self.store.update_status(self.d.distribution_id, 'distributed', self.owner_id)
        versions.append(self.store.get(self.d.distribution_id).version)
        self.assertEqual(versions, [1, 2, 3, 4, 5])

    def test_analytics_is_owner_only(self):
        data = self.store.analytics(self.d.distribution_id, self.owner_id)
        self.assertEqual(data['total_views'], 0)
        self.assertEqual(data['unique_viewers'], 0)
        self.assertEqual(data['status'], 'pending')
        with self.assertRaises(AuthorizationError):
            self.store.analytics(self.d.distribution_id, identity_for(self.t1))


class AuditEntryTests(DistributionTestBase):
    def test_audit_entries_are_append_only(self):
        d = self.make()
        entry = d.audit_trail.get()
        entry.details = 'rewritten'
        with self.assertRaises(RuntimeError):
            entry.save()
        with self.assertRaises(RuntimeError):
            entry.delete()
        self.assertEqual(d.audit_trail.get().details, 'Document distribution created: Week 1 lecture notes')


class ListTests(DistributionTestBase):
    def setUp(self):
        super().setUp()
        self.open_doc = self.make(title='Open notes')
        self.narrow_doc = self.make(title='Narrow notes', category='exams', permissions={'teachers': {'specific_teachers': [self.t2.pk]}})
        self.other_doc = self.store.create(identity_for(self.other_leader), self.metadata(title='Other leader notes'))

    def test_module_leader_sees_own(self):
        titles = {d.title for d in self.store.list_for(identity_for(self.owner))}
        self.assertEqual(titles, {'Open notes', 'Narrow notes'})

    def test_teacher_sees_what_access_allows(self):
        t1_titles = {d.title for d in self.store.list_for(identity_for(self.t1))}
        t2_titles = {d.title for d in self.store.list_for(identity_for(self.t2))}
        self.assertEqual(t1_titles, {'Open notes', 'Other leader notes'})
        self.assertEqual(t2_titles, {'Open notes', 'Narrow notes', 'Other leader notes'})

    def test_filters(self):
        owner = identity_for(self.owner)
        self.assertEqual([d.title for d in self.store.list_for(owner, {'category': 'exams'})], ['Narrow notes'])
        self.assertEqual([d.title for d in self.store.list_for(owner, {'search': 'open'})], ['Open notes'])
        self.assertEqual(
            [d.title for d in self.store.list_for(owner, {'sort_by': 'title', 'sort_order': 'asc'})],
            ['Narrow notes', 'Open notes'],
        )
        with self.assertRaises(ValidationError):
            self.store.list_for(owner, {'sort_by': 'password'})
