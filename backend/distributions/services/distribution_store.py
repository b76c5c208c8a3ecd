"""Document distributions: creation, files, sharing, status and audit.

Every mutation locks the distribution row, bumps `version` with an F()
expression and appends exactly one audit entry in the same transaction.
Only the owning module leader may mutate a distribution.
"""
import logging
import secrets
import time
from typing import Iterable, Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, F, Max, Q, Sum
from django.utils import timezone

from academics.models import Course, Semester
from core.exceptions import AuthorizationError, NotFoundError, ValidationError
from core.identity import Identity, Role
from distributions import models as dist_models
from distributions.services import permission_evaluator
from distributions.services.storage import create_folder_best_effort, get_storage_provider

logger = logging.getLogger(__name__)

PERMISSION_FLAGS = ('can_view', 'can_download', 'can_comment', 'can_edit')
UPDATABLE_FIELDS = ('title', 'description', 'category', 'tags', 'priority')
SORTABLE_FIELDS = ('created_at', 'updated_at', 'title', 'priority', 'total_views', 'total_downloads')

_BASE36 = '0123456789abcdefghijklmnopqrstuvwxyz'


def _base36(value: int) -> str:
    if value == 0:
        return '0'
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return ''.join(reversed(digits))


def generate_distribution_id() -> str:
    stamp = _base36(int(time.time() * 1000))
    suffix = ''.join(secrets.choice(_BASE36) for _ in range(5))
    return f'DOC-{stamp}-{suffix}'.upper()


def _id_list(values) -> list:
    if values is None:
        return []
    if not isinstance(values, (list, tuple, set)):
        raise ValidationError('specific_teachers must be a list of user ids')
    ids = []
    for v in values:
        try:
            ids.append(int(v))
        except (TypeError, ValueError):
            raise ValidationError('specific_teachers must be a list of user ids', value=str(v))
    return ids


def merge_permissions(base: dict, supplied) -> tuple:
    """Overlay `supplied` onto a copy of `base`.

    Returns (permissions, specific_teacher_ids). The second item is None
    when the caller did not mention specific teachers.
    """
    merged = dist_models.default_permissions()
    for audience, flags in (base or {}).items():
        if audience in merged and isinstance(flags, dict):
            merged[audience].update(flags)

    if supplied is None:
        return merged, None
    if not isinstance(supplied, dict):
        raise ValidationError('permissions must be an object')

    specific = None
    for audience, current in merged.items():
        given = supplied.get(audience)
        if given is None:
            continue
        if not isinstance(given, dict):
            raise ValidationError(f'permissions.{audience} must be an object')
        for flag in PERMISSION_FLAGS:
            if flag in given:
                current[flag] = bool(given[flag])
        if audience == 'students':
            for key in ('specific_batches', 'specific_sections'):
                if key in given:
                    current[key] = [str(v) for v in (given[key] or [])]
        if audience == 'teachers' and 'specific_teachers' in given:
            specific = _id_list(given['specific_teachers'])
    return merged, specific


def _clean_tags(tags) -> list:
    if tags is None:
        return []
    if not isinstance(tags, (list, tuple)):
        raise ValidationError('tags must be a list')
    return [str(t).strip() for t in tags if str(t).strip()]


def _validate_metadata(data: dict, partial: bool = False) -> dict:
    cleaned = {}
    if 'title' in data or not partial:
        title = str(data.get('title') or '').strip()
        if not title:
            raise ValidationError('Title is required')
        if len(title) > 200:
            raise ValidationError('Title cannot exceed 200 characters')
        cleaned['title'] = title
    if 'description' in data:
        description = str(data.get('description') or '').strip()
        if len(description) > 1000:
            raise ValidationError('Description cannot exceed 1000 characters')
        cleaned['description'] = description
    if 'category' in data or not partial:
        category = data.get('category')
        if category not in dist_models.DocumentDistribution.Category.values:
            raise ValidationError('Invalid category', category=category)
        cleaned['category'] = category
    if 'priority' in data and data.get('priority') is not None:
        priority = data.get('priority')
        if priority not in dist_models.DocumentDistribution.Priority.values:
            raise ValidationError('Invalid priority', priority=priority)
        cleaned['priority'] = priority
    if 'tags' in data:
        cleaned['tags'] = _clean_tags(data.get('tags'))
    return cleaned


def _require_owner(distribution, actor: Identity) -> None:
    if distribution.module_leader_id != actor.id:
        raise AuthorizationError('Only the owning module leader can modify this distribution')


def _append_audit(distribution, actor: Identity, action: str, details: str, previous_state=None):
    return dist_models.AuditEntry.objects.create(
        distribution=distribution,
        action=action,
        actor_id=actor.id,
        actor_name=actor.name,
        details=details,
        previous_state=previous_state,
    )


def _bump_version(distribution, actor: Identity, **fields) -> None:
    dist_models.DocumentDistribution.objects.filter(pk=distribution.pk).update(
        version=F('version') + 1,
        last_modified_by_id=actor.id,
        updated_at=timezone.now(),
        **fields
    )
    distribution.refresh_from_db()


def _replace_narrowed_teachers(distribution, teacher_ids: Iterable[int], actor: Identity) -> None:
    teacher_ids = set(teacher_ids)
    known = set(get_user_model().objects.filter(pk__in=teacher_ids).values_list('pk', flat=True))
    missing = teacher_ids - known
    if missing:
        raise ValidationError('Unknown teacher ids in specific_teachers', ids=sorted(missing))

    Share = dist_models.DistributionTeacherShare
    dropped = Share.objects.filter(distribution=distribution, narrowed=True).exclude(teacher_id__in=teacher_ids)
    # Teachers who were also shared with keep their row
    dropped.filter(shared=True).update(narrowed=False)
    dropped.filter(shared=False).delete()
    Share.objects.filter(distribution=distribution, teacher_id__in=teacher_ids).update(narrowed=True)
    Share.objects.bulk_create(
        [Share(distribution=distribution, teacher_id=tid, narrowed=True, shared_by_id=actor.id) for tid in teacher_ids],
        ignore_conflicts=True,
    )


class DistributionStore:
    """Owns DocumentDistribution records.

    `dispatcher` (optional) receives a document_shared notification when a
    teacher is added through `share_with_teacher`.
    """

    def __init__(self, storage_provider=None, dispatcher=None):
        self._storage_provider = storage_provider
        self.dispatcher = dispatcher

    @property
    def storage_provider(self):
        if self._storage_provider is None:
            self._storage_provider = get_storage_provider()
        return self._storage_provider

    def get(self, distribution_id: str) -> dist_models.DocumentDistribution:
        distribution = (
            dist_models.DocumentDistribution.objects
            .select_related('course', 'module_leader')
            .prefetch_related('teacher_shares')
            .filter(distribution_id=distribution_id)
            .first()
        )
        if distribution is None:
            raise NotFoundError('Distribution not found')
        return distribution

    def _lock(self, distribution_id: str) -> dist_models.DocumentDistribution:
        distribution = dist_models.DocumentDistribution.objects.select_for_update().filter(distribution_id=distribution_id).first()
        if distribution is None:
            raise NotFoundError('Distribution not found')
        return distribution

    def _new_distribution_id(self) -> str:
        for _ in range(5):
            candidate = generate_distribution_id()
            if not dist_models.DocumentDistribution.objects.filter(distribution_id=candidate).exists():
                return candidate
        raise RuntimeError('Could not generate a unique distribution id')

    def create(self, actor: Identity, metadata: dict) -> dist_models.DocumentDistribution:
        if actor.role != Role.MODULE_LEADER:
            raise AuthorizationError('Only module leaders can create distributions')

        cleaned = _validate_metadata(metadata)
        course = Course.objects.select_related('department').filter(pk=metadata.get('course_id')).first()
        if course is None:
            raise NotFoundError('Course not found')

        academic_year = str(metadata.get('academic_year') or '').strip()
        semester = metadata.get('semester')
        batch = str(metadata.get('batch') or '').strip()
        if not academic_year or not batch:
            raise ValidationError('academic_year and batch are required')
        if semester not in Semester.values:
            raise ValidationError('Invalid semester', semester=semester)

        permissions, specific_teachers = merge_permissions({}, metadata.get('permissions'))
        owner = get_user_model().objects.get(pk=actor.id)

        folder_structure = {
            'year': academic_year,
            'semester': semester,
            'batch': batch,
            'course_code': course.code,
            'course_name': course.name,
            'department': course.department.name,
            'sub_folder': cleaned['category'],
        }
        folder_path = f"{academic_year}/{semester}/{batch}/{course.code}/{cleaned['category']}"
        # Remote call stays outside the transaction
        folder_id = create_folder_best_effort(self.storage_provider, folder_path)

        with transaction.atomic():
            distribution = dist_models.DocumentDistribution.objects.create(
                distribution_id=self._new_distribution_id(),
                course=course,
                course_code=course.code,
                course_name=course.name,
                credit_hours=course.credit_hours,
                department_name=course.department.name,
                academic_year=academic_year,
                semester=semester,
                batch=batch,
                section=str(metadata.get('section') or '').strip(),
                class_count=metadata.get('class_count'),
                module_leader=owner,
                module_leader_name=owner.display_name,
                module_leader_email=owner.email or '',
                module_leader_employee_id=owner.employee_id or '',
                permissions=permissions,
                folder_structure=folder_structure,
                storage_folder_id=folder_id or '',
                storage_folder_path=folder_path if folder_id else '',
                created_by=owner,
                last_modified_by=owner,
                **cleaned
            )
            if specific_teachers:
                _replace_narrowed_teachers(distribution, specific_teachers, actor)
            _append_audit(
                distribution, actor, dist_models.AuditEntry.Action.CREATED,
                f'Document distribution created: {distribution.title}',
            )

        logger.info('%s', {
            'event': 'distribution_created',
            'distribution_id': distribution.distribution_id,
            'owner_id': actor.id,
            'course_code': course.code,
            'storage_folder': bool(folder_id),
        })
        return distribution

    def add_files(self, distribution_id: str, actor: Identity, files: list) -> list:
        if not files or not isinstance(files, (list, tuple)):
            raise ValidationError('At least one file is required')

        with transaction.atomic():
            distribution = self._lock(distribution_id)
            _require_owner(distribution, actor)

            previous_files = [f.summary() for f in distribution.files.all()]
            next_position = (distribution.files.aggregate(m=Max('position'))['m'] or 0) + 1

            rows = []
            for offset, item in enumerate(files):
                rows.append(self._build_file(distribution, next_position + offset, item))
            dist_models.DistributionFile.objects.bulk_create(rows)

            totals = distribution.files.aggregate(n=Count('id'), size=Sum('file_size'))
            _bump_version(
                distribution, actor,
                file_count=totals['n'] or 0,
                total_file_size=totals['size'] or 0,
            )
            _append_audit(
                distribution, actor, dist_models.AuditEntry.Action.FILE_ADDED,
                f"Added {len(rows)} file(s): {', '.join(r.original_name for r in rows)}",
                previous_state={'files': previous_files},
            )

        logger.info('%s', {
            'event': 'distribution_files_added',
            'distribution_id': distribution_id,
            'count': len(rows),
            'file_count': distribution.file_count,
        })
        return list(distribution.files.all())

    def _build_file(self, distribution, position: int, item) -> dist_models.DistributionFile:
        if not isinstance(item, dict):
            raise ValidationError('Each file must be an object')
        name = str(item.get('name') or item.get('original_name') or '').strip()
        if not name:
            raise ValidationError('File name is required')
        try:
            size = int(item.get('size', item.get('file_size', 0)) or 0)
        except (TypeError, ValueError):
            raise ValidationError('File size must be an integer', file=name)
        if size < 0:
            raise ValidationError('File size cannot be negative', file=name)

        mime_type = str(item.get('mime_type') or '')
        file_type = str(item.get('file_type') or (name.rsplit('.', 1)[-1].lower() if '.' in name else ''))
        return dist_models.DistributionFile(
            distribution=distribution,
            position=position,
            original_name=name[:255],
            file_type=file_type[:32],
            file_size=size,
            mime_type=mime_type[:128],
            storage_file_id=str(item.get('storage_file_id') or ''),
            live_view_link=str(item.get('live_view_link') or ''),
            download_link=str(item.get('download_link') or ''),
            thumbnail_link=str(item.get('thumbnail_link') or ''),
            checksum=str(item.get('checksum') or ''),
        )

    def share_with_teacher(self, distribution_id: str, teacher_id: int, actor: Identity) -> bool:
        """Add a teacher to the distribution's specific-teacher set.

        Returns False when the teacher was already in the set.
        """
        teacher = get_user_model().objects.filter(pk=teacher_id).first()
        if teacher is None:
            raise NotFoundError('Teacher not found')

        with transaction.atomic():
            distribution = self._lock(distribution_id)
            _require_owner(distribution, actor)

            share, created = dist_models.DistributionTeacherShare.objects.get_or_create(
                distribution=distribution,
                teacher=teacher,
                defaults={'shared': True, 'shared_by_id': actor.id},
            )
            if not created:
                if not share.shared:
                    # Kept if the teacher is later narrowed out
                    dist_models.DistributionTeacherShare.objects.filter(pk=share.pk).update(shared=True)
                return False

            _bump_version(distribution, actor)
            _append_audit(
                distribution, actor, dist_models.AuditEntry.Action.PERMISSION_CHANGED,
                f'Shared with teacher {teacher.display_name}',
            )

        logger.info('%s', {
            'event': 'distribution_shared',
            'distribution_id': distribution_id,
            'teacher_id': teacher.pk,
            'actor_id': actor.id,
        })
        if self.dispatcher is not None:
            payload = {
                'type': 'document_shared',
                'sender_id': actor.id,
                'title': 'Document shared with you',
                'message': f'{actor.name} shared "{distribution.title}" ({distribution.course_code}) with you',
                'data': {'distribution_id': distribution.distribution_id, 'course_code': distribution.course_code},
            }
            transaction.on_commit(lambda: self.dispatcher.send(teacher.pk, payload))
        return True

    def update_status(self, distribution_id: str, new_status: str, actor: Identity, notes: Optional[str] = None, reason: Optional[str] = None) -> dist_models.DocumentDistribution:
        Status = dist_models.DocumentDistribution.Status
        if new_status not in Status.values:
            raise ValidationError('Invalid status', status=new_status)

        with transaction.atomic():
            distribution = self._lock(distribution_id)
            _require_owner(distribution, actor)

            old_status = distribution.status
            now = timezone.now()
            fields = {'status': new_status}
            if new_status == Status.DISTRIBUTED:
                fields.update(distributed_at=now, distribution_notes=notes or '')
                action = dist_models.AuditEntry.Action.DISTRIBUTED
            elif new_status == Status.ARCHIVED:
                fields.update(archived_at=now, archived_by_id=actor.id, archive_reason=reason or '')
                action = dist_models.AuditEntry.Action.ARCHIVED
            else:
                action = dist_models.AuditEntry.Action.UPDATED

            _bump_version(distribution, actor, **fields)
            details = f'Status changed from {old_status} → {new_status}'
            if notes:
                details = f'{details}: {notes}'
            _append_audit(distribution, actor, action, details, previous_state={'status': old_status})

        logger.info('%s', {
            'event': 'distribution_status_changed',
            'distribution_id': distribution_id,
            'from': old_status,
            'to': new_status,
            'actor_id': actor.id,
        })
        return distribution

    def archive(self, distribution_id: str, actor: Identity) -> dist_models.DocumentDistribution:
        return self.update_status(
            distribution_id, dist_models.DocumentDistribution.Status.ARCHIVED, actor,
            reason='Deleted by module leader',
        )

    def update(self, distribution_id: str, actor: Identity, changes: dict) -> dist_models.DocumentDistribution:
        changes = changes or {}
        cleaned = _validate_metadata(changes, partial=True)
        touches_permissions = 'permissions' in changes
        if not cleaned and not touches_permissions:
            raise ValidationError('Nothing to update')

        with transaction.atomic():
            distribution = self._lock(distribution_id)
            _require_owner(distribution, actor)

            previous_state = {name: getattr(distribution, name) for name in UPDATABLE_FIELDS}
            previous_state['permissions'] = distribution.permissions
            previous_state['specific_teachers'] = sorted(
                distribution.teacher_shares
                .filter(narrowed=True)
                .values_list('teacher_id', flat=True)
            )

            fields = dict(cleaned)
            if touches_permissions:
                permissions, specific_teachers = merge_permissions(distribution.permissions, changes.get('permissions'))
                fields['permissions'] = permissions
                if specific_teachers is not None:
                    _replace_narrowed_teachers(distribution, specific_teachers, actor)

            _bump_version(distribution, actor, **fields)
            if cleaned:
                action = dist_models.AuditEntry.Action.UPDATED
                details = 'Document distribution updated'
            else:
                action = dist_models.AuditEntry.Action.PERMISSION_CHANGED
                details = 'Permissions updated'
            _append_audit(distribution, actor, action, details, previous_state=previous_state)

        logger.info('%s', {
            'event': 'distribution_updated',
            'distribution_id': distribution_id,
            'fields': sorted(fields),
            'actor_id': actor.id,
        })
        return distribution

    def analytics(self, distribution_id: str, actor: Identity) -> dict:
        distribution = self.get(distribution_id)
        _require_owner(distribution, actor)

        accessors = dict(
            distribution.unique_accesses.values('action')
            .annotate(n=Count('id'))
            .values_list('action', 'n')
        )
        return {
            'total_views': distribution.total_views,
            'total_downloads': distribution.total_downloads,
            'unique_viewers': accessors.get(dist_models.AccessAction.VIEW, 0),
            'unique_downloaders': accessors.get(dist_models.AccessAction.DOWNLOAD, 0),
            'last_accessed_at': distribution.last_accessed_at,
            'file_count': distribution.file_count,
            'total_file_size': distribution.total_file_size,
            'status': distribution.status,
            'created_at': distribution.created_at,
            'last_modified': distribution.updated_at,
        }

    def list_for(self, identity: Identity, filters: Optional[dict] = None):
        """Distributions visible to `identity`, filtered and sorted.

        Module leaders see the distributions they own. Everyone else sees
        the distributions `evaluate_access` allows them to read.
        """
        filters = filters or {}
        qs = (
            dist_models.DocumentDistribution.objects
            .select_related('course', 'module_leader')
            .prefetch_related('teacher_shares')
        )

        if filters.get('category'):
            qs = qs.filter(category=filters['category'])
        if filters.get('course_code'):
            qs = qs.filter(course_code__icontains=filters['course_code'])
        if filters.get('department'):
            qs = qs.filter(department_name__icontains=filters['department'])
        if filters.get('status'):
            qs = qs.filter(status=filters['status'])
        if filters.get('priority'):
            qs = qs.filter(priority=filters['priority'])
        if filters.get('search'):
            term = filters['search']
            qs = qs.filter(
                Q(title__icontains=term)
                | Q(description__icontains=term)
                | Q(course_name__icontains=term)
                | Q(course_code__icontains=term)
            )

        sort_by = filters.get('sort_by') or 'created_at'
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationError('Invalid sort field', sort_by=sort_by)
        prefix = '' if filters.get('sort_order') == 'asc' else '-'
        qs = qs.order_by(f'{prefix}{sort_by}', f'{prefix}id')

        if identity.role == Role.ADMIN:
            return qs
        if identity.role == Role.MODULE_LEADER:
            return qs.filter(module_leader_id=identity.id)

        return [
            d for d in qs
            if permission_evaluator.evaluate_access(d, identity) is permission_evaluator.AccessDecision.ALLOW
        ]
