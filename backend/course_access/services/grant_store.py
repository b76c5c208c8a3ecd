"""Course access grants keyed by (course, semester, year, batch).

Teachers and sections are merged with insert-if-absent writes so that two
approvals landing on the same key at once never lose each other's entries.
"""
import logging

from django.db import transaction

from course_access import models as ca_models

logger = logging.getLogger(__name__)


def add_section(grant: ca_models.CourseAccessGrant, section: str) -> None:
    name = (section or '').strip()
    if not name:
        return
    ca_models.GrantSection.objects.bulk_create(
        [ca_models.GrantSection(grant=grant, name=name)],
        ignore_conflicts=True,
    )


def upsert_grant(course, semester: str, year: int, batch: int, teacher, section: str, module_leader) -> ca_models.CourseAccessGrant:
    """Create the grant for the key or merge `teacher` and `section` into it.

    `module_leader` is only used when the grant is created.
    """
    with transaction.atomic():
        grant, created = ca_models.CourseAccessGrant.objects.get_or_create(
            course=course,
            semester=semester,
            year=year,
            batch=batch,
            defaults={
                'module_leader': module_leader,
                'status': ca_models.CourseAccessGrant.Status.ONGOING,
            },
        )
        # M2M add() skips rows that already exist
        grant.teachers.add(teacher)
        add_section(grant, section)

    logger.info('%s', {
        'event': 'course_access_grant_upserted',
        'grant_id': grant.pk,
        'created': created,
        'course_id': getattr(course, 'pk', course),
        'teacher_id': getattr(teacher, 'pk', teacher),
        'section': section,
    })
    return grant


def list_accessible_courses(teacher):
    """Ongoing grants that include `teacher`, joined with their course."""
    return (
        ca_models.CourseAccessGrant.objects
        .filter(teachers=teacher, status=ca_models.CourseAccessGrant.Status.ONGOING)
        .select_related('course', 'course__department', 'module_leader')
        .prefetch_related('section_entries')
        .order_by('-year', 'course__code', 'batch')
    )
