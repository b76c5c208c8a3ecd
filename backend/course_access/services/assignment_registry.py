import logging
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import transaction

from core.identity import Role
from course_access import models as ca_models

logger = logging.getLogger(__name__)


def get_active_assignment(course, academic_year: Optional[int] = None, semester: Optional[str] = None) -> Optional[ca_models.ModuleLeaderAssignment]:
    qs = ca_models.ModuleLeaderAssignment.objects.filter(course=course, is_active=True)
    if academic_year is not None:
        qs = qs.filter(academic_year=academic_year)
    if semester:
        qs = qs.filter(semester=semester)
    return qs.select_related('teacher').order_by('-assigned_at').first()


def resolve_module_leader(course):
    """Return the user leading `course` through its active assignment, or None."""
    assignment = get_active_assignment(course)
    return assignment.teacher if assignment else None


def leads_course(course, user) -> bool:
    """True when `user` holds the module-leader role and an active assignment for `course`."""
    if getattr(user, 'role', None) != Role.MODULE_LEADER:
        return False
    return ca_models.ModuleLeaderAssignment.objects.filter(course=course, teacher=user, is_active=True).exists()


def add_teacher(course, academic_year: int, semester: str, teacher) -> bool:
    """Record `teacher` under the active assignment for the course term.

    Returns True when the teacher was added. A missing assignment or a
    teacher already present is not an error.
    """
    assignment = get_active_assignment(course, academic_year, semester)
    if assignment is None:
        logger.info('%s', {
            'event': 'assignment_add_teacher_skipped',
            'reason': 'no_active_assignment',
            'course_id': getattr(course, 'pk', course),
            'academic_year': academic_year,
            'semester': semester,
        })
        return False

    teacher_id = getattr(teacher, 'pk', teacher)
    if assignment.assigned_teachers.filter(pk=teacher_id).exists():
        return False

    assignment.assigned_teachers.add(teacher_id)
    return True


def assign_module_leader(course, teacher, academic_year: int, semester: str, assigned_by=None, batch: Optional[int] = None, remarks: str = '') -> ca_models.ModuleLeaderAssignment:
    """Make `teacher` the active module leader of the course (and batch).

    Any previously active assignment for the same course and batch is
    deactivated in the same transaction. A plain teacher is promoted to the
    module-leader role.
    """
    with transaction.atomic():
        ca_models.ModuleLeaderAssignment.objects.filter(
            course=course, batch=batch, is_active=True
        ).update(is_active=False)

        assignment = ca_models.ModuleLeaderAssignment.objects.create(
            course=course,
            batch=batch,
            teacher=teacher,
            academic_year=academic_year,
            semester=semester,
            assigned_by=assigned_by,
            remarks=remarks or '',
        )

        if getattr(teacher, 'role', None) == Role.TEACHER:
            get_user_model().objects.filter(pk=teacher.pk).update(role=Role.MODULE_LEADER)
            teacher.role = Role.MODULE_LEADER

    logger.info('%s', {
        'event': 'module_leader_assigned',
        'assignment_id': assignment.pk,
        'course_id': getattr(course, 'pk', course),
        'teacher_id': teacher.pk,
        'batch': batch,
    })
    return assignment
