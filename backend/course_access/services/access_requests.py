import logging
from typing import Iterable, Optional

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.utils import timezone

from academics.models import Course, Semester
from core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from core.identity import Identity, Role
from course_access import models as ca_models
from course_access.services import assignment_registry, grant_store
from distributions import models as dist_models
from distributions.services.distribution_store import DistributionStore
from notifications.services.dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)

DECISIONS = (ca_models.AccessRequest.Status.APPROVED, ca_models.AccessRequest.Status.REJECTED)


def _request_queryset():
    return ca_models.AccessRequest.objects.select_related(
        'course', 'course__department', 'teacher', 'module_leader', 'responded_by'
    )


def clean_message(message) -> str:
    text = str(message or '').strip()
    if len(text) < ca_models.MESSAGE_MIN_LENGTH:
        raise ValidationError(f'Message must be at least {ca_models.MESSAGE_MIN_LENGTH} characters long')
    if len(text) > ca_models.MESSAGE_MAX_LENGTH:
        raise ValidationError(f'Message cannot exceed {ca_models.MESSAGE_MAX_LENGTH} characters')
    return text


class AccessRequestManager:
    """Lifecycle of course access requests.

    pending -> approved | rejected. Both outcomes are terminal. The
    transition is a compare-and-set on status so that only one of two
    concurrent responses wins; the other gets ConflictError.
    """

    def __init__(self, dispatcher: Optional[NotificationDispatcher] = None, distribution_store: Optional[DistributionStore] = None):
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.distribution_store = distribution_store or DistributionStore()

    def create_request(self, course_id: int, teacher: Identity, batch, semester: str, section: str, message: str, module_leader_id: Optional[int] = None) -> ca_models.AccessRequest:
        if teacher.role not in (Role.TEACHER, Role.MODULE_LEADER):
            raise AuthorizationError('Only teachers can request course access')

        text = clean_message(message)
        if semester not in Semester.values:
            raise ValidationError('Invalid semester', semester=semester)
        section = str(section or '').strip()
        if not section:
            raise ValidationError('Section is required')
        if len(section) > ca_models.SECTION_MAX_LENGTH:
            raise ValidationError(f'Section cannot exceed {ca_models.SECTION_MAX_LENGTH} characters')
        try:
            batch = int(batch)
        except (TypeError, ValueError):
            raise ValidationError('Batch must be a positive number')
        if batch <= 0:
            raise ValidationError('Batch must be a positive number')

        course = Course.objects.filter(pk=course_id).first()
        if course is None:
            raise NotFoundError('Course not found')

        if module_leader_id is not None:
            module_leader = get_user_model().objects.filter(pk=module_leader_id).first()
            if module_leader is None:
                raise NotFoundError('Module leader not found')
            if not assignment_registry.leads_course(course, module_leader):
                raise ValidationError('Selected user is not a module leader of this course', module_leader_id=module_leader.pk)
        else:
            module_leader = assignment_registry.resolve_module_leader(course)
            if module_leader is None:
                raise ValidationError('No module leader is assigned to this course')
        if module_leader.pk == teacher.id:
            raise ValidationError('You cannot request access from yourself')

        if ca_models.AccessRequest.objects.filter(
            course=course, teacher_id=teacher.id, status=ca_models.AccessRequest.Status.PENDING
        ).exists():
            raise ConflictError('You already have a pending request for this course')

        try:
            with transaction.atomic():
                access_request = ca_models.AccessRequest.objects.create(
                    course=course,
                    teacher_id=teacher.id,
                    module_leader=module_leader,
                    batch=batch,
                    semester=semester,
                    section=section,
                    message=text,
                )
        except IntegrityError:
            # Lost the race against a concurrent create for the same pair
            raise ConflictError('You already have a pending request for this course')

        logger.info('%s', {
            'event': 'course_access_requested',
            'request_id': access_request.pk,
            'course_id': course.pk,
            'teacher_id': teacher.id,
            'module_leader_id': module_leader.pk,
        })

        payload = {
            'type': 'course_request',
            'sender_id': teacher.id,
            'title': 'New Course Access Request',
            'message': f'{teacher.name} requested access to {course.code} - {course.name}',
            'data': {
                'request_id': access_request.pk,
                'course_id': course.pk,
                'course_code': course.code,
                'course_name': course.name,
                'batch': batch,
                'semester': semester,
                'section': section,
            },
        }
        transaction.on_commit(lambda: self.dispatcher.send(module_leader.pk, payload))
        return access_request

    def respond_to_request(self, request_id: int, responder: Identity, decision: str, response_message: Optional[str] = None, selected_document_ids: Optional[Iterable[str]] = None) -> ca_models.AccessRequest:
        decision = str(decision or '').strip().lower()
        if decision not in DECISIONS:
            raise ValidationError('Decision must be "approved" or "rejected"')
        response_message = str(response_message or '').strip()
        if len(response_message) > ca_models.MESSAGE_MAX_LENGTH:
            raise ValidationError(f'Response message cannot exceed {ca_models.MESSAGE_MAX_LENGTH} characters')

        access_request = _request_queryset().filter(pk=request_id).first()
        if access_request is None:
            raise NotFoundError('Course access request not found')
        if access_request.module_leader_id != responder.id:
            raise AuthorizationError('Only the assigned module leader can respond to this request')
        if not access_request.is_pending:
            raise ConflictError('This request has already been responded to')

        now = timezone.now()
        shared = []
        with transaction.atomic():
            updated = ca_models.AccessRequest.objects.filter(
                pk=access_request.pk, status=ca_models.AccessRequest.Status.PENDING
            ).update(
                status=decision,
                response_date=now,
                response_message=response_message,
                responded_by_id=responder.id,
                updated_at=now,
            )
            if updated != 1:
                raise ConflictError('This request has already been responded to')

            if decision == ca_models.AccessRequest.Status.APPROVED:
                shared = self._apply_approval(access_request, responder, now.year, selected_document_ids or [])

        access_request.refresh_from_db()

        logger.info('%s', {
            'event': 'course_access_responded',
            'request_id': access_request.pk,
            'decision': decision,
            'responder_id': responder.id,
            'shared_documents': shared,
        })

        payload = self._response_payload(access_request, responder, shared)
        transaction.on_commit(lambda: self.dispatcher.send(access_request.teacher_id, payload))
        return access_request

    def _apply_approval(self, access_request: ca_models.AccessRequest, responder: Identity, year: int, document_ids: Iterable[str]) -> list:
        grant_store.upsert_grant(
            course=access_request.course,
            semester=access_request.semester,
            year=year,
            batch=access_request.batch,
            teacher=access_request.teacher,
            section=access_request.section,
            module_leader=access_request.module_leader,
        )
        assignment_registry.add_teacher(access_request.course, year, access_request.semester, access_request.teacher)

        shared = []
        for distribution_id in document_ids:
            owner_id = (
                dist_models.DocumentDistribution.objects
                .filter(distribution_id=distribution_id)
                .values_list('module_leader_id', flat=True)
                .first()
            )
            if owner_id != responder.id:
                logger.info('Skipping document %s: not owned by module leader %s', distribution_id, responder.id)
                continue
            self.distribution_store.share_with_teacher(distribution_id, access_request.teacher_id, responder)
            shared.append(distribution_id)
        return shared

    def _response_payload(self, access_request: ca_models.AccessRequest, responder: Identity, shared: list) -> dict:
        course = access_request.course
        approved = access_request.status == ca_models.AccessRequest.Status.APPROVED
        if approved:
            message = f'Your request for {course.code} - {course.name} has been approved'
            if shared:
                message = f'{message}. {len(shared)} document(s) were shared with you'
        else:
            message = f'Your request for {course.code} - {course.name} has been rejected'
        if access_request.response_message:
            message = f'{message}: {access_request.response_message}'
        return {
            'type': 'course_approved' if approved else 'course_rejected',
            'sender_id': responder.id,
            'title': 'Course Access Approved' if approved else 'Course Access Rejected',
            'message': message,
            'data': {
                'request_id': access_request.pk,
                'course_id': course.pk,
                'course_code': course.code,
                'course_name': course.name,
                'batch': access_request.batch,
                'semester': access_request.semester,
                'section': access_request.section,
                'shared_documents': shared,
            },
        }

    def list_my_requests(self, teacher: Identity):
        return _request_queryset().filter(teacher_id=teacher.id).order_by('-request_date', '-id')

    def list_pending_requests(self, module_leader: Identity):
        return (
            _request_queryset()
            .filter(module_leader_id=module_leader.id, status=ca_models.AccessRequest.Status.PENDING)
            .order_by('-request_date', '-id')
        )

    def list_requests_for_module_leader(self, module_leader: Identity, status: Optional[str] = None):
        qs = _request_queryset().filter(module_leader_id=module_leader.id)
        if status:
            if status not in ca_models.AccessRequest.Status.values:
                raise ValidationError('Invalid status', status=status)
            qs = qs.filter(status=status)
        return qs.order_by('-request_date', '-id')
