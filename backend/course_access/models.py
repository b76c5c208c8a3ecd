from django.conf import settings
from django.core.validators import MaxLengthValidator, MinLengthValidator
from django.db import models
from django.db.models import F, Q, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from academics.models import Semester

MESSAGE_MIN_LENGTH = 10
MESSAGE_MAX_LENGTH = 1000
SECTION_MAX_LENGTH = 50


class AccessRequest(models.Model):
    """A teacher asking a module leader for access to a course.

    Responded to exactly once; the response is terminal and requests are
    never deleted.
    """

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        APPROVED = 'approved', 'Approved'
        REJECTED = 'rejected', 'Rejected'

    course = models.ForeignKey(
        'academics.Course',
        on_delete=models.PROTECT,
        related_name='access_requests'
    )
    teacher = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='course_access_requests'
    )
    module_leader = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='received_access_requests'
    )
    batch = models.PositiveIntegerField()
    semester = models.CharField(max_length=10, choices=Semester.choices)
    section = models.CharField(max_length=SECTION_MAX_LENGTH)
    message = models.TextField(validators=[MinLengthValidator(MESSAGE_MIN_LENGTH), MaxLengthValidator(MESSAGE_MAX_LENGTH)])
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING, db_index=True)
    request_date = models.DateTimeField(default=timezone.now)
    response_date = models.DateTimeField(null=True, blank=True)
    response_message = models.TextField(blank=True, validators=[MaxLengthValidator(MESSAGE_MAX_LENGTH)])
    responded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='responded_access_requests'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ('-request_date', '-id')
        constraints = [
            # A teacher can only have one pending request per course
            models.UniqueConstraint(fields=['course', 'teacher'], condition=Q(status='pending'), name='unique_pending_access_request'),
        ]
        indexes = [
            models.Index(fields=['module_leader', 'status'], name='accessreq_leader_status_idx'),
        ]

    def __str__(self):
        return f"{self.teacher} -> {self.course} ({self.status})"

    @property
    def is_pending(self) -> bool:
        return self.status == self.Status.PENDING


class CourseAccessGrant(models.Model):
    """Teachers and sections authorised for one course offering.

    Identity is (course, semester, year, batch). `teachers` and the section
    rows only grow through approvals.
    """

    class Status(models.TextChoices):
        ONGOING = 'ongoing', 'Ongoing'
        COMPLETED = 'completed', 'Completed'

    course = models.ForeignKey(
        'academics.Course',
        on_delete=models.PROTECT,
        related_name='access_grants'
    )
    semester = models.CharField(max_length=10, choices=Semester.choices)
    year = models.PositiveSmallIntegerField()
    batch = models.PositiveIntegerField()
    teachers = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name='course_access_grants'
    )
    module_leader = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='led_course_access_grants'
    )
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.ONGOING, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ('-year', 'course_id', 'batch')
        constraints = [
            models.UniqueConstraint(fields=['course', 'semester', 'year', 'batch'], name='unique_course_access_grant'),
        ]

    def __str__(self):
        return f"{self.course} {self.semester} {self.year} / batch {self.batch}"

    @property
    def sections(self):
        return [s.name for s in self.section_entries.all()]


class GrantSection(models.Model):
    grant = models.ForeignKey(
        CourseAccessGrant,
        on_delete=models.CASCADE,
        related_name='section_entries'
    )
    name = models.CharField(max_length=SECTION_MAX_LENGTH)
    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ('name',)
        constraints = [
            models.UniqueConstraint(fields=['grant', 'name'], name='unique_grant_section'),
        ]

    def __str__(self):
        return f"{self.grant_id}: {self.name}"


class ModuleLeaderAssignment(models.Model):
    course = models.ForeignKey(
        'academics.Course',
        on_delete=models.CASCADE,
        related_name='module_leader_assignments'
    )
    batch = models.PositiveIntegerField(null=True, blank=True)
    teacher = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='module_leader_assignments'
    )
    academic_year = models.PositiveSmallIntegerField()
    semester = models.CharField(max_length=10, choices=Semester.choices)
    assigned_at = models.DateTimeField(default=timezone.now)
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='module_leader_assignments_made'
    )
    is_active = models.BooleanField(default=True)
    remarks = models.TextField(blank=True)
    assigned_teachers = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name='assigned_module_courses'
    )

    class Meta:
        ordering = ('-assigned_at',)
        constraints = [
            # One active module leader per course-batch; a null batch counts as one value
            models.UniqueConstraint(
                F('course'), Coalesce('batch', Value(0)),
                condition=Q(is_active=True),
                name='unique_active_module_leader',
            ),
        ]
        indexes = [
            models.Index(fields=['teacher', 'is_active'], name='mlassign_teacher_active_idx'),
            models.Index(fields=['course', 'academic_year', 'semester'], name='mlassign_course_term_idx'),
        ]

    def __str__(self):
        return f"{self.course} {self.semester} {self.academic_year}: {self.teacher} ({'active' if self.is_active else 'inactive'})"
