import copy

from django.conf import settings
from django.db import models
from django.utils import timezone

from academics.models import Semester

ACCESS_LOG_LIMIT = 1000

DEFAULT_PERMISSIONS = {
    'teachers': {
        'can_view': True,
        'can_download': True,
        'can_comment': True,
        'can_edit': False,
    },
    'students': {
        'can_view': True,
        'can_download': True,
        'can_comment': False,
        'can_edit': False,
        'specific_batches': [],
        'specific_sections': [],
    },
    'public': {
        'can_view': False,
        'can_download': False,
        'can_comment': False,
        'can_edit': False,
    },
}


def default_permissions():
    return copy.deepcopy(DEFAULT_PERMISSIONS)


class DocumentDistribution(models.Model):
    """A bundle of course documents owned by one module leader.

    Only the owner may change files, permissions or status. Distributions
    are archived, never deleted.
    """

    class Category(models.TextChoices):
        LECTURE_NOTES = 'lecture-notes', 'Lecture notes'
        ASSIGNMENTS = 'assignments', 'Assignments'
        SYLLABUS = 'syllabus', 'Syllabus'
        READING_MATERIAL = 'reading-material', 'Reading material'
        EXAMS = 'exams', 'Exams'
        TEMPLATES = 'templates', 'Templates'
        OTHER = 'other', 'Other'

    class Priority(models.TextChoices):
        LOW = 'low', 'Low'
        MEDIUM = 'medium', 'Medium'
        HIGH = 'high', 'High'
        URGENT = 'urgent', 'Urgent'

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        DISTRIBUTED = 'distributed', 'Distributed'
        ARCHIVED = 'archived', 'Archived'
        EXPIRED = 'expired', 'Expired'

    distribution_id = models.CharField(max_length=40, unique=True)

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, max_length=1000)
    category = models.CharField(max_length=20, choices=Category.choices)
    tags = models.JSONField(default=list, blank=True)
    priority = models.CharField(max_length=10, choices=Priority.choices, default=Priority.MEDIUM)

    storage_folder_id = models.CharField(max_length=128, blank=True)
    storage_folder_path = models.CharField(max_length=500, blank=True)
    folder_structure = models.JSONField(default=dict, blank=True)

    # Course snapshot taken at creation time
    course = models.ForeignKey(
        'academics.Course',
        on_delete=models.PROTECT,
        related_name='distributions'
    )
    course_code = models.CharField(max_length=32)
    course_name = models.CharField(max_length=200)
    credit_hours = models.PositiveSmallIntegerField(default=0)
    department_name = models.CharField(max_length=200, blank=True)

    academic_year = models.CharField(max_length=16)
    semester = models.CharField(max_length=10, choices=Semester.choices)
    batch = models.CharField(max_length=16)
    section = models.CharField(max_length=50, blank=True)
    class_count = models.PositiveIntegerField(null=True, blank=True)

    module_leader = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='owned_distributions'
    )
    module_leader_name = models.CharField(max_length=200)
    module_leader_email = models.EmailField(blank=True)
    module_leader_employee_id = models.CharField(max_length=64, blank=True)

    permissions = models.JSONField(default=default_permissions)

    status = models.CharField(max_length=12, choices=Status.choices, default=Status.PENDING, db_index=True)
    distributed_at = models.DateTimeField(null=True, blank=True)
    distribution_notes = models.TextField(blank=True)
    archived_at = models.DateTimeField(null=True, blank=True)
    archived_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='archived_distributions'
    )
    archive_reason = models.CharField(max_length=500, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)

    total_views = models.PositiveIntegerField(default=0)
    total_downloads = models.PositiveIntegerField(default=0)
    last_accessed_at = models.DateTimeField(null=True, blank=True)

    file_count = models.PositiveIntegerField(default=0)
    total_file_size = models.BigIntegerField(default=0)

    version = models.PositiveIntegerField(default=1)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='created_distributions'
    )
    last_modified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='modified_distributions'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ('-created_at', '-id')
        indexes = [
            models.Index(fields=['module_leader', 'status'], name='dist_owner_status_idx'),
            models.Index(fields=['course_code', 'academic_year', 'semester'], name='dist_course_term_idx'),
            models.Index(fields=['category', 'status'], name='dist_category_status_idx'),
        ]

    def __str__(self):
        return f"{self.distribution_id} {self.title}"


class DistributionFile(models.Model):
    distribution = models.ForeignKey(
        DocumentDistribution,
        on_delete=models.CASCADE,
        related_name='files'
    )
    position = models.PositiveIntegerField()
    original_name = models.CharField(max_length=255)
    file_type = models.CharField(max_length=32, blank=True)
    file_size = models.BigIntegerField(default=0)
    mime_type = models.CharField(max_length=128, blank=True)
    storage_file_id = models.CharField(max_length=128, blank=True)
    live_view_link = models.URLField(max_length=500, blank=True)
    download_link = models.URLField(max_length=500, blank=True)
    thumbnail_link = models.URLField(max_length=500, blank=True)
    checksum = models.CharField(max_length=128, blank=True)
    uploaded_at = models.DateTimeField(default=timezone.now)
    last_modified = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ('position', 'id')
        constraints = [
            models.UniqueConstraint(fields=['distribution', 'position'], name='unique_distribution_file_position'),
        ]

    def __str__(self):
        return self.original_name

    def summary(self):
        return {
            'name': self.original_name,
            'size': self.file_size,
            'mime_type': self.mime_type,
            'storage_file_id': self.storage_file_id,
        }


class DistributionTeacherShare(models.Model):
    """Membership of one teacher in a distribution's specific-teacher set.

    `narrowed` is set while the teacher is named by an explicit restriction
    of the distribution; `shared` is set once the teacher was added by a
    share. A row lives while either flag is set. Only narrowed rows switch
    the teacher allow-list on.
    """

    distribution = models.ForeignKey(
        DocumentDistribution,
        on_delete=models.CASCADE,
        related_name='teacher_shares'
    )
    teacher = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='shared_distributions'
    )
    narrowed = models.BooleanField(default=False)
    shared = models.BooleanField(default=False)
    shared_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ('created_at', 'id')
        constraints = [
            models.UniqueConstraint(fields=['distribution', 'teacher'], name='unique_distribution_teacher_share'),
        ]

    def __str__(self):
        flags = [name for name in ('narrowed', 'shared') if getattr(self, name)]
        return f"{self.distribution_id} -> {self.teacher_id} ({', '.join(flags)})"


class AccessAction(models.TextChoices):
    VIEW = 'view', 'View'
    DOWNLOAD = 'download', 'Download'
    COMMENT = 'comment', 'Comment'
    EDIT = 'edit', 'Edit'


class DistributionAccess(models.Model):
    """Unique viewers and downloaders: one row per (distribution, user, action)."""

    distribution = models.ForeignKey(
        DocumentDistribution,
        on_delete=models.CASCADE,
        related_name='unique_accesses'
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='+'
    )
    action = models.CharField(max_length=10, choices=AccessAction.choices)
    first_accessed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['distribution', 'user', 'action'], name='unique_distribution_accessor'),
        ]


class AccessLogEntry(models.Model):
    distribution = models.ForeignKey(
        DocumentDistribution,
        on_delete=models.CASCADE,
        related_name='access_log'
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        on_delete=models.SET_NULL,
        related_name='+'
    )
    action = models.CharField(max_length=10, choices=AccessAction.choices)
    timestamp = models.DateTimeField(default=timezone.now)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=512, blank=True)

    class Meta:
        ordering = ('id',)
        indexes = [
            models.Index(fields=['distribution', '-id'], name='dist_accesslog_recent_idx'),
        ]


class AuditEntry(models.Model):
    """One line of a distribution's audit trail. Rows are write-once."""

    class Action(models.TextChoices):
        CREATED = 'created', 'Created'
        UPDATED = 'updated', 'Updated'
        DISTRIBUTED = 'distributed', 'Distributed'
        ARCHIVED = 'archived', 'Archived'
        PERMISSION_CHANGED = 'permission-changed', 'Permission changed'
        FILE_ADDED = 'file-added', 'File added'
        FILE_REMOVED = 'file-removed', 'File removed'

    distribution = models.ForeignKey(
        DocumentDistribution,
        on_delete=models.PROTECT,
        related_name='audit_trail'
    )
    action = models.CharField(max_length=20, choices=Action.choices)
    timestamp = models.DateTimeField(default=timezone.now)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        on_delete=models.SET_NULL,
        related_name='+'
    )
    actor_name = models.CharField(max_length=200, blank=True)
    details = models.TextField(blank=True)
    previous_state = models.JSONField(null=True, blank=True)

    class Meta:
        ordering = ('timestamp', 'id')

    def __str__(self):
        return f"{self.distribution_id} {self.action} by {self.actor_name}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise RuntimeError('Audit entries cannot be modified')
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise RuntimeError('Audit entries cannot be deleted')
