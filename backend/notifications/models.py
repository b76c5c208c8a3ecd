from django.conf import settings
from django.db import models


class Notification(models.Model):
    class Type(models.TextChoices):
        COURSE_REQUEST = 'course_request', 'Course request'
        COURSE_APPROVED = 'course_approved', 'Course approved'
        COURSE_REJECTED = 'course_rejected', 'Course rejected'
        DOCUMENT_SHARED = 'document_shared', 'Document shared'

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='sent_notifications'
    )
    type = models.CharField(max_length=32, choices=Type.choices)
    title = models.CharField(max_length=200)
    message = models.TextField()
    # requestId, courseCode, courseTitle, teacherName, semester, batch ...
    data = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ('-created_at', '-id')
        indexes = [models.Index(fields=['recipient', 'is_read', '-created_at'], name='notif_recipient_unread_idx')]

    def __str__(self):
        return f"{self.type} -> {self.recipient_id} ({'read' if self.is_read else 'unread'})"
