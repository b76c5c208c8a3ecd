from rest_framework import serializers

from academics.models import Semester
from distributions import models as dist_models


class DistributionFileSerializer(serializers.ModelSerializer):
    class Meta:
        model = dist_models.DistributionFile
        fields = (
            'id', 'position', 'original_name', 'file_type', 'file_size', 'mime_type',
            'storage_file_id', 'live_view_link', 'download_link', 'thumbnail_link',
            'checksum', 'uploaded_at', 'last_modified',
        )
        read_only_fields = fields


class AuditEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = dist_models.AuditEntry
        fields = ('id', 'action', 'timestamp', 'actor', 'actor_name', 'details', 'previous_state')
        read_only_fields = fields


class DistributionListSerializer(serializers.ModelSerializer):
    permissions = serializers.SerializerMethodField()

    class Meta:
        model = dist_models.DocumentDistribution
        fields = (
            'id', 'distribution_id', 'title', 'description', 'category', 'tags', 'priority',
            'course', 'course_code', 'course_name', 'credit_hours', 'department_name',
            'academic_year', 'semester', 'batch', 'section', 'class_count',
            'module_leader', 'module_leader_name', 'module_leader_email', 'module_leader_employee_id',
            'storage_folder_id', 'storage_folder_path', 'folder_structure', 'permissions',
            'status', 'distributed_at', 'distribution_notes', 'archived_at', 'archived_by', 'archive_reason', 'expires_at',
            'total_views', 'total_downloads', 'last_accessed_at', 'file_count', 'total_file_size',
            'version', 'created_at', 'updated_at',
        )
        read_only_fields = fields

    def get_permissions(self, obj):
        data = {k: dict(v) for k, v in (obj.permissions or {}).items()}
        narrowed = []
        shared = []
        for share in obj.teacher_shares.all():
            if share.narrowed:
                narrowed.append(share.teacher_id)
            if share.shared:
                shared.append(share.teacher_id)
        teachers = data.setdefault('teachers', {})
        teachers['specific_teachers'] = narrowed
        teachers['shared_teachers'] = shared
        return data


class DistributionDetailSerializer(DistributionListSerializer):
    files = DistributionFileSerializer(many=True, read_only=True)

    class Meta(DistributionListSerializer.Meta):
        fields = DistributionListSerializer.Meta.fields + ('files',)
        read_only_fields = fields


class DistributionOwnerSerializer(DistributionDetailSerializer):
    audit_trail = AuditEntrySerializer(many=True, read_only=True)

    class Meta(DistributionDetailSerializer.Meta):
        fields = DistributionDetailSerializer.Meta.fields + ('audit_trail',)
        read_only_fields = fields


class DistributionCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    category = serializers.ChoiceField(choices=dist_models.DocumentDistribution.Category.choices)
    tags = serializers.ListField(child=serializers.CharField(max_length=64), required=False, default=list)
    priority = serializers.ChoiceField(choices=dist_models.DocumentDistribution.Priority.choices, required=False)
    course_id = serializers.IntegerField()
    academic_year = serializers.CharField(max_length=16)
    semester = serializers.ChoiceField(choices=Semester.choices)
    batch = serializers.CharField(max_length=16)
    section = serializers.CharField(max_length=50, required=False, allow_blank=True)
    class_count = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    permissions = serializers.DictField(required=False)


class DistributionUpdateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200, required=False)
    description = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    category = serializers.ChoiceField(choices=dist_models.DocumentDistribution.Category.choices, required=False)
    tags = serializers.ListField(child=serializers.CharField(max_length=64), required=False)
    priority = serializers.ChoiceField(choices=dist_models.DocumentDistribution.Priority.choices, required=False)
    permissions = serializers.DictField(required=False)


class FileMetadataSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    size = serializers.IntegerField(min_value=0)
    mime_type = serializers.CharField(max_length=128, required=False, allow_blank=True)
    file_type = serializers.CharField(max_length=32, required=False, allow_blank=True)
    storage_file_id = serializers.CharField(max_length=128, required=False, allow_blank=True)
    live_view_link = serializers.URLField(max_length=500, required=False, allow_blank=True)
    download_link = serializers.URLField(max_length=500, required=False, allow_blank=True)
    thumbnail_link = serializers.URLField(max_length=500, required=False, allow_blank=True)
    checksum = serializers.CharField(max_length=128, required=False, allow_blank=True)


class AddFilesSerializer(serializers.Serializer):
    files = FileMetadataSerializer(many=True, allow_empty=False)


class ShareSerializer(serializers.Serializer):
    teacher_id = serializers.IntegerField()


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=dist_models.DocumentDistribution.Status.choices)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, allow_null=True)
