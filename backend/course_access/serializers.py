from rest_framework import serializers

from academics.models import Course, Semester
from accounts.serializers import UserSummarySerializer
from course_access import models as ca_models


class CourseSummarySerializer(serializers.ModelSerializer):
    department = serializers.SerializerMethodField()

    class Meta:
        model = Course
        fields = ('id', 'code', 'name', 'credit_hours', 'department')
        read_only_fields = fields

    def get_department(self, obj):
        dept = obj.department
        return {'id': dept.id, 'code': dept.code, 'name': dept.name} if dept else None


class AccessRequestCreateSerializer(serializers.Serializer):
    course_id = serializers.IntegerField()
    module_leader_id = serializers.IntegerField(required=False, allow_null=True)
    batch = serializers.IntegerField(min_value=1)
    semester = serializers.ChoiceField(choices=Semester.choices)
    section = serializers.CharField(max_length=ca_models.SECTION_MAX_LENGTH)
    message = serializers.CharField(min_length=ca_models.MESSAGE_MIN_LENGTH, max_length=ca_models.MESSAGE_MAX_LENGTH)


class AccessRequestRespondSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=(
        ca_models.AccessRequest.Status.APPROVED,
        ca_models.AccessRequest.Status.REJECTED,
    ))
    response_message = serializers.CharField(
        max_length=ca_models.MESSAGE_MAX_LENGTH, required=False, allow_blank=True, allow_null=True
    )
    selected_documents = serializers.ListField(
        child=serializers.CharField(max_length=40), required=False, default=list
    )


class AccessRequestSerializer(serializers.ModelSerializer):
    course = CourseSummarySerializer(read_only=True)
    teacher = UserSummarySerializer(read_only=True)
    module_leader = UserSummarySerializer(read_only=True)
    responded_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = ca_models.AccessRequest
        fields = (
            'id', 'course', 'teacher', 'module_leader', 'batch', 'semester', 'section',
            'message', 'status', 'request_date', 'response_date', 'response_message', 'responded_by',
        )
        read_only_fields = fields


class CourseAccessGrantSerializer(serializers.ModelSerializer):
    course = CourseSummarySerializer(read_only=True)
    module_leader = UserSummarySerializer(read_only=True)
    sections = serializers.SerializerMethodField()

    class Meta:
        model = ca_models.CourseAccessGrant
        fields = ('id', 'course', 'semester', 'year', 'batch', 'sections', 'module_leader', 'status')
        read_only_fields = fields

    def get_sections(self, obj):
        return obj.sections
