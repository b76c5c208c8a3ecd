from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import AuthorizationError
from core.identity import Role, identity_for
from course_access.serializers import (
    AccessRequestCreateSerializer,
    AccessRequestRespondSerializer,
    AccessRequestSerializer,
    CourseAccessGrantSerializer,
)
from course_access.services import grant_store
from course_access.services.access_requests import AccessRequestManager
from distributions.services.distribution_store import DistributionStore
from notifications.services.dispatcher import NotificationDispatcher


def get_manager() -> AccessRequestManager:
    dispatcher = NotificationDispatcher()
    return AccessRequestManager(dispatcher=dispatcher, distribution_store=DistributionStore(dispatcher=dispatcher))


def _require_module_leader(identity):
    if identity.role != Role.MODULE_LEADER:
        raise AuthorizationError('Only module leaders can view course access requests')


class AccessRequestsView(APIView):
    permission_classes = (IsAuthenticated,)

    def get(self, request, *args, **kwargs):
        identity = identity_for(request.user)
        _require_module_leader(identity)
        qs = get_manager().list_requests_for_module_leader(identity, status=request.query_params.get('status'))
        return Response(AccessRequestSerializer(qs, many=True).data)

    def post(self, request, *args, **kwargs):
        serializer = AccessRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        access_request = get_manager().create_request(
            data['course_id'],
            identity_for(request.user),
            batch=data['batch'],
            semester=data['semester'],
            section=data['section'],
            message=data['message'],
            module_leader_id=data.get('module_leader_id'),
        )
        return Response(AccessRequestSerializer(access_request).data, status=status.HTTP_201_CREATED)


class MyAccessRequestsView(APIView):
    permission_classes = (IsAuthenticated,)

    def get(self, request, *args, **kwargs):
        qs = get_manager().list_my_requests(identity_for(request.user))
        return Response(AccessRequestSerializer(qs, many=True).data)


class PendingAccessRequestsView(APIView):
    permission_classes = (IsAuthenticated,)

    def get(self, request, *args, **kwargs):
        identity = identity_for(request.user)
        _require_module_leader(identity)
        qs = get_manager().list_pending_requests(identity)
        return Response(AccessRequestSerializer(qs, many=True).data)


class AccessRequestRespondView(APIView):
    permission_classes = (IsAuthenticated,)

    def patch(self, request, id: int, *args, **kwargs):
        serializer = AccessRequestRespondSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        access_request = get_manager().respond_to_request(
            id,
            identity_for(request.user),
            data['status'],
            response_message=data.get('response_message'),
            selected_document_ids=data.get('selected_documents') or [],
        )
        return Response(AccessRequestSerializer(access_request).data)


class MyCoursesView(APIView):
    permission_classes = (IsAuthenticated,)

    def get(self, request, *args, **kwargs):
        grants = grant_store.list_accessible_courses(request.user)
        return Response(CourseAccessGrantSerializer(grants, many=True).data)
