from rest_framework import status
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import AuthorizationError
from core.identity import identity_for
from distributions.serializers import (
    AddFilesSerializer,
    DistributionCreateSerializer,
    DistributionDetailSerializer,
    DistributionFileSerializer,
    DistributionListSerializer,
    DistributionOwnerSerializer,
    DistributionUpdateSerializer,
    ShareSerializer,
    StatusUpdateSerializer,
)
from distributions.services import access_tracker, permission_evaluator
from distributions.services.distribution_store import DistributionStore
from notifications.services.dispatcher import NotificationDispatcher

LIST_FILTERS = ('category', 'course_code', 'department', 'status', 'priority', 'search', 'sort_by', 'sort_order')


class DistributionPagination(PageNumberPagination):
    page_size_query_param = 'limit'
    max_page_size = 100


def get_store() -> DistributionStore:
    return DistributionStore(dispatcher=NotificationDispatcher())


def _client_info(request):
    return request.META.get('REMOTE_ADDR'), request.META.get('HTTP_USER_AGENT', '')


def _detail_serializer(distribution, identity):
    if distribution.module_leader_id == identity.id:
        return DistributionOwnerSerializer(distribution)
    return DistributionDetailSerializer(distribution)


class DistributionListCreateView(APIView):
    permission_classes = (IsAuthenticated,)

    def get(self, request, *args, **kwargs):
        filters = {k: request.query_params.get(k) for k in LIST_FILTERS if request.query_params.get(k)}
        results = get_store().list_for(identity_for(request.user), filters)
        paginator = DistributionPagination()
        page = paginator.paginate_queryset(results, request, view=self)
        return paginator.get_paginated_response(DistributionListSerializer(page, many=True).data)

    def post(self, request, *args, **kwargs):
        serializer = DistributionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        store = get_store()
        distribution = store.create(identity_for(request.user), serializer.validated_data)
        distribution = store.get(distribution.distribution_id)
        return Response(DistributionOwnerSerializer(distribution).data, status=status.HTTP_201_CREATED)


class DistributionDetailView(APIView):
    permission_classes = (IsAuthenticated,)

    def get(self, request, distribution_id: str, *args, **kwargs):
        identity = identity_for(request.user)
        store = get_store()
        distribution = store.get(distribution_id)
        if permission_evaluator.evaluate_access(distribution, identity) is not permission_evaluator.AccessDecision.ALLOW:
            raise AuthorizationError('You do not have access to this distribution')

        ip_address, user_agent = _client_info(request)
        access_tracker.track_access(distribution_id, identity.id, 'view', ip_address, user_agent)
        distribution = store.get(distribution_id)
        return Response(_detail_serializer(distribution, identity).data)

    def patch(self, request, distribution_id: str, *args, **kwargs):
        serializer = DistributionUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        identity = identity_for(request.user)
        store = get_store()
        store.update(distribution_id, identity, serializer.validated_data)
        return Response(DistributionOwnerSerializer(store.get(distribution_id)).data)

    def delete(self, request, distribution_id: str, *args, **kwargs):
        get_store().archive(distribution_id, identity_for(request.user))
        return Response({'detail': 'Document distribution archived'})


class DistributionFilesView(APIView):
    permission_classes = (IsAuthenticated,)

    def post(self, request, distribution_id: str, *args, **kwargs):
        serializer = AddFilesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        files = get_store().add_files(distribution_id, identity_for(request.user), serializer.validated_data['files'])
        return Response(DistributionFileSerializer(files, many=True).data, status=status.HTTP_201_CREATED)


class DistributionShareView(APIView):
    permission_classes = (IsAuthenticated,)

    def post(self, request, distribution_id: str, *args, **kwargs):
        serializer = ShareSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        added = get_store().share_with_teacher(distribution_id, serializer.validated_data['teacher_id'], identity_for(request.user))
        return Response({'shared': added})


class DistributionStatusView(APIView):
    permission_classes = (IsAuthenticated,)

    def patch(self, request, distribution_id: str, *args, **kwargs):
        serializer = StatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        distribution = get_store().update_status(
            distribution_id,
            data['status'],
            identity_for(request.user),
            notes=data.get('notes'),
            reason=data.get('reason'),
        )
        return Response({
            'distribution_id': distribution.distribution_id,
            'status': distribution.status,
            'distributed_at': distribution.distributed_at,
            'archived_at': distribution.archived_at,
            'archive_reason': distribution.archive_reason,
            'version': distribution.version,
        })


class DistributionDownloadView(APIView):
    permission_classes = (IsAuthenticated,)

    def post(self, request, distribution_id: str, *args, **kwargs):
        identity = identity_for(request.user)
        distribution = get_store().get(distribution_id)
        policy = permission_evaluator.policy_for(distribution)
        if not permission_evaluator.can_download(policy, identity):
            raise AuthorizationError('You are not allowed to download this distribution')

        ip_address, user_agent = _client_info(request)
        access_tracker.track_access(distribution_id, identity.id, 'download', ip_address, user_agent)
        return Response({
            'distribution_id': distribution.distribution_id,
            'files': DistributionFileSerializer(distribution.files.all(), many=True).data,
        })


class DistributionAnalyticsView(APIView):
    permission_classes = (IsAuthenticated,)

    def get(self, request, distribution_id: str, *args, **kwargs):
        return Response(get_store().analytics(distribution_id, identity_for(request.user)))
