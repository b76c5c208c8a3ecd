from django.shortcuts import get_object_or_404
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from notifications.models import Notification
from notifications.serializers import NotificationSerializer
from notifications.services import dispatcher


class NotificationListView(APIView):
    permission_classes = (IsAuthenticated,)

    def get(self, request, *args, **kwargs):
        qs = Notification.objects.filter(recipient=request.user).select_related('sender')
        if request.query_params.get('unread') in ('1', 'true'):
            qs = qs.filter(is_read=False)
        unread_count = Notification.objects.filter(recipient=request.user, is_read=False).count()
        return Response({
            'unread_count': unread_count,
            'results': NotificationSerializer(qs[:100], many=True).data,
        })


class NotificationReadView(APIView):
    permission_classes = (IsAuthenticated,)

    def post(self, request, id: int, *args, **kwargs):
        notification = get_object_or_404(Notification, pk=id, recipient=request.user)
        dispatcher.mark_read(notification)
        return Response(NotificationSerializer(notification).data)


class NotificationReadAllView(APIView):
    permission_classes = (IsAuthenticated,)

    def post(self, request, *args, **kwargs):
        updated = dispatcher.mark_all_read(request.user)
        return Response({'updated': updated})
