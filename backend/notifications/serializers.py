from rest_framework import serializers

from notifications.models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    sender = serializers.SerializerMethodField()

    class Meta:
        model = Notification
        fields = ('id', 'type', 'title', 'message', 'data', 'sender', 'is_read', 'read_at', 'created_at')
        read_only_fields = fields

    def get_sender(self, obj):
        if not obj.sender_id:
            return None
        return {'id': obj.sender_id, 'name': obj.sender.display_name}
