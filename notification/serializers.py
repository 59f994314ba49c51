from rest_framework import serializers

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    sender = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Notification
        fields = ['id', 'type', 'message', 'sender', 'post', 'read', 'createdAt']

    def get_sender(self, obj):
        if obj.sender_id is None:
            return None
        prof = getattr(obj.sender, 'profile', None)
        return {
            "id": obj.sender_id,
            "username": obj.sender.username,
            "avatar": getattr(prof, 'avatar', None),
        }
