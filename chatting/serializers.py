from rest_framework import serializers

from .models import Conversation, Message


def _user_brief(user):
    prof = getattr(user, 'profile', None)
    return {
        "id": user.pk,
        "username": user.username,
        "fullName": getattr(prof, 'full_name', ""),
        "avatar": getattr(prof, 'avatar', None),
        "isOnline": getattr(prof, 'is_online', False),
        "lastActive": serializers.DateTimeField().to_representation(prof.last_active) if prof else None,
        "premium": getattr(prof, 'is_premium', False),
    }


class MessageSerializer(serializers.ModelSerializer):
    conversationId = serializers.IntegerField(source='conversation_id', read_only=True)
    sender = serializers.SerializerMethodField()
    readBy = serializers.SerializerMethodField()
    deliveryStatus = serializers.CharField(source='delivery_status', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Message
        fields = ['id', 'conversationId', 'sender', 'content', 'media', 'readBy', 'deliveryStatus', 'createdAt']

    def get_sender(self, obj):
        prof = getattr(obj.sender, 'profile', None)
        return {"id": obj.sender_id, "username": obj.sender.username, "avatar": getattr(prof, 'avatar', None)}

    def get_readBy(self, obj):
        # Uses the prefetch cache when the queryset prefetched read_by
        return [user.pk for user in obj.read_by.all()]


class ConversationSerializer(serializers.ModelSerializer):
    participants = serializers.SerializerMethodField()
    lastMessage = serializers.SerializerMethodField()
    currentUserUnreadCount = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Conversation
        fields = ['id', 'participants', 'lastMessage', 'currentUserUnreadCount', 'createdAt', 'updatedAt']

    def get_participants(self, obj):
        return [_user_brief(user) for user in obj.participants.all()]

    def get_lastMessage(self, obj):
        message = obj.last_message
        if message is None:
            return None
        return {
            "id": message.pk,
            "senderId": message.sender_id,
            "content": message.content,
            "media": message.media,
            "deliveryStatus": message.delivery_status,
            "createdAt": serializers.DateTimeField().to_representation(message.created_at),
        }

    def get_currentUserUnreadCount(self, obj):
        count = getattr(obj, 'current_user_unread_count', None)
        if count is None:
            count = self.context.get('unread_count', 0)
        return count or 0
