import logging

from django.conf import settings
from django.contrib.auth.models import User
from django.utils.decorators import method_decorator
from django.views.decorators.cache import never_cache
from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from core import media
from core.errors import NotFound, PermissionDenied, ValidationError
from core.pagination import page_params, paginate
from core.responses import success
from Profile import graph
from user.authentication import CookieJWTAuthentication

from . import services
from .presence import push_from_sync
from .serializers import ConversationSerializer, MessageSerializer

logger = logging.getLogger(__name__)


class ChatBaseView(APIView):
    authentication_classes = [CookieJWTAuthentication]
    permission_classes = [IsAuthenticated]


def _announce_read(conversation, reader, message_ids):
    if message_ids:
        for user_id in services.participant_ids(conversation):
            if user_id != reader.pk:
                push_from_sync(user_id, "messagesRead", {"conversationId": conversation.pk, "messageIds": message_ids})
    push_from_sync(reader.pk, "unreadCountUpdated", {"conversationId": conversation.pk, "unreadCount": 0})


@method_decorator(never_cache, name="dispatch")
class ConversationsView(ChatBaseView):
    def get(self, request):
        conversations = services.list_conversations(request.user)
        return success(ConversationSerializer(conversations, many=True).data)


@method_decorator(never_cache, name="dispatch")
class ConversationWithView(ChatBaseView):
    def post(self, request, user_id):
        other = User.objects.filter(pk=user_id).first()
        if not other:
            raise NotFound("User not found")
        if other.pk != request.user.pk and graph.is_blocked_either_way(request.user.pk, other.pk):
            raise PermissionDenied("User is blocked")
        conversation = services.get_or_create_conversation(request.user, other)
        unread = services.unread_count_of(conversation, request.user.pk)
        return success(ConversationSerializer(conversation, context={"unread_count": unread}).data)


@method_decorator(never_cache, name="dispatch")
class ConversationDetailView(ChatBaseView):
    def delete(self, request, conversation_id):
        others = services.delete_conversation(conversation_id, request.user)
        for user_id in others:
            push_from_sync(user_id, "conversationDeleted", {"conversationId": conversation_id})
        return success(message="Conversation deleted successfully")


@method_decorator(never_cache, name="dispatch")
class MessagesView(ChatBaseView):
    parser_classes = (JSONParser, FormParser, MultiPartParser)

    def get(self, request, conversation_id):
        page, limit = page_params(request, default_limit=50)
        conversation = services.get_conversation_for(conversation_id, request.user)
        messages, read_ids = services.list_messages(conversation, request.user)
        rows, pagination = paginate(messages, page, limit)
        _announce_read(conversation, request.user, read_ids)
        return success(MessageSerializer(rows, many=True).data, pagination=pagination)

    def post(self, request, conversation_id):
        conversation = services.get_conversation_for(conversation_id, request.user)
        others = [uid for uid in services.participant_ids(conversation) if uid != request.user.pk]
        receiver = User.objects.get(pk=others[0]) if others else request.user

        message, unread = services.send_message(
            request.user, receiver,
            content=request.data.get("content"),
            media=request.data.get("media"),
            conversation_id=conversation.pk,
        )
        payload = dict(MessageSerializer(message).data)

        delivered = push_from_sync(receiver.pk, "receiveMessage", {"message": payload, "conversationId": conversation.pk})
        if receiver.pk != request.user.pk:
            push_from_sync(receiver.pk, "unreadCountUpdated", {"conversationId": conversation.pk, "unreadCount": unread})
            if delivered and services.mark_delivered(message.pk):
                payload["deliveryStatus"] = "delivered"
        push_from_sync(request.user.pk, "messageSent", payload)
        return success(payload, status=status.HTTP_201_CREATED)


@method_decorator(never_cache, name="dispatch")
class MarkReadView(ChatBaseView):
    def patch(self, request, conversation_id):
        conversation = services.get_conversation_for(conversation_id, request.user)
        read_ids = services.mark_read(conversation, request.user)
        _announce_read(conversation, request.user, read_ids)
        return success({"messageIds": read_ids}, message="Messages marked as read")


@method_decorator(never_cache, name="dispatch")
class MessageDeleteView(ChatBaseView):
    def delete(self, request, message_id):
        conversation, participant_ids = services.delete_message(message_id, request.user)
        for user_id in participant_ids:
            push_from_sync(user_id, "messageDeleted", {"messageId": message_id, "conversationId": conversation.pk})
        return success(message="Message deleted successfully")


@method_decorator(never_cache, name="dispatch")
class MessageMediaView(ChatBaseView):
    parser_classes = (MultiPartParser, FormParser)

    def post(self, request):
        files = request.FILES.getlist("media")
        if not files:
            raise ValidationError("No images provided")
        if len(files) > settings.CHIRP_MAX_MESSAGE_MEDIA:
            raise ValidationError(f"Maximum {settings.CHIRP_MAX_MESSAGE_MEDIA} images allowed per message")
        uploaded = media.upload_many(files, "chat_images", allowed=("image",))
        logger.info(f"[MessageMediaView] {request.user.username} uploaded {len(uploaded)} images")
        return success(uploaded)
