import json
import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.contrib.auth.models import User
from django.core.serializers.json import DjangoJSONEncoder

from core.errors import AppError, NotFound, PermissionDenied, ValidationError
from user.authentication import get_user_from_token
from user.utils import identity_payload

from . import services
from .models import Conversation
from .presence import SOCKET_EVENT
from .serializers import MessageSerializer

logger = logging.getLogger(__name__)

GENERIC_FAILURES = {
    "sendMessage": "Failed to send message",
    "deleteMessage": "Failed to delete message",
    "markMessagesAsRead": "Failed to mark messages as read",
    "conversationDeleted": "Failed to delete conversation",
    "callUser": "Failed to start call",
}


def _user_id(value, field="receiverId"):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} is required")


class SocketConsumer(AsyncWebsocketConsumer):
    """
    Shared handshake and framing for the realtime endpoints.

    Frames are JSON {"type": <event>, "data": {...}} in both directions.
    Pushes from other connections arrive as channel-layer messages of type
    "socket.event" and are forwarded to the client unchanged.
    """
    handlers = {}
    presence = None

    def __init__(self, *args, presence=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.presence = presence
        self.user = None

    async def authenticate(self):
        query_params = parse_qs(self.scope.get("query_string", b"").decode())
        token_key = query_params.get("token", [None])[0]
        if not token_key:
            logger.warning("[WS CONNECT] Missing token")
            return None
        user = await get_user_from_token(token_key)
        if not user:
            logger.warning("[WS CONNECT] Invalid token")
        return user

    async def send_event(self, event, data=None):
        await self.send(text_data=json.dumps({"type": event, "data": data}, cls=DjangoJSONEncoder))

    async def send_error(self, message):
        await self.send_event("error", {"message": message})

    async def relay(self, handle, event, data=None):
        await self.channel_layer.send(handle, {"type": SOCKET_EVENT, "event": event, "data": data})

    # Channel-layer handler for "socket.event"
    async def socket_event(self, event):
        await self.send_event(event["event"], event.get("data"))

    async def receive(self, text_data=None, bytes_data=None):
        try:
            frame = json.loads(text_data or "")
        except json.JSONDecodeError:
            await self.send_error("Invalid message format")
            return
        if not isinstance(frame, dict):
            await self.send_error("Invalid message format")
            return

        event_type = frame.get("type")
        data = frame.get("data") or {}
        handler_name = self.handlers.get(event_type)
        if handler_name is None:
            logger.warning(f"[WS RECEIVE] Invalid event type: {event_type}")
            await self.send_error("Invalid event type")
            return

        try:
            await getattr(self, handler_name)(data)
        except AppError as e:
            logger.info(f"[WS RECEIVE] {event_type} rejected for {self.user.pk}: {e.detail}")
            await self.send_error(str(e.detail))
        except Exception as e:
            logger.error(f"[WS RECEIVE] {event_type} failed: {e}", exc_info=True)
            await self.send_error(GENERIC_FAILURES.get(event_type, "Something went wrong"))


class ChatConsumer(SocketConsumer):
    handlers = {
        "addUser": "handle_add_user",
        "userOffline": "handle_user_offline",
        "ping": "handle_ping",
        "sendMessage": "handle_send_message",
        "deleteMessage": "handle_delete_message",
        "typing": "handle_typing",
        "stopTyping": "handle_stop_typing",
        "markMessagesAsRead": "handle_mark_read",
        "conversationDeleted": "handle_conversation_deleted",
        "callUser": "handle_call_user",
        "answerCall": "handle_answer_call",
        "rejectCall": "handle_reject_call",
        "hangUp": "handle_hang_up",
    }

    async def connect(self):
        self.user = await self.authenticate()
        if not self.user:
            await self.close()
            return
        await self.accept()
        await self.presence.register_connection(self.user.pk, self.channel_name)
        await self.presence.broadcast_online_user_list()
        logger.info(f"[WS CONNECT] {self.user.username} connected ({self.channel_name})")

    async def disconnect(self, close_code):
        if not self.user:
            return
        went_offline = await self.presence.deregister_connection(self.user.pk, self.channel_name)
        if went_offline:
            await self.presence.broadcast_online_user_list()
        logger.info(f"[WS DISCONNECT] {self.user.username} left ({close_code})")

    # ---------------- Presence ----------------
    async def handle_add_user(self, data):
        came_online = await self.presence.register_connection(self.user.pk, self.channel_name)
        if came_online:
            await self.presence.broadcast_online_user_list()
        else:
            await self.send_event("getOnlineUsers", self.presence.online_user_ids())

    async def handle_user_offline(self, data):
        if await self.presence.mark_offline(self.user.pk):
            await self.presence.broadcast_online_user_list()

    async def handle_ping(self, data):
        await self.presence.touch(self.user.pk)

    # ---------------- Messaging ----------------
    async def handle_send_message(self, data):
        receiver_id = _user_id(data.get("receiverId"))
        message = data.get("message") or {}
        if isinstance(message, str):
            message = {"content": message}
        content = message.get("content", data.get("content"))
        media = message.get("media", data.get("media"))

        payload, unread = await self.save_message(receiver_id, content, media, data.get("conversationId"))
        conversation_id = payload["conversationId"]

        delivered = await self.presence.push(
            receiver_id, "receiveMessage", {"message": payload, "conversationId": conversation_id}
        )
        if receiver_id != self.user.pk:
            await self.presence.push(
                receiver_id, "unreadCountUpdated", {"conversationId": conversation_id, "unreadCount": unread}
            )
            if delivered:
                await self.mark_delivered(payload["id"])
                payload["deliveryStatus"] = "delivered"
        await self.send_event("messageSent", {**payload, "tempId": data.get("tempId")})

    async def handle_delete_message(self, data):
        message_id = data.get("messageId")
        if not message_id:
            raise ValidationError("messageId is required")
        conversation_id, participant_ids = await self.remove_message(message_id)
        for user_id in participant_ids:
            await self.presence.push(
                user_id, "messageDeleted", {"messageId": message_id, "conversationId": conversation_id}
            )

    async def handle_typing(self, data):
        await self._forward_typing("typing", data)

    async def handle_stop_typing(self, data):
        await self._forward_typing("stopTyping", data)

    async def _forward_typing(self, event, data):
        receiver_id = _user_id(data.get("receiverId"))
        await self.presence.push(
            receiver_id, event, {"senderId": self.user.pk, "conversationId": data.get("conversationId")}
        )

    async def handle_mark_read(self, data):
        conversation_id = data.get("conversationId")
        if not conversation_id:
            raise ValidationError("conversationId is required")
        message_ids, others = await self.read_conversation(conversation_id)
        if message_ids:
            for user_id in others:
                await self.presence.push(
                    user_id, "messagesRead", {"conversationId": conversation_id, "messageIds": message_ids}
                )
        await self.presence.push(
            self.user.pk, "unreadCountUpdated", {"conversationId": conversation_id, "unreadCount": 0}
        )

    async def handle_conversation_deleted(self, data):
        conversation_id = data.get("conversationId")
        if not conversation_id:
            raise ValidationError("conversationId is required")
        others = await self.remove_conversation(conversation_id)
        for user_id in others:
            await self.presence.push(user_id, "conversationDeleted", {"conversationId": conversation_id})

    # ---------------- Calls ----------------
    async def handle_call_user(self, data):
        receiver_id = _user_id(data.get("receiverId"))
        allowed, reason = await database_sync_to_async(services.can_video_call)(self.user.pk, receiver_id)
        if not allowed:
            raise PermissionDenied(reason)
        if not self.presence.is_online(receiver_id):
            await self.send_event("userNotOnline", {"receiverId": receiver_id})
            return
        await self.presence.push(receiver_id, "incomingCall", {
            "from": identity_payload(self.user),
            "roomId": data.get("roomId"),
            "callType": data.get("callType", "video"),
            "signal": data.get("signal"),
        })
        logger.info(f"[CALL] {self.user.pk} calling {receiver_id}")

    async def handle_answer_call(self, data):
        await self._forward_call("callAccepted", data)

    async def handle_reject_call(self, data):
        await self._forward_call("callRejected", data)

    async def handle_hang_up(self, data):
        await self._forward_call("callEnded", data)

    async def _forward_call(self, event, data):
        target_id = _user_id(data.get("to"), field="to")
        forwarded = {k: v for k, v in data.items() if k != "to"}
        forwarded["from"] = self.user.pk
        await self.presence.push(target_id, event, forwarded)

    # ---------------- DB operations ----------------
    @database_sync_to_async
    def save_message(self, receiver_id, content, media, conversation_id):
        receiver = User.objects.select_related('profile').filter(pk=receiver_id).first()
        if not receiver:
            raise NotFound("User not found")
        message, unread = services.send_message(
            self.user, receiver, content=content, media=media, conversation_id=conversation_id
        )
        return dict(MessageSerializer(message).data), unread

    @database_sync_to_async
    def mark_delivered(self, message_id):
        return services.mark_delivered(message_id)

    @database_sync_to_async
    def remove_message(self, message_id):
        conversation, participant_ids = services.delete_message(message_id, self.user)
        return conversation.pk, participant_ids

    @database_sync_to_async
    def read_conversation(self, conversation_id):
        conversation = services.get_conversation_for(conversation_id, self.user)
        message_ids = services.mark_read(conversation, self.user)
        others = [uid for uid in services.participant_ids(conversation) if uid != self.user.pk]
        return message_ids, others

    @database_sync_to_async
    def remove_conversation(self, conversation_id):
        # Already deleted over HTTP: nothing left to announce
        if not Conversation.objects.filter(pk=conversation_id).exists():
            return []
        return services.delete_conversation(conversation_id, self.user)


class WebRTCConsumer(SocketConsumer):
    """Relays call signaling between the members of a room."""
    handlers = {
        "join": "handle_join",
        "offer": "handle_offer",
        "answer": "handle_answer",
        "ice-candidate": "handle_ice_candidate",
        "screen-start": "handle_screen_start",
        "screen-stop": "handle_screen_stop",
        "local-status": "handle_local_status",
        "leave": "handle_leave",
    }
    rooms = None

    def __init__(self, *args, rooms=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.rooms = rooms

    async def connect(self):
        self.user = await self.authenticate()
        if not self.user:
            await self.close()
            return
        await self.accept()
        logger.info(f"[WEBRTC] {self.user.username} connected")

    async def disconnect(self, close_code):
        if not self.user:
            return
        for room in self.rooms.rooms_of(self.channel_name):
            for peer in self.rooms.leave(room, self.channel_name):
                await self.relay(peer, "peer-left")
                await self.relay(peer, "peer-network-lost", {"reason": "disconnecting"})
        logger.info(f"[WEBRTC] {self.user.username} disconnected ({close_code})")

    def _room(self, data):
        room = data.get("roomId")
        if not room:
            raise ValidationError("roomId is required")
        return str(room)

    async def _to_peers(self, room, event, data=None):
        for peer in self.rooms.peers(room, self.channel_name):
            await self.relay(peer, event, data)

    async def handle_join(self, data):
        room = self._room(data)
        others = self.rooms.join(room, self.channel_name)
        logger.info(f"[WEBRTC] {self.user.username} joined {room} ({len(others) + 1} members)")
        if others:
            for peer in others:
                await self.relay(peer, "ready")
            await self.send_event("ready")

    async def handle_offer(self, data):
        await self._to_peers(self._room(data), "offer", {"description": data.get("description")})

    async def handle_answer(self, data):
        await self._to_peers(self._room(data), "answer", {"description": data.get("description")})

    async def handle_ice_candidate(self, data):
        await self._to_peers(self._room(data), "ice-candidate", {"candidate": data.get("candidate")})

    async def handle_screen_start(self, data):
        await self._to_peers(self._room(data), "peer-screen-started")

    async def handle_screen_stop(self, data):
        await self._to_peers(self._room(data), "peer-screen-stopped")

    async def handle_local_status(self, data):
        room = self._room(data)
        muted, camera_off = data.get("muted"), data.get("cameraOff")
        await self._to_peers(room, "peer-muted", {"muted": muted})
        await self._to_peers(room, "peer-camera-off", {"cameraOff": camera_off})
        await self._to_peers(room, "peer-status", {"muted": muted, "cameraOff": camera_off})

    async def handle_leave(self, data):
        room = self._room(data)
        for peer in self.rooms.leave(room, self.channel_name):
            await self.relay(peer, "peer-left")
