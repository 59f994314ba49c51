import pytest
from asgiref.sync import async_to_sync
from channels.db import database_sync_to_async
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator

from chatting import services
from chatting.models import Conversation, DeliveryStatus, Message
from chatting.presence import PresenceRegistry
from chatting.routing import websocket_urlpatterns_for
from chatting.signaling import RoomRegistry
from Profile.models import profile

pytestmark = pytest.mark.django_db(transaction=True)


@pytest.fixture
def application():
    presence = PresenceRegistry()
    return URLRouter(websocket_urlpatterns_for(presence, RoomRegistry())), presence


async def receive_until(communicator, event_type, timeout=2):
    """Skip frames until one of the given type arrives."""
    while True:
        frame = await communicator.receive_json_from(timeout=timeout)
        if frame["type"] == event_type:
            return frame


async def connect(app, path, token):
    communicator = WebsocketCommunicator(app, f"{path}?token={token}")
    connected, _ = await communicator.connect()
    assert connected
    return communicator


def test_rejects_missing_token(application):
    app, _ = application

    async def scenario():
        communicator = WebsocketCommunicator(app, "/ws/chat/")
        connected, _ = await communicator.connect()
        return connected

    assert async_to_sync(scenario)() is False


def test_message_reaches_online_receiver(application, alice, bob, token_for):
    app, presence = application
    alice_token, bob_token = token_for(alice), token_for(bob)

    async def scenario():
        sender = await connect(app, "/ws/chat/", alice_token)
        receiver = await connect(app, "/ws/chat/", bob_token)
        online = await receive_until(sender, "getOnlineUsers")
        while sorted(online["data"]) != sorted([alice.pk, bob.pk]):
            online = await receive_until(sender, "getOnlineUsers")

        await sender.send_json_to({
            "type": "sendMessage",
            "data": {"receiverId": bob.pk, "message": {"content": "hello bob"}, "tempId": "t-1"},
        })
        incoming = await receive_until(receiver, "receiveMessage")
        unread = await receive_until(receiver, "unreadCountUpdated")
        sent = await receive_until(sender, "messageSent")

        await sender.disconnect()
        await receiver.disconnect()
        return incoming, unread, sent

    incoming, unread, sent = async_to_sync(scenario)()
    assert incoming["data"]["message"]["content"] == "hello bob"
    assert unread["data"]["unreadCount"] == 1
    assert sent["data"]["tempId"] == "t-1"
    assert sent["data"]["deliveryStatus"] == "delivered"
    assert Message.objects.get().delivery_status == DeliveryStatus.DELIVERED
    assert not presence.is_online(alice.pk)
    assert not profile.objects.get(user_obj=bob).is_online


def test_presence_persisted_while_connected(application, alice, token_for):
    app, presence = application
    token = token_for(alice)

    async def scenario():
        first = await connect(app, "/ws/chat/", token)
        second = await connect(app, "/ws/chat/", token)
        online_now = await database_sync_to_async(
            lambda: profile.objects.get(user_obj=alice).is_online
        )()
        await first.disconnect()
        still_online = presence.is_online(alice.pk)
        await second.disconnect()
        return online_now, still_online

    online_now, still_online = async_to_sync(scenario)()
    assert online_now is True
    assert still_online is True
    assert not presence.is_online(alice.pk)


def test_blocked_send_returns_error(application, alice, bob, block, token_for):
    app, _ = application
    block(bob, alice)
    token = token_for(alice)

    async def scenario():
        sender = await connect(app, "/ws/chat/", token)
        await sender.send_json_to({"type": "sendMessage", "data": {"receiverId": bob.pk, "message": "hi"}})
        error = await receive_until(sender, "error")
        await sender.disconnect()
        return error

    error = async_to_sync(scenario)()
    assert error["data"] == {"message": "User is blocked"}
    assert not Message.objects.exists()


def test_unknown_event_type(application, alice, token_for):
    app, _ = application
    token = token_for(alice)

    async def scenario():
        communicator = await connect(app, "/ws/chat/", token)
        await communicator.send_json_to({"type": "dance", "data": {}})
        error = await receive_until(communicator, "error")
        await communicator.disconnect()
        return error

    assert async_to_sync(scenario)()["data"] == {"message": "Invalid event type"}


def test_call_user_offline(application, alice, bob, follow, token_for):
    app, _ = application
    follow(alice, bob)
    follow(bob, alice)
    token = token_for(alice)

    async def scenario():
        caller = await connect(app, "/ws/chat/", token)
        await caller.send_json_to({"type": "callUser", "data": {"receiverId": bob.pk, "roomId": "r1"}})
        reply = await receive_until(caller, "userNotOnline")
        await caller.disconnect()
        return reply

    assert async_to_sync(scenario)()["data"] == {"receiverId": bob.pk}


def test_webrtc_room_relay(application, alice, bob, token_for):
    app, _ = application
    alice_token, bob_token = token_for(alice), token_for(bob)

    async def scenario():
        first = await connect(app, "/ws/webrtc/", alice_token)
        second = await connect(app, "/ws/webrtc/", bob_token)

        await first.send_json_to({"type": "join", "data": {"roomId": "room-1"}})
        assert await first.receive_nothing()
        await second.send_json_to({"type": "join", "data": {"roomId": "room-1"}})
        ready = [await first.receive_json_from(), await second.receive_json_from()]

        await first.send_json_to({"type": "offer", "data": {"roomId": "room-1", "description": {"sdp": "x"}}})
        offer = await second.receive_json_from()

        await second.disconnect()
        left = [await first.receive_json_from(), await first.receive_json_from()]
        await first.disconnect()
        return ready, offer, left

    ready, offer, left = async_to_sync(scenario)()
    assert [frame["type"] for frame in ready] == ["ready", "ready"]
    assert offer == {"type": "offer", "data": {"description": {"sdp": "x"}}}
    assert left == [
        {"type": "peer-left", "data": None},
        {"type": "peer-network-lost", "data": {"reason": "disconnecting"}},
    ]


def test_typing_reaches_every_receiver_connection(application, alice, bob, token_for):
    app, _ = application
    alice_token, bob_token = token_for(alice), token_for(bob)

    async def scenario():
        sender = await connect(app, "/ws/chat/", alice_token)
        phone = await connect(app, "/ws/chat/", bob_token)
        laptop = await connect(app, "/ws/chat/", bob_token)

        await sender.send_json_to({"type": "typing", "data": {"receiverId": bob.pk, "conversationId": 5}})
        typing = [await receive_until(phone, "typing"), await receive_until(laptop, "typing")]
        await sender.send_json_to({"type": "stopTyping", "data": {"receiverId": bob.pk, "conversationId": 5}})
        stopped = [await receive_until(phone, "stopTyping"), await receive_until(laptop, "stopTyping")]

        for communicator in (sender, phone, laptop):
            await communicator.disconnect()
        return typing, stopped

    typing, stopped = async_to_sync(scenario)()
    expected = {"senderId": alice.pk, "conversationId": 5}
    assert [frame["data"] for frame in typing] == [expected, expected]
    assert [frame["data"] for frame in stopped] == [expected, expected]


def test_mark_read_notifies_sender(application, alice, bob, token_for):
    app, _ = application
    message, _ = services.send_message(alice, bob, content="read me")
    conversation_id, message_id = message.conversation_id, message.pk
    alice_token, bob_token = token_for(alice), token_for(bob)

    async def scenario():
        sender = await connect(app, "/ws/chat/", alice_token)
        reader = await connect(app, "/ws/chat/", bob_token)
        await reader.send_json_to({"type": "markMessagesAsRead", "data": {"conversationId": conversation_id}})
        read = await receive_until(sender, "messagesRead")
        unread = await receive_until(reader, "unreadCountUpdated")
        await sender.disconnect()
        await reader.disconnect()
        return read, unread

    read, unread = async_to_sync(scenario)()
    assert read["data"] == {"conversationId": conversation_id, "messageIds": [message_id]}
    assert unread["data"] == {"conversationId": conversation_id, "unreadCount": 0}
    assert Message.objects.get(pk=message_id).delivery_status == DeliveryStatus.READ


def test_delete_message_reaches_both_participants(application, alice, bob, token_for):
    app, _ = application
    message, _ = services.send_message(alice, bob, content="oops")
    conversation_id, message_id = message.conversation_id, message.pk
    alice_token, bob_token = token_for(alice), token_for(bob)

    async def scenario():
        sender = await connect(app, "/ws/chat/", alice_token)
        receiver = await connect(app, "/ws/chat/", bob_token)
        await sender.send_json_to({"type": "deleteMessage", "data": {"messageId": message_id}})
        frames = [await receive_until(sender, "messageDeleted"), await receive_until(receiver, "messageDeleted")]
        await sender.disconnect()
        await receiver.disconnect()
        return frames

    frames = async_to_sync(scenario)()
    expected = {"messageId": message_id, "conversationId": conversation_id}
    assert [frame["data"] for frame in frames] == [expected, expected]
    assert not Message.objects.filter(pk=message_id).exists()


def test_conversation_deleted_reaches_other_participant(application, alice, bob, token_for):
    app, _ = application
    message, _ = services.send_message(alice, bob, content="bye")
    conversation_id = message.conversation_id
    alice_token, bob_token = token_for(alice), token_for(bob)

    async def scenario():
        sender = await connect(app, "/ws/chat/", alice_token)
        other = await connect(app, "/ws/chat/", bob_token)
        await sender.send_json_to({"type": "conversationDeleted", "data": {"conversationId": conversation_id}})
        frame = await receive_until(other, "conversationDeleted")
        await sender.disconnect()
        await other.disconnect()
        return frame

    assert async_to_sync(scenario)()["data"] == {"conversationId": conversation_id}
    assert not Conversation.objects.filter(pk=conversation_id).exists()


def test_call_flow_between_online_users(application, alice, bob, follow, token_for):
    app, _ = application
    follow(alice, bob)
    follow(bob, alice)
    alice_token, bob_token = token_for(alice), token_for(bob)

    async def scenario():
        caller = await connect(app, "/ws/chat/", alice_token)
        phone = await connect(app, "/ws/chat/", bob_token)
        laptop = await connect(app, "/ws/chat/", bob_token)

        await caller.send_json_to({"type": "callUser", "data": {
            "receiverId": bob.pk, "roomId": "r1", "callType": "audio", "signal": {"sdp": "offer"},
        }})
        incoming = [await receive_until(phone, "incomingCall"), await receive_until(laptop, "incomingCall")]

        await phone.send_json_to({"type": "answerCall", "data": {"to": alice.pk, "signal": {"sdp": "answer"}}})
        accepted = await receive_until(caller, "callAccepted")
        await laptop.send_json_to({"type": "rejectCall", "data": {"to": alice.pk}})
        rejected = await receive_until(caller, "callRejected")
        await caller.send_json_to({"type": "hangUp", "data": {"to": bob.pk}})
        ended = [await receive_until(phone, "callEnded"), await receive_until(laptop, "callEnded")]

        for communicator in (caller, phone, laptop):
            await communicator.disconnect()
        return incoming, accepted, rejected, ended

    incoming, accepted, rejected, ended = async_to_sync(scenario)()
    for frame in incoming:
        assert frame["data"]["from"]["id"] == alice.pk
        assert frame["data"]["roomId"] == "r1"
        assert frame["data"]["callType"] == "audio"
        assert frame["data"]["signal"] == {"sdp": "offer"}
    assert accepted["data"] == {"signal": {"sdp": "answer"}, "from": bob.pk}
    assert rejected["data"] == {"from": bob.pk}
    assert [frame["data"] for frame in ended] == [{"from": alice.pk}, {"from": alice.pk}]
