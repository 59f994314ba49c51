"""
Messaging engine: conversations, messages, read receipts and unread counters.

Everything here is synchronous ORM code. Socket consumers call it through
database_sync_to_async; HTTP views call it directly. Delivery to live
connections is the caller's job (see chatting.presence).
"""
import logging

from django.conf import settings
from django.contrib.auth.models import User
from django.db import IntegrityError, transaction
from django.db.models import F, OuterRef, Subquery

from core.errors import NotFound, PermissionDenied, ValidationError
from Profile import graph
from Profile.models import MessagePreference, profile

from .models import Conversation, DeliveryStatus, Message, Participant, participant_key

logger = logging.getLogger(__name__)

ReadReceipt = Message.read_by.through


# ---------------- Permissions ----------------
def check_interaction(sender_id, receiver_id, require_mutual_follow=False):
    """Return (allowed, reason). Blocks in either direction always deny."""
    receiver_profile = profile.objects.filter(user_obj_id=receiver_id).only('message_preference').first()
    if receiver_profile is None or not User.objects.filter(pk=sender_id).exists():
        return False, "User not found"
    if sender_id == receiver_id:
        return True, None
    if graph.is_blocked_either_way(sender_id, receiver_id):
        return False, "User is blocked"

    sender_follows = graph.is_following(sender_id, receiver_id)
    receiver_follows = graph.is_following(receiver_id, sender_id)

    if require_mutual_follow and not (sender_follows and receiver_follows):
        return False, "Mutual following required for video calling"

    preference = receiver_profile.message_preference
    if preference == MessagePreference.EVERYONE:
        return True, None
    if preference == MessagePreference.FOLLOWERS:
        return (True, None) if sender_follows else (False, "Only followers can message")
    if preference == MessagePreference.FOLLOWING:
        return (True, None) if receiver_follows else (False, "Only users I follow can message me")
    if preference == MessagePreference.MUTUAL_FOLLOWERS:
        if sender_follows and receiver_follows:
            return True, None
        return False, "Only mutual followers can message"
    if preference == MessagePreference.NO_ONE:
        return False, "Receiving messages is currently disabled"
    return False, "Unknown message preference"


def can_message(sender_id, receiver_id):
    return check_interaction(sender_id, receiver_id)


def can_video_call(sender_id, receiver_id):
    return check_interaction(sender_id, receiver_id, require_mutual_follow=True)


# ---------------- Conversations ----------------
def get_or_create_conversation(a, b):
    """One conversation per unordered pair; a concurrent duplicate insert re-reads the winner."""
    key = participant_key(a.pk, b.pk)
    conversation = Conversation.objects.filter(participant_key=key).first()
    if conversation:
        return conversation
    try:
        with transaction.atomic():
            conversation = Conversation.objects.create(participant_key=key)
            Participant.objects.bulk_create([
                Participant(conversation=conversation, user_id=uid) for uid in {a.pk, b.pk}
            ])
    except IntegrityError:
        conversation = Conversation.objects.get(participant_key=key)
    logger.info(f"[CONVERSATION] {key} ready")
    return conversation


def get_conversation_for(conversation_id, user, action="access"):
    conversation = Conversation.objects.filter(pk=conversation_id).first()
    if conversation is None:
        raise NotFound("Conversation not found")
    if not Participant.objects.filter(conversation=conversation, user=user).exists():
        raise PermissionDenied(f"Not authorized to {action} this conversation")
    return conversation


def participant_ids(conversation):
    return list(Participant.objects.filter(conversation=conversation).values_list('user_id', flat=True))


def unread_count_of(conversation, user_id):
    return (
        Participant.objects.filter(conversation=conversation, user_id=user_id)
        .values_list('unread_count', flat=True).first()
    ) or 0


def list_conversations(user):
    my_unread = Participant.objects.filter(conversation=OuterRef('pk'), user=user).values('unread_count')[:1]
    return (
        Conversation.objects
        .filter(memberships__user=user)
        .annotate(current_user_unread_count=Subquery(my_unread))
        .select_related('last_message__sender__profile')
        .prefetch_related('participants__profile')
        .order_by('-updated_at', '-id')
    )


def delete_conversation(conversation_id, user):
    """Delete a conversation and its messages. Returns the other participants' ids."""
    conversation = get_conversation_for(conversation_id, user, action="delete")
    others = [uid for uid in participant_ids(conversation) if uid != user.pk]
    conversation.delete()
    logger.info(f"[CONVERSATION] {user.username} deleted conversation {conversation_id}")
    return others


# ---------------- Messages ----------------
def validate_message(content, media):
    content = (content or "").strip()
    media = list(media or [])
    if len(media) > settings.CHIRP_MAX_MESSAGE_MEDIA:
        raise ValidationError(f"Maximum {settings.CHIRP_MAX_MESSAGE_MEDIA} images allowed per message")
    for item in media:
        if not isinstance(item, dict) or not item.get("url"):
            raise ValidationError("Each media item needs a url")
    if not content and not media:
        raise ValidationError("Message must have content or media")
    return content, [{"url": item["url"], "type": item.get("type", "image")} for item in media]


def send_message(sender, receiver, content="", media=None, conversation_id=None):
    """
    Persist a message from sender to receiver.

    Returns (message, receiver_unread_count). The permission check runs
    before anything is written.
    """
    allowed, reason = can_message(sender.pk, receiver.pk)
    if not allowed:
        raise PermissionDenied(reason)
    content, media = validate_message(content, media)

    if conversation_id is not None:
        conversation = get_conversation_for(conversation_id, sender)
        if conversation.participant_key != participant_key(sender.pk, receiver.pk):
            raise ValidationError("Receiver is not part of this conversation")
    else:
        conversation = get_or_create_conversation(sender, receiver)

    with transaction.atomic():
        message = Message.objects.create(conversation=conversation, sender=sender, content=content, media=media)
        # save() also bumps updated_at for conversation ordering
        conversation.last_message = message
        conversation.save(update_fields=['last_message', 'updated_at'])
        if sender.pk != receiver.pk:
            Participant.objects.filter(conversation=conversation, user=receiver).update(
                unread_count=F('unread_count') + 1
            )

    unread = unread_count_of(conversation, receiver.pk)
    logger.info(f"[SEND MESSAGE] {sender.pk} -> {receiver.pk} message {message.pk} (unread={unread})")
    return message, unread


def mark_delivered(message_id):
    """sent -> delivered; never moves a read message backwards."""
    return Message.objects.filter(pk=message_id, delivery_status=DeliveryStatus.SENT).update(
        delivery_status=DeliveryStatus.DELIVERED
    )


def mark_read(conversation, reader):
    """Zero the reader's counter and mark the other party's messages read. Idempotent."""
    with transaction.atomic():
        Participant.objects.filter(conversation=conversation, user=reader).update(unread_count=0)
        message_ids = list(
            Message.objects
            .filter(conversation=conversation)
            .exclude(sender=reader)
            .exclude(read_by=reader)
            .values_list('id', flat=True)
        )
        if message_ids:
            ReadReceipt.objects.bulk_create(
                [ReadReceipt(message_id=mid, user_id=reader.pk) for mid in message_ids],
                ignore_conflicts=True,
            )
            Message.objects.filter(pk__in=message_ids).update(delivery_status=DeliveryStatus.READ)
    if message_ids:
        logger.info(f"[READ] user {reader.pk} read {len(message_ids)} messages in {conversation.pk}")
    return message_ids


def list_messages(conversation, reader):
    """Messages newest first. Reading a conversation marks it read."""
    read_ids = mark_read(conversation, reader)
    messages = (
        Message.objects
        .filter(conversation=conversation)
        .select_related('sender__profile')
        .prefetch_related('read_by')
        .order_by('-created_at', '-id')
    )
    return messages, read_ids


def delete_message(message_id, user):
    """Sender-only delete. Unread counters and last_message are left as they are."""
    message = Message.objects.filter(pk=message_id).first()
    if message is None:
        raise NotFound("Message not found")
    if message.sender_id != user.pk:
        raise PermissionDenied("Not authorized to delete this message")
    conversation = message.conversation
    message.delete()
    logger.info(f"[DELETE MESSAGE] {user.pk} deleted message {message_id}")
    return conversation, participant_ids(conversation)
