import logging

from chatting.presence import push_from_sync

from .models import Notification
from .serializers import NotificationSerializer

logger = logging.getLogger(__name__)


def create_notification(recipient, type, message, sender=None, post=None):
    """Persist a notification and push it to the recipient's live connections."""
    if sender is not None and sender.pk == recipient.pk:
        return None
    notification = Notification.objects.create(
        recipient=recipient, sender=sender, type=type, message=message, post=post
    )
    data = NotificationSerializer(notification).data
    delivered = push_from_sync(recipient.pk, "newNotification", data)
    logger.info(f"[NOTIFY] {type} for user {recipient.pk} ({delivered} live connections)")
    return notification


def unread_count(user):
    return Notification.objects.filter(recipient=user, read=False).count()
