import logging

from django.utils.decorators import method_decorator
from django.views.decorators.cache import never_cache
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from core.errors import NotFound
from core.pagination import page_params, paginate
from core.responses import success
from user.authentication import CookieJWTAuthentication

from .models import Notification
from .serializers import NotificationSerializer
from .services import unread_count

logger = logging.getLogger(__name__)


class NotificationBaseView(APIView):
    authentication_classes = [CookieJWTAuthentication]
    permission_classes = [IsAuthenticated]

    def get_notification(self, request, notification_id):
        notification = Notification.objects.filter(pk=notification_id, recipient=request.user).first()
        if not notification:
            raise NotFound("Notification not found")
        return notification


@method_decorator(never_cache, name="dispatch")
class NotificationsView(NotificationBaseView):
    def get(self, request):
        page, limit = page_params(request, default_limit=20)
        queryset = Notification.objects.filter(recipient=request.user).select_related('sender__profile')
        rows, pagination = paginate(queryset, page, limit)
        return success(NotificationSerializer(rows, many=True).data, pagination=pagination)

    def delete(self, request):
        deleted, _ = Notification.objects.filter(recipient=request.user).delete()
        logger.info(f"[NotificationsView] {request.user.username} cleared {deleted} notifications")
        return success(message="All notifications deleted")


@method_decorator(never_cache, name="dispatch")
class UnreadCountView(NotificationBaseView):
    def get(self, request):
        return success({"unreadCount": unread_count(request.user)})


@method_decorator(never_cache, name="dispatch")
class MarkAllReadView(NotificationBaseView):
    def patch(self, request):
        updated = Notification.objects.filter(recipient=request.user, read=False).update(read=True)
        return success({"updated": updated}, message="All notifications marked as read")


@method_decorator(never_cache, name="dispatch")
class MarkReadView(NotificationBaseView):
    def patch(self, request, notification_id):
        notification = self.get_notification(request, notification_id)
        if not notification.read:
            notification.read = True
            notification.save(update_fields=['read'])
        return success(NotificationSerializer(notification).data, message="Notification marked as read")


@method_decorator(never_cache, name="dispatch")
class NotificationDetailView(NotificationBaseView):
    def delete(self, request, notification_id):
        self.get_notification(request, notification_id).delete()
        return success(message="Notification deleted")
