from django.urls import path
from .views import MarkAllReadView, MarkReadView, NotificationDetailView, NotificationsView, UnreadCountView

urlpatterns = [
    path('', NotificationsView.as_view(), name='notifications'),
    path('unread-count/', UnreadCountView.as_view(), name='notifications_unread_count'),
    path('read-all/', MarkAllReadView.as_view(), name='notifications_read_all'),
    path('<int:notification_id>/read/', MarkReadView.as_view(), name='notification_read'),
    path('<int:notification_id>/', NotificationDetailView.as_view(), name='notification_detail'),
]
