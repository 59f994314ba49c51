from django.urls import path
from .views import (
    ConversationDetailView, ConversationsView, ConversationWithView, MarkReadView, MessageDeleteView,
    MessageMediaView, MessagesView,
)

urlpatterns = [
    path('conversations/', ConversationsView.as_view(), name='conversations'),
    path('conversations/with/<int:user_id>/', ConversationWithView.as_view(), name='conversation_with'),
    path('conversations/<int:conversation_id>/', ConversationDetailView.as_view(), name='conversation_detail'),
    path('conversations/<int:conversation_id>/messages/', MessagesView.as_view(), name='conversation_messages'),
    path('conversations/<int:conversation_id>/read/', MarkReadView.as_view(), name='conversation_read'),
    path('messages/<int:message_id>/', MessageDeleteView.as_view(), name='message_delete'),
    path('media/', MessageMediaView.as_view(), name='message_media'),
]
