from django.contrib import admin

from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('recipient', 'sender', 'type', 'read', 'created_at')
    list_filter = ('type', 'read')
    search_fields = ('recipient__username', 'sender__username', 'message')
    list_select_related = ('recipient', 'sender')
