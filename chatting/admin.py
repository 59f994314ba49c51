from django.contrib import admin

from .models import Conversation, Message, Participant


class ParticipantInline(admin.TabularInline):
    model = Participant
    extra = 0
    raw_id_fields = ('user',)


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    list_display = ('id', 'participant_key', 'last_message', 'updated_at')
    search_fields = ('participant_key', 'participants__username')
    list_select_related = ('last_message',)
    inlines = [ParticipantInline]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ('id', 'conversation', 'sender', 'delivery_status', 'created_at')
    list_filter = ('delivery_status',)
    search_fields = ('sender__username', 'content')
    list_select_related = ('conversation', 'sender')
