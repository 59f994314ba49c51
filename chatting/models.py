from django.contrib.auth.models import User
from django.db import models


def participant_key(a_id, b_id):
    """Canonical key for a two-person conversation; order-independent."""
    a, b = (a_id, b_id) if a_id <= b_id else (b_id, a_id)
    return f"{a}:{b}"


class Conversation(models.Model):
    participant_key = models.CharField(max_length=64, unique=True)
    participants = models.ManyToManyField(User, through='Participant', related_name='conversations')
    last_message = models.ForeignKey(
        'Message', null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True, db_index=True)

    class Meta:
        ordering = ['-updated_at', '-id']

    def __str__(self):
        return f"Conversation({self.participant_key})"


class Participant(models.Model):
    conversation = models.ForeignKey(Conversation, on_delete=models.CASCADE, related_name='memberships')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='chat_memberships')
    # Only ever changed with F() updates
    unread_count = models.PositiveIntegerField(default=0)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['conversation', 'user'], name='unique_participant'),
        ]

    def __str__(self):
        return f"{self.user_id} in {self.conversation_id} ({self.unread_count} unread)"


class DeliveryStatus(models.TextChoices):
    SENT = "sent", "Sent"
    DELIVERED = "delivered", "Delivered"
    READ = "read", "Read"


class Message(models.Model):
    conversation = models.ForeignKey(Conversation, on_delete=models.CASCADE, related_name='messages')
    sender = models.ForeignKey(User, related_name='sent_messages', on_delete=models.CASCADE, db_index=True)
    content = models.TextField(blank=True, default="")
    # Ordered list of {"url": ..., "type": "image"}
    media = models.JSONField(default=list, blank=True)
    read_by = models.ManyToManyField(User, blank=True, related_name='read_messages')
    delivery_status = models.CharField(
        max_length=10, choices=DeliveryStatus.choices, default=DeliveryStatus.SENT, db_index=True
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    def __str__(self):
        return f"{self.sender_id} in {self.conversation_id}: {self.content[:30]}"

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['conversation', 'created_at']),
            models.Index(fields=['conversation', 'delivery_status']),
        ]
