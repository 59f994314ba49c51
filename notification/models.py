from django.contrib.auth.models import User
from django.db import models


class NotificationType(models.TextChoices):
    LIKE = "like", "Like"
    COMMENT = "comment", "Comment"
    FOLLOW = "follow", "Follow"
    MENTION = "mention", "Mention"
    REPOST = "repost", "Repost"


class Notification(models.Model):
    recipient = models.ForeignKey(User, related_name='notifications', on_delete=models.CASCADE)
    sender = models.ForeignKey(
        User, related_name='sent_notifications', on_delete=models.CASCADE, null=True, blank=True
    )
    type = models.CharField(max_length=10, choices=NotificationType.choices)
    post = models.ForeignKey('posts.Post', related_name='notifications', on_delete=models.CASCADE, null=True, blank=True)
    message = models.CharField(max_length=255)
    read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['recipient', 'read']),
        ]

    def __str__(self):
        return f"{self.type} -> {self.recipient_id}"
