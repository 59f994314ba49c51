import re
from datetime import timedelta

from django.conf import settings
from django.contrib.auth.models import User
from django.db import models
from django.utils import timezone

HASHTAG_RE = re.compile(r"#([a-zA-Z0-9_]+)")
MENTION_RE = re.compile(r"@([a-zA-Z0-9_]+)")


class Visibility(models.TextChoices):
    PUBLIC = "public", "Public"
    FOLLOWERS = "followers", "Followers"


def extract_hashtags(content):
    return [tag.lower() for tag in HASHTAG_RE.findall(content or "")]


def extract_mentions(content):
    return MENTION_RE.findall(content or "")


class Post(models.Model):
    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='posts', db_index=True)
    content = models.TextField(blank=True, default="")
    # Ordered list of {"url": ..., "type": "image"|"video"}
    media = models.JSONField(default=list, blank=True)

    # Deleting a parent leaves replies pointing at the missing id
    parent_post = models.ForeignKey(
        'self', null=True, blank=True, related_name='replies',
        on_delete=models.DO_NOTHING, db_constraint=False,
    )
    original_post = models.ForeignKey(
        'self', null=True, blank=True, related_name='reposts',
        on_delete=models.DO_NOTHING, db_constraint=False,
    )
    depth = models.PositiveSmallIntegerField(default=0)

    # Derived; only posts.services.recompute_stats writes these
    like_count = models.PositiveIntegerField(default=0)
    comment_count = models.PositiveIntegerField(default=0)
    repost_count = models.PositiveIntegerField(default=0)

    visibility = models.CharField(max_length=10, choices=Visibility.choices, default=Visibility.PUBLIC, db_index=True)
    hashtags = models.JSONField(default=list, blank=True)
    mentions = models.ManyToManyField(User, blank=True, related_name='mentioned_in')

    is_edited = models.BooleanField(default=False)
    edited_at = models.DateTimeField(null=True, blank=True)
    edit_valid_till = models.DateTimeField(null=True, blank=True)
    edit_chances_left = models.PositiveSmallIntegerField(default=3)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['owner', 'created_at']),
            models.Index(fields=['parent_post', 'created_at']),
            models.Index(fields=['like_count']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(parent_post__isnull=True) | models.Q(original_post__isnull=True),
                name='comment_or_repost_not_both',
            ),
            models.UniqueConstraint(
                fields=['owner', 'original_post'],
                condition=models.Q(original_post__isnull=False),
                name='unique_repost_per_owner',
            ),
        ]

    def __str__(self):
        return f"Post({self.id}) by {self.owner_id}"

    @property
    def is_repost(self):
        return self.original_post_id is not None

    def start_edit_window(self):
        created = self.created_at or timezone.now()
        self.edit_valid_till = created + timedelta(minutes=settings.CHIRP_EDIT_WINDOW_MINUTES)
        self.edit_chances_left = settings.CHIRP_EDIT_CHANCES


class Like(models.Model):
    post = models.ForeignKey(Post, on_delete=models.CASCADE, related_name='likes')
    liked_by = models.ForeignKey(User, on_delete=models.CASCADE, related_name='likes')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['post', 'liked_by'], name='unique_like'),
        ]
        indexes = [
            models.Index(fields=['liked_by', 'post']),
        ]

    def __str__(self):
        return f"Like({self.liked_by_id} -> {self.post_id})"
