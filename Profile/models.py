from django.conf import settings
from django.contrib.auth.models import User
from django.db import models
from django.utils import timezone


class MessagePreference(models.TextChoices):
    EVERYONE = "everyone", "Everyone"
    FOLLOWERS = "followers", "Followers"
    FOLLOWING = "following", "Following"
    MUTUAL_FOLLOWERS = "mutualFollowers", "Mutual followers"
    NO_ONE = "no one", "No one"


def default_avatar():
    return settings.CHIRP_DEFAULT_AVATAR


class profile(models.Model):
    id = models.AutoField(primary_key=True)
    # One profile per user; created by the post_save receiver in Profile.signal
    user_obj = models.OneToOneField(User, on_delete=models.CASCADE, related_name='profile')
    full_name = models.CharField(max_length=150, blank=True, default="")
    bio = models.CharField(max_length=300, blank=True, default="")
    avatar = models.CharField(max_length=255, default=default_avatar)
    is_premium = models.BooleanField(default=False)
    # Directional: rows here are users *this* user blocks
    blocked_users = models.ManyToManyField(User, blank=True, related_name='blocked_by_profiles')
    message_preference = models.CharField(
        max_length=20, choices=MessagePreference.choices, default=MessagePreference.EVERYONE
    )

    # Presence fields; written only by the presence registry's store
    is_online = models.BooleanField(default=False, db_index=True)
    last_active = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return self.user_obj.username


class Follow(models.Model):
    follower = models.ForeignKey(User, on_delete=models.CASCADE, related_name='following_edges')
    following = models.ForeignKey(User, on_delete=models.CASCADE, related_name='follower_edges')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    def __str__(self):
        return f"Follow({self.follower_id} -> {self.following_id})"

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['follower', 'following'], name='unique_follow_edge'),
            models.CheckConstraint(condition=~models.Q(follower=models.F('following')), name='no_self_follow'),
        ]
        indexes = [
            models.Index(fields=['following', 'created_at']),
        ]


class Bookmark(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='bookmarks')
    post = models.ForeignKey('posts.Post', on_delete=models.CASCADE, related_name='bookmarked_by')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Bookmark({self.user_id} -> {self.post_id})"

    class Meta:
        ordering = ['created_at', 'id']
        constraints = [
            models.UniqueConstraint(fields=['user', 'post'], name='unique_bookmark'),
        ]
