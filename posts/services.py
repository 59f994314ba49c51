"""
Write paths for posts, comments, reposts and likes.

Counters on Post are derived data: every create/delete of a like, comment or
repost ends with recompute_stats() on the affected post.
"""
import logging

from django.conf import settings
from django.contrib.auth.models import User
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from core import media
from core.errors import AlreadyExists, InvalidOperation, NotFound, PermissionDenied, ValidationError
from core.tiers import TierPolicy
from notification.models import NotificationType
from notification.services import create_notification

from .models import Like, Post, Visibility, extract_hashtags, extract_mentions
from .tasks import delete_post_media_task
from .visibility import can_view_post

logger = logging.getLogger(__name__)


def _is_premium(user):
    return bool(getattr(getattr(user, 'profile', None), 'is_premium', False))


def get_post(post_id):
    post = Post.objects.select_related('owner__profile').filter(pk=post_id).first()
    if post is None:
        raise NotFound("Post not found")
    return post


def get_visible_post(post_id, viewer):
    post = get_post(post_id)
    if not can_view_post(viewer.pk, post):
        raise PermissionDenied("You do not have permission to view this post")
    return post


def recompute_stats(post_id):
    """Rebuild like/comment/repost counts from the source tables."""
    stats = {
        "like_count": Like.objects.filter(post_id=post_id).count(),
        "comment_count": Post.objects.filter(parent_post_id=post_id).count(),
        "repost_count": Post.objects.filter(original_post_id=post_id).count(),
    }
    Post.objects.filter(pk=post_id).update(**stats)
    return stats


def _set_mentions(post, author):
    usernames = set(extract_mentions(post.content))
    usernames.discard(author.username)
    users = list(User.objects.filter(username__in=usernames)) if usernames else []
    post.mentions.set(users)
    return users


def _notify_mentions(post, author, users):
    for user in users:
        create_notification(
            user, NotificationType.MENTION, f"{author.username} mentioned you in a post",
            sender=author, post=post,
        )


def create_post(user, content="", visibility=Visibility.PUBLIC, parent_post_id=None, files=()):
    """Create a top-level post, or a comment when parent_post_id is given."""
    content = (content or "").strip()
    files = list(files)
    if not content and not files:
        raise ValidationError("Post must have content or media")

    is_premium = _is_premium(user)
    TierPolicy.check_content(content, is_premium)
    TierPolicy.check_media(files, is_premium)

    parent = None
    depth = 0
    if parent_post_id is not None:
        parent = get_post(parent_post_id)
        if parent.depth >= settings.CHIRP_MAX_COMMENT_DEPTH:
            raise InvalidOperation("Maximum comment depth reached")
        if not can_view_post(user.pk, parent):
            raise PermissionDenied("You cannot comment on this post")
        depth = parent.depth + 1
        # Comments are always public
        visibility = Visibility.PUBLIC

    uploaded = media.upload_many(files, f"posts/{user.pk}") if files else []

    post = Post(
        owner=user,
        content=content,
        media=uploaded,
        parent_post=parent,
        depth=depth,
        visibility=visibility,
        hashtags=extract_hashtags(content),
        created_at=timezone.now(),
    )
    post.start_edit_window()
    post.save()
    mentioned = _set_mentions(post, user)

    if parent is not None:
        recompute_stats(parent.pk)
        create_notification(
            parent.owner, NotificationType.COMMENT, f"{user.username} commented on your post",
            sender=user, post=parent,
        )
    _notify_mentions(post, user, mentioned)

    logger.info(f"[POST] {user.username} created post {post.pk} (depth={depth})")
    return post


def update_post(post, user, content):
    """Edit the content of a post inside its edit window."""
    if post.owner_id != user.pk:
        raise PermissionDenied("You can only edit your own posts")
    if post.is_repost:
        raise InvalidOperation("Reposts cannot be edited")
    now = timezone.now()
    if post.edit_valid_till is None or now > post.edit_valid_till:
        raise InvalidOperation("Edit time window has expired")
    if post.edit_chances_left <= 0:
        raise InvalidOperation("No edit chances left")

    content = (content or "").strip()
    if not content and not post.media:
        raise ValidationError("Post must have content or media")
    TierPolicy.check_content(content, _is_premium(user))

    with transaction.atomic():
        updated = Post.objects.filter(pk=post.pk, edit_chances_left__gt=0).update(
            content=content,
            hashtags=extract_hashtags(content),
            is_edited=True,
            edited_at=now,
            edit_chances_left=F('edit_chances_left') - 1,
        )
        if not updated:
            raise InvalidOperation("No edit chances left")
        post.refresh_from_db()
        mentioned = _set_mentions(post, user)

    _notify_mentions(post, user, mentioned)
    logger.info(f"[POST] {user.username} edited post {post.pk} ({post.edit_chances_left} edits left)")
    return post


def delete_post(post, user):
    """
    Delete a post. Replies are left in place with a dangling parent
    reference; the parent's comment count is recomputed; media removal is
    handed to a background task.
    """
    if post.owner_id != user.pk:
        raise PermissionDenied("You can only delete your own posts")
    post_id = post.pk
    parent_id = post.parent_post_id
    original_id = post.original_post_id
    urls = [item.get("url") for item in post.media or [] if item.get("url")]

    post.delete()

    if parent_id:
        recompute_stats(parent_id)
    if original_id:
        recompute_stats(original_id)
    if urls:
        transaction.on_commit(lambda: delete_post_media_task.delay(urls))
    logger.info(f"[POST] {user.username} deleted post {post_id}")


def like_post(post, user):
    if not can_view_post(user.pk, post):
        raise PermissionDenied("You cannot like this post")
    try:
        with transaction.atomic():
            Like.objects.create(post=post, liked_by=user)
    except IntegrityError:
        raise AlreadyExists("You have already liked this post")
    stats = recompute_stats(post.pk)
    create_notification(
        post.owner, NotificationType.LIKE, f"{user.username} liked your post", sender=user, post=post,
    )
    return stats


def unlike_post(post, user):
    deleted, _ = Like.objects.filter(post=post, liked_by=user).delete()
    if not deleted:
        raise NotFound("You have not liked this post")
    return recompute_stats(post.pk)


def repost(post, user):
    """Repost the root original of post. One repost per user per original."""
    original = post
    if post.is_repost:
        original = Post.objects.select_related('owner__profile').filter(pk=post.original_post_id).first()
        if original is None:
            raise NotFound("Original post not found")
    if not can_view_post(user.pk, original):
        raise PermissionDenied("You cannot repost this post")
    try:
        with transaction.atomic():
            wrapper = Post(
                owner=user,
                original_post=original,
                visibility=Visibility.PUBLIC,
                created_at=timezone.now(),
            )
            wrapper.start_edit_window()
            wrapper.save()
    except IntegrityError:
        raise AlreadyExists("You have already reposted this post")
    recompute_stats(original.pk)
    create_notification(
        original.owner, NotificationType.REPOST, f"{user.username} reposted your post",
        sender=user, post=original,
    )
    logger.info(f"[REPOST] {user.username} reposted {original.pk}")
    return wrapper


def undo_repost(post, user):
    original_id = post.original_post_id if post.is_repost else post.pk
    deleted, _ = Post.objects.filter(owner=user, original_post_id=original_id).delete()
    if not deleted:
        raise NotFound("You have not reposted this post")
    return recompute_stats(original_id)
