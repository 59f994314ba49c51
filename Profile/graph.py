"""
Social graph store: follow edges and block lists.

Every read here is a single query so the visibility resolver and the
messaging permission checks can use them on whole batches without N+1.
"""
import logging

from django.core.cache import cache
from django.db import IntegrityError, transaction
from django.db.models import Q

from core.errors import AlreadyExists, InvalidOperation, NotFound
from user.utils import user_key

from .models import Bookmark, Follow, profile

logger = logging.getLogger(__name__)

BlockEdge = profile.blocked_users.through

COUNTS_TIMEOUT = 300


def _counts_key(user_id):
    return f"{user_key(user_id)}:follow_counts"


def is_following(follower_id, following_id):
    return Follow.objects.filter(follower_id=follower_id, following_id=following_id).exists()


def is_blocked(user_id, other_id):
    """Does user_id's block list contain other_id."""
    return BlockEdge.objects.filter(profile__user_obj_id=user_id, user_id=other_id).exists()


def is_blocked_either_way(a_id, b_id):
    return BlockEdge.objects.filter(
        Q(profile__user_obj_id=a_id, user_id=b_id) | Q(profile__user_obj_id=b_id, user_id=a_id)
    ).exists()


def follow_counts(user_id):
    key = _counts_key(user_id)
    counts = cache.get(key)
    if counts is None:
        counts = {
            "followers": Follow.objects.filter(following_id=user_id).count(),
            "following": Follow.objects.filter(follower_id=user_id).count(),
        }
        cache.set(key, counts, timeout=COUNTS_TIMEOUT)
    return counts


def followers_count(user_id):
    return follow_counts(user_id)["followers"]


def following_count(user_id):
    return follow_counts(user_id)["following"]


def following_ids_of(user_id, among=None):
    qs = Follow.objects.filter(follower_id=user_id)
    if among is not None:
        qs = qs.filter(following_id__in=list(among))
    return set(qs.values_list('following_id', flat=True))


def blocked_ids_of(user_id):
    return set(BlockEdge.objects.filter(profile__user_obj_id=user_id).values_list('user_id', flat=True))


def blocked_union(user_id):
    """Ids the user blocks plus ids that block the user, in one query."""
    rows = BlockEdge.objects.filter(
        Q(profile__user_obj_id=user_id) | Q(user_id=user_id)
    ).values_list('profile__user_obj_id', 'user_id')
    ids = set()
    for blocker_id, blocked_id in rows:
        ids.add(blocked_id if blocker_id == user_id else blocker_id)
    ids.discard(user_id)
    return ids


def _invalidate_counts(*user_ids):
    cache.delete_many([_counts_key(uid) for uid in user_ids])


def create_follow(follower, following):
    if follower.pk == following.pk:
        raise InvalidOperation("You cannot follow yourself")
    try:
        with transaction.atomic():
            edge = Follow.objects.create(follower=follower, following=following)
    except IntegrityError:
        raise AlreadyExists("You are already following this user")
    _invalidate_counts(follower.pk, following.pk)
    logger.info(f"[FOLLOW] {follower.username} -> {following.username}")
    return edge


def delete_follow(follower, following):
    if follower.pk == following.pk:
        raise InvalidOperation("You cannot unfollow yourself")
    deleted, _ = Follow.objects.filter(follower=follower, following=following).delete()
    if not deleted:
        raise NotFound("You are not following this user")
    _invalidate_counts(follower.pk, following.pk)
    logger.info(f"[UNFOLLOW] {follower.username} -/-> {following.username}")


def toggle_block(user, target):
    """Block target if not blocked, otherwise unblock. Returns the new state."""
    if user.pk == target.pk:
        raise InvalidOperation("You cannot block yourself")
    deleted, _ = BlockEdge.objects.filter(profile__user_obj=user, user=target).delete()
    if deleted:
        logger.info(f"[BLOCK] {user.username} unblocked {target.username}")
        return False
    user.profile.blocked_users.add(target)
    logger.info(f"[BLOCK] {user.username} blocked {target.username}")
    return True


def toggle_bookmark(user, post):
    deleted, _ = Bookmark.objects.filter(user=user, post=post).delete()
    if deleted:
        return False
    Bookmark.objects.get_or_create(user=user, post=post)
    return True
