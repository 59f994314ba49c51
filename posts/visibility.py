"""
Visibility resolver.

Given a viewer and a batch of posts it decides what the viewer may see and
computes the per-item interaction flags. The flag queries are batched: one
query each for blocks, follows, likes, reposts and bookmarks, however many
posts are in the batch.

Owners arrive either as a bare id (``OwnerRef``) or, when the caller joined
``owner__profile``, as a loaded profile (``OwnerProfile``). Both are
normalized to ``OwnerProfile`` here, before any flag is assigned.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Union

from django.conf import settings
from django.contrib.auth.models import User
from django.db.models import Q
from rest_framework import serializers

from core.errors import ValidationError
from Profile import graph
from Profile.models import Bookmark, Follow

from .models import Like, Post, Visibility

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OwnerRef:
    id: int


@dataclass(frozen=True)
class OwnerProfile:
    id: int
    username: str
    full_name: str = ""
    avatar: Optional[str] = None

    def as_dict(self, is_following=False):
        return {
            "id": self.id,
            "username": self.username,
            "fullName": self.full_name,
            "avatar": self.avatar,
            "isFollowingByCurrentUser": is_following,
        }


Owner = Union[OwnerRef, OwnerProfile]


def unknown_owner():
    return {
        "id": None,
        "username": "unknown",
        "fullName": "",
        "avatar": settings.CHIRP_DEFAULT_AVATAR,
        "isFollowingByCurrentUser": False,
    }


def _profile_from_user(user):
    prof = getattr(user, "profile", None)
    return OwnerProfile(
        id=user.pk,
        username=user.username,
        full_name=getattr(prof, "full_name", ""),
        avatar=getattr(prof, "avatar", None),
    )


def owner_of(post) -> Owner:
    if Post.owner.is_cached(post) and User.profile.is_cached(post.owner):
        return _profile_from_user(post.owner)
    return OwnerRef(post.owner_id)


def normalize_owners(owners: Iterable[Owner]) -> Dict[int, OwnerProfile]:
    """Turn a mix of refs and profiles into profiles, loading refs in one query."""
    resolved = {}
    missing = set()
    for owner in owners:
        if isinstance(owner, OwnerProfile):
            resolved[owner.id] = owner
        else:
            missing.add(owner.id)
    missing -= set(resolved)
    if missing:
        for user in User.objects.filter(pk__in=missing).select_related('profile'):
            resolved[user.pk] = _profile_from_user(user)
    return resolved


@dataclass
class ViewerContext:
    viewer_id: int
    blocked: Set[int] = field(default_factory=set)
    following: Set[int] = field(default_factory=set)
    liked: Set[int] = field(default_factory=set)
    reposted: Set[int] = field(default_factory=set)
    bookmarked: Set[int] = field(default_factory=set)
    owners: Dict[int, OwnerProfile] = field(default_factory=dict)
    posts: Dict[int, Post] = field(default_factory=dict)

    def is_blocked(self, owner_id):
        return owner_id in self.blocked

    def can_view(self, post):
        """Visibility gate. Blocked content is never visible."""
        if post.owner_id in self.blocked:
            return False
        if post.owner_id == self.viewer_id:
            return True
        if post.visibility == Visibility.PUBLIC:
            return True
        return post.visibility == Visibility.FOLLOWERS and post.owner_id in self.following


def can_view_post(viewer_id, post):
    """Single-post gate for detail and write paths."""
    if post.owner_id == viewer_id:
        return True
    if graph.is_blocked_either_way(viewer_id, post.owner_id):
        return False
    if post.visibility == Visibility.PUBLIC:
        return True
    return graph.is_following(viewer_id, post.owner_id)


def build_context(viewer_id, posts: List[Post]) -> ViewerContext:
    ctx = ViewerContext(viewer_id=viewer_id)
    ctx.posts = {p.pk: p for p in posts}

    nested_ids = set()
    for p in posts:
        if p.original_post_id:
            nested_ids.add(p.original_post_id)
        if p.parent_post_id:
            nested_ids.add(p.parent_post_id)
    nested_ids -= set(ctx.posts)
    if nested_ids:
        ctx.posts.update(Post.objects.select_related('owner__profile').in_bulk(nested_ids))

    post_ids = list(ctx.posts)
    ctx.owners = normalize_owners(owner_of(p) for p in ctx.posts.values())
    owner_ids = set(ctx.owners)

    ctx.blocked = graph.blocked_union(viewer_id)
    ctx.following = graph.following_ids_of(viewer_id, among=owner_ids)
    ctx.liked = set(
        Like.objects.filter(liked_by_id=viewer_id, post_id__in=post_ids).values_list('post_id', flat=True)
    )
    ctx.reposted = set(
        Post.objects.filter(owner_id=viewer_id, original_post_id__in=post_ids)
        .values_list('original_post_id', flat=True)
    )
    ctx.bookmarked = set(
        Bookmark.objects.filter(user_id=viewer_id, post_id__in=post_ids).values_list('post_id', flat=True)
    )
    return ctx


def redacted_stub(post):
    return {
        "id": post.pk,
        "ownerid": unknown_owner(),
        "content": "",
        "media": [],
        "parentPost": None,
        "originalPost": None,
        "isRepost": post.is_repost,
        "depth": post.depth,
        "stats": {"likeCount": 0, "commentCount": 0, "repostCount": 0},
        "visibility": post.visibility,
        "hashtags": [],
        "createdAt": serializers.DateTimeField().to_representation(post.created_at),
        "isLikedByCurrentUser": False,
        "isRepostedByCurrentUser": False,
        "isBookmarkedByCurrentUser": False,
        "isBlockedByCurrentUser": True,
    }


def add_interaction_flags(viewer_id, posts, drop_invisible=True):
    """
    Resolve a batch of posts for a viewer.

    Items owned by a mutually blocked user become redacted stubs. Items the
    viewer may not see (followers-only from someone they do not follow) are
    dropped, or redacted when ``drop_invisible`` is False. Embedded parent and
    original posts that are blocked, hidden or deleted come back as None.
    """
    from .serializers import PostSerializer

    posts = list(posts)
    if not posts:
        return []
    ctx = build_context(viewer_id, posts)
    serializer_context = {"viewer": ctx}

    out = []
    for post in posts:
        if ctx.is_blocked(post.owner_id):
            out.append(redacted_stub(post))
            continue
        if not ctx.can_view(post):
            if not drop_invisible:
                out.append(redacted_stub(post))
            continue
        out.append(PostSerializer(post, context=serializer_context).data)
    return out


def resolve_users(viewer_id, users):
    """Drop mutually blocked users and flag the ones the viewer follows."""
    from Profile.serializers import UserSummarySerializer

    users = list(users)
    if not users:
        return []
    blocked = graph.blocked_union(viewer_id)
    visible = [u for u in users if u.pk not in blocked]
    following = graph.following_ids_of(viewer_id, among={u.pk for u in visible})
    return UserSummarySerializer(visible, many=True, context={"following_ids": following}).data


# ---------------- Query-level visibility ----------------
def visible_posts(viewer_id):
    """Posts the viewer may see, with mutually blocked owners excluded."""
    followed = Follow.objects.filter(follower_id=viewer_id).values('following_id')
    return (
        Post.objects
        .filter(
            Q(owner_id=viewer_id)
            | Q(visibility=Visibility.PUBLIC)
            | Q(visibility=Visibility.FOLLOWERS, owner_id__in=followed)
        )
        .exclude(owner_id__in=list(graph.blocked_union(viewer_id)))
        .select_related('owner__profile')
    )


def visible_feed(viewer_id):
    return visible_posts(viewer_id).filter(parent_post__isnull=True)


def search_posts(viewer_id, query):
    tag = query.lstrip('#')
    if not tag.strip():
        raise ValidationError("Search query is required")
    return visible_feed(viewer_id).filter(Q(content__icontains=query) | Q(hashtags__icontains=tag))


def user_posts(viewer_id, owner_id):
    return visible_posts(viewer_id).filter(owner_id=owner_id)
