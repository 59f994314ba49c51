import logging

from django.contrib.auth.models import User
from django.db.models import Q
from django.utils.decorators import method_decorator
from django.views.decorators.cache import never_cache
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from chatting.presence import process_registry
from core import media
from core.errors import NotFound, PermissionDenied, ValidationError
from core.pagination import page_params, paginate
from core.responses import success
from notification.models import NotificationType
from notification.services import create_notification
from posts.services import get_visible_post
from posts.visibility import add_interaction_flags, resolve_users
from user.authentication import CookieJWTAuthentication

from . import graph
from .models import Bookmark, Follow, profile as ProfileModel
from .serializers import ProfileDetailSerializer, ProfileUpdateSerializer, UserSummarySerializer

logger = logging.getLogger(__name__)


def _user_by_username(username):
    user = User.objects.select_related('profile').filter(username=username).first()
    if not user:
        raise NotFound("User not found")
    return user


class ProfileBaseView(APIView):
    authentication_classes = [CookieJWTAuthentication]
    permission_classes = [IsAuthenticated]


@method_decorator(never_cache, name="dispatch")
class ProfileDetailsView(ProfileBaseView):
    def get(self, request, username):
        user = _user_by_username(username)
        if graph.is_blocked_either_way(request.user.pk, user.pk):
            raise NotFound("User not found")
        counts = graph.follow_counts(user.pk)
        data = dict(ProfileDetailSerializer(user.profile).data)
        data.update({
            "followersCount": counts["followers"],
            "followingCount": counts["following"],
            "isFollowing": graph.is_following(request.user.pk, user.pk),
        })
        return success(data)


@method_decorator(never_cache, name="dispatch")
class EditProfileView(ProfileBaseView):
    parser_classes = (MultiPartParser, FormParser, JSONParser)

    def patch(self, request):
        profile_obj = ProfileModel.objects.select_related('user_obj').get(user_obj=request.user)
        avatar = request.FILES.get('avatar')

        serializer = ProfileUpdateSerializer(profile_obj, data=request.data, partial=True)
        if not serializer.is_valid():
            field, errors = next(iter(serializer.errors.items()))
            raise ValidationError(f"{field}: {errors[0]}")
        if not serializer.validated_data and not avatar:
            raise ValidationError("Please provide at least one field to update")

        old_avatar = profile_obj.avatar
        extra = {}
        if avatar:
            media.check_file_type(avatar, allowed=("image",))
            extra["avatar"] = media.upload(avatar, f"avatars/{request.user.pk}")
        serializer.save(**extra)

        if avatar and old_avatar and old_avatar != ProfileModel._meta.get_field('avatar').get_default():
            try:
                media.delete(old_avatar)
            except Exception as e:
                logger.warning(f"[EditProfileView] Could not delete old avatar {old_avatar}: {e}")

        logger.info(f"[EditProfileView] {request.user.username} updated profile")
        return success(ProfileDetailSerializer(profile_obj).data, message="Profile updated successfully")


@method_decorator(never_cache, name="dispatch")
class UserSearchView(ProfileBaseView):
    def get(self, request):
        query = (request.query_params.get('query') or "").strip()
        if not query:
            raise ValidationError("Search query is required")
        users = (
            User.objects
            .filter(Q(username__icontains=query) | Q(profile__full_name__icontains=query))
            .exclude(pk=request.user.pk)
            .exclude(profile__blocked_users=request.user)
            .select_related('profile')
            .order_by('username')
        )
        page, limit = page_params(request)
        rows, pagination = paginate(users, page, limit)
        return success(resolve_users(request.user.pk, rows), pagination=pagination)


@method_decorator(never_cache, name="dispatch")
class OnlineUsersView(ProfileBaseView):
    def get(self, request):
        return success(process_registry().online_user_ids())


@method_decorator(never_cache, name="dispatch")
class BookmarksView(ProfileBaseView):
    def get(self, request):
        page, limit = page_params(request)
        bookmarks = Bookmark.objects.filter(user=request.user).select_related('post__owner__profile')
        rows, pagination = paginate(bookmarks, page, limit)
        posts = add_interaction_flags(request.user.pk, [b.post for b in rows])
        return success(posts, pagination=pagination, message="Bookmarks fetched successfully")


@method_decorator(never_cache, name="dispatch")
class BookmarkToggleView(ProfileBaseView):
    def post(self, request, post_id):
        post = get_visible_post(post_id, request.user)
        bookmarked = graph.toggle_bookmark(request.user, post)
        return success(
            {"postId": post.pk, "isBookmarked": bookmarked},
            message=f"Post {'added to' if bookmarked else 'removed from'} bookmarks",
        )


@method_decorator(never_cache, name="dispatch")
class BlockedUsersView(ProfileBaseView):
    def get(self, request):
        users = request.user.profile.blocked_users.select_related('profile').order_by('username')
        return success(UserSummarySerializer(users, many=True).data)


@method_decorator(never_cache, name="dispatch")
class BlockToggleView(ProfileBaseView):
    def post(self, request, user_id):
        target = User.objects.filter(pk=user_id).first()
        if not target:
            raise NotFound("User not found")
        blocked = graph.toggle_block(request.user, target)
        return success(
            {"userId": target.pk, "isBlocked": blocked},
            message=f"User {'blocked' if blocked else 'unblocked'} successfully",
        )


@method_decorator(never_cache, name="dispatch")
class FollowView(ProfileBaseView):
    def post(self, request, username):
        target = _user_by_username(username)
        if target.pk != request.user.pk and graph.is_blocked_either_way(request.user.pk, target.pk):
            raise PermissionDenied("You cannot follow this user")
        graph.create_follow(request.user, target)
        create_notification(
            target, NotificationType.FOLLOW, f"{request.user.username} started following you", sender=request.user,
        )
        return success(message=f"Successfully followed {target.username}")

    def delete(self, request, username):
        target = _user_by_username(username)
        graph.delete_follow(request.user, target)
        return success(message=f"Successfully unfollowed {target.username}")


class FollowListView(ProfileBaseView):
    direction = None

    def get(self, request, username):
        user = _user_by_username(username)
        if self.direction == "followers":
            edges = Follow.objects.filter(following=user).select_related('follower__profile')
        else:
            edges = Follow.objects.filter(follower=user).select_related('following__profile')
        page, limit = page_params(request)
        rows, pagination = paginate(edges.order_by('-created_at'), page, limit)
        users = [getattr(edge, 'follower' if self.direction == "followers" else 'following') for edge in rows]
        return success(resolve_users(request.user.pk, users), pagination=pagination)


@method_decorator(never_cache, name="dispatch")
class FollowersView(FollowListView):
    direction = "followers"


@method_decorator(never_cache, name="dispatch")
class FollowingView(FollowListView):
    direction = "following"


@method_decorator(never_cache, name="dispatch")
class FollowSuggestionsView(ProfileBaseView):
    def get(self, request):
        try:
            limit = int(request.query_params.get('limit', 5))
        except ValueError:
            raise ValidationError("limit must be an integer")
        followed = Follow.objects.filter(follower=request.user).values('following_id')
        suggestions = list(
            User.objects
            .filter(is_active=True)
            .exclude(pk=request.user.pk)
            .exclude(pk__in=followed)
            .exclude(pk__in=list(graph.blocked_union(request.user.pk)))
            .select_related('profile')
            .order_by('?')[:max(limit, 1)]
        )
        if not suggestions:
            raise NotFound("No suggestions available at the moment")
        return success(resolve_users(request.user.pk, suggestions))
