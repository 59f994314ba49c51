import logging

from django.contrib.auth.models import User
from django.utils.decorators import method_decorator
from django.views.decorators.cache import never_cache
from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from core.errors import NotFound, ValidationError
from core.pagination import page_params, paginate
from core.responses import success
from user.authentication import CookieJWTAuthentication

from . import services
from .models import Post
from .serializers import PostCreateSerializer, PostUpdateSerializer
from .visibility import add_interaction_flags, search_posts, user_posts, visible_feed

logger = logging.getLogger(__name__)


def _validated(serializer_class, data):
    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        field, errors = next(iter(serializer.errors.items()))
        raise ValidationError(f"{field}: {errors[0]}")
    return serializer.validated_data


class PostBaseView(APIView):
    authentication_classes = [CookieJWTAuthentication]
    permission_classes = [IsAuthenticated]

    def page(self, request, queryset, default_limit=10):
        page, limit = page_params(request, default_limit=default_limit)
        rows, pagination = paginate(queryset, page, limit)
        return add_interaction_flags(request.user.pk, rows), pagination


@method_decorator(never_cache, name="dispatch")
class PostCreateView(PostBaseView):
    parser_classes = (MultiPartParser, FormParser, JSONParser)

    def post(self, request):
        data = _validated(PostCreateSerializer, request.data)
        post = services.create_post(
            request.user,
            content=data["content"],
            visibility=data["visibility"],
            parent_post_id=data["parentPost"],
            files=request.FILES.getlist("media"),
        )
        logger.info(f"[PostCreateView] {request.user.username} -> post {post.pk}")
        return success(add_interaction_flags(request.user.pk, [post])[0], status=status.HTTP_201_CREATED)


@method_decorator(never_cache, name="dispatch")
class FeedView(PostBaseView):
    def get(self, request):
        posts, pagination = self.page(request, visible_feed(request.user.pk))
        return success(posts, pagination=pagination)


@method_decorator(never_cache, name="dispatch")
class SearchPostsView(PostBaseView):
    def get(self, request):
        query = (request.query_params.get("query") or "").strip()
        if not query:
            raise ValidationError("Search query is required")
        posts, pagination = self.page(request, search_posts(request.user.pk, query))
        return success(posts, pagination=pagination)


@method_decorator(never_cache, name="dispatch")
class UserPostsView(PostBaseView):
    def get(self, request, user_id):
        if not User.objects.filter(pk=user_id).exists():
            raise NotFound("User not found")
        posts, pagination = self.page(request, user_posts(request.user.pk, user_id))
        return success(posts, pagination=pagination)


@method_decorator(never_cache, name="dispatch")
class PostDetailView(PostBaseView):
    parser_classes = (JSONParser, FormParser, MultiPartParser)

    def get(self, request, post_id):
        post = services.get_visible_post(post_id, request.user)
        return success(add_interaction_flags(request.user.pk, [post], drop_invisible=False)[0])

    def patch(self, request, post_id):
        data = _validated(PostUpdateSerializer, request.data)
        post = services.update_post(services.get_post(post_id), request.user, data["content"])
        return success(add_interaction_flags(request.user.pk, [post])[0], message="Post updated")

    def delete(self, request, post_id):
        services.delete_post(services.get_post(post_id), request.user)
        return success(message="Post deleted successfully")


@method_decorator(never_cache, name="dispatch")
class CommentsView(PostBaseView):
    def get(self, request, post_id):
        parent = services.get_visible_post(post_id, request.user)
        replies = Post.objects.filter(parent_post_id=parent.pk).select_related('owner__profile')
        comments, pagination = self.page(request, replies)
        return success(comments, pagination=pagination)


@method_decorator(never_cache, name="dispatch")
class LikeView(PostBaseView):
    def post(self, request, post_id):
        stats = services.like_post(services.get_post(post_id), request.user)
        return success({"stats": _stats(stats), "isLikedByCurrentUser": True}, message="Post liked")

    def delete(self, request, post_id):
        stats = services.unlike_post(services.get_post(post_id), request.user)
        return success({"stats": _stats(stats), "isLikedByCurrentUser": False}, message="Post unliked")


@method_decorator(never_cache, name="dispatch")
class RepostView(PostBaseView):
    def post(self, request, post_id):
        wrapper = services.repost(services.get_post(post_id), request.user)
        return success(
            add_interaction_flags(request.user.pk, [wrapper])[0],
            message="Post reposted",
            status=status.HTTP_201_CREATED,
        )

    def delete(self, request, post_id):
        stats = services.undo_repost(services.get_post(post_id), request.user)
        return success({"stats": _stats(stats), "isRepostedByCurrentUser": False}, message="Repost removed")


def _stats(stats):
    return {
        "likeCount": stats["like_count"],
        "commentCount": stats["comment_count"],
        "repostCount": stats["repost_count"],
    }
