from django.urls import path

from .views import (
    CommentsView, FeedView, LikeView, PostCreateView, PostDetailView, RepostView, SearchPostsView,
    UserPostsView,
)

urlpatterns = [
    path('', PostCreateView.as_view(), name='post_create'),
    path('feed/', FeedView.as_view(), name='post_feed'),
    path('search/', SearchPostsView.as_view(), name='post_search'),
    path('user/<int:user_id>/', UserPostsView.as_view(), name='user_posts'),
    path('<int:post_id>/', PostDetailView.as_view(), name='post_detail'),
    path('<int:post_id>/comments/', CommentsView.as_view(), name='post_comments'),
    path('<int:post_id>/like/', LikeView.as_view(), name='post_like'),
    path('<int:post_id>/repost/', RepostView.as_view(), name='post_repost'),
]
