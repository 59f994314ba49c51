from django.urls import path
from .views import (
    BlockedUsersView, BlockToggleView, BookmarksView, BookmarkToggleView, EditProfileView, OnlineUsersView,
    ProfileDetailsView, UserSearchView,
)

urlpatterns = [
    path('search/', UserSearchView.as_view(), name='user_search'),
    path('me/', EditProfileView.as_view(), name='edit_profile'),
    path('bookmarks/', BookmarksView.as_view(), name='bookmarks'),
    path('bookmarks/<int:post_id>/', BookmarkToggleView.as_view(), name='bookmark_toggle'),
    path('blocked/', BlockedUsersView.as_view(), name='blocked_users'),
    path('block/<int:user_id>/', BlockToggleView.as_view(), name='block_toggle'),
    path('online/', OnlineUsersView.as_view(), name='online_users'),
    path('<str:username>/', ProfileDetailsView.as_view(), name='profile_details'),
]
