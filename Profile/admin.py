from django.contrib import admin

from .models import Bookmark, Follow, profile


@admin.register(profile)
class profileAdmin(admin.ModelAdmin):
    list_display = ('id', 'user_obj', 'full_name', 'is_premium', 'is_online', 'last_active')
    list_select_related = ('user_obj',)
    search_fields = ('user_obj__username', 'user_obj__email', 'full_name')
    list_filter = ('is_premium', 'is_online', 'message_preference')
    filter_horizontal = ('blocked_users',)


@admin.register(Follow)
class FollowAdmin(admin.ModelAdmin):
    list_display = ('follower', 'following', 'created_at')
    list_select_related = ('follower', 'following')
    search_fields = ('follower__username', 'following__username')


@admin.register(Bookmark)
class BookmarkAdmin(admin.ModelAdmin):
    list_display = ('user', 'post', 'created_at')
    list_select_related = ('user', 'post')
    search_fields = ('user__username',)
