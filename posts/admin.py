from django.contrib import admin

from .models import Like, Post


@admin.register(Post)
class PostAdmin(admin.ModelAdmin):
    list_display = ('id', 'owner', 'visibility', 'depth', 'like_count', 'comment_count', 'repost_count', 'created_at')
    list_filter = ('visibility', 'is_edited')
    search_fields = ('owner__username', 'content')
    list_select_related = ('owner',)
    readonly_fields = ('like_count', 'comment_count', 'repost_count')


@admin.register(Like)
class LikeAdmin(admin.ModelAdmin):
    list_display = ('post', 'liked_by', 'created_at')
    search_fields = ('liked_by__username',)
    list_select_related = ('post', 'liked_by')
