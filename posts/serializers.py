from rest_framework import serializers

from .models import Post, Visibility


# Serializer for a post as seen by one viewer
class PostSerializer(serializers.ModelSerializer):
    """
    Reads everything viewer-specific from context['viewer'] (a
    posts.visibility.ViewerContext) so a page of posts costs a fixed number
    of queries. Use posts.visibility.add_interaction_flags, not this directly.
    """
    ownerid = serializers.SerializerMethodField()
    parentPost = serializers.SerializerMethodField()
    originalPost = serializers.SerializerMethodField()
    isRepost = serializers.BooleanField(source='is_repost', read_only=True)
    stats = serializers.SerializerMethodField()
    edits = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)
    isLikedByCurrentUser = serializers.SerializerMethodField()
    isRepostedByCurrentUser = serializers.SerializerMethodField()
    isBookmarkedByCurrentUser = serializers.SerializerMethodField()
    isBlockedByCurrentUser = serializers.SerializerMethodField()

    class Meta:
        model = Post
        fields = [
            'id', 'ownerid', 'content', 'media', 'parentPost', 'originalPost', 'isRepost',
            'depth', 'stats', 'visibility', 'hashtags', 'edits', 'createdAt', 'updatedAt',
            'isLikedByCurrentUser', 'isRepostedByCurrentUser', 'isBookmarkedByCurrentUser',
            'isBlockedByCurrentUser',
        ]

    @property
    def viewer(self):
        return self.context['viewer']

    def get_ownerid(self, obj):
        owner = self.viewer.owners.get(obj.owner_id)
        if owner is None:
            return None
        return owner.as_dict(is_following=obj.owner_id in self.viewer.following)

    def _embedded(self, post_id):
        # Embedded posts are one level deep; their own references stay ids
        if self.context.get('embedded') or post_id is None:
            return post_id
        post = self.viewer.posts.get(post_id)
        if post is None or not self.viewer.can_view(post):
            return None
        return PostSerializer(post, context={**self.context, 'embedded': True}).data

    def get_parentPost(self, obj):
        return self._embedded(obj.parent_post_id)

    def get_originalPost(self, obj):
        return self._embedded(obj.original_post_id)

    def get_stats(self, obj):
        return {
            "likeCount": obj.like_count,
            "commentCount": obj.comment_count,
            "repostCount": obj.repost_count,
        }

    def get_edits(self, obj):
        field = serializers.DateTimeField()
        return {
            "isEdited": obj.is_edited,
            "editedAt": field.to_representation(obj.edited_at) if obj.edited_at else None,
            "editValidTill": field.to_representation(obj.edit_valid_till) if obj.edit_valid_till else None,
            "editChancesLeft": obj.edit_chances_left,
        }

    def get_isLikedByCurrentUser(self, obj):
        return obj.pk in self.viewer.liked

    def get_isRepostedByCurrentUser(self, obj):
        return obj.pk in self.viewer.reposted

    def get_isBookmarkedByCurrentUser(self, obj):
        return obj.pk in self.viewer.bookmarked

    def get_isBlockedByCurrentUser(self, obj):
        return False


class PostCreateSerializer(serializers.Serializer):
    content = serializers.CharField(required=False, allow_blank=True, default="")
    visibility = serializers.ChoiceField(choices=Visibility.choices, default=Visibility.PUBLIC)
    parentPost = serializers.IntegerField(required=False, allow_null=True, default=None)


class PostUpdateSerializer(serializers.Serializer):
    content = serializers.CharField(allow_blank=True)
