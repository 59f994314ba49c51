from django.contrib.auth.models import User
from rest_framework import serializers

from .models import MessagePreference, profile


# Compact user row used in search results and follower lists
class UserSummarySerializer(serializers.ModelSerializer):
    fullName = serializers.CharField(source='profile.full_name', default="")
    avatar = serializers.CharField(source='profile.avatar', default=None)
    isOnline = serializers.BooleanField(source='profile.is_online', default=False)
    isFollowingByCurrentUser = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'username', 'fullName', 'avatar', 'isOnline', 'isFollowingByCurrentUser']

    def get_isFollowingByCurrentUser(self, obj):
        """
        Avoid per-row queries by accepting a pre-computed set in context.
        Callers pass context['following_ids'] = {user_id, ...}.
        """
        following_ids = self.context.get('following_ids')
        if following_ids is None:
            return False
        return obj.pk in following_ids


# Full profile page
class ProfileDetailSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(source='user_obj.id')
    username = serializers.CharField(source='user_obj.username')
    joinedDate = serializers.DateTimeField(source='user_obj.date_joined', format='%Y-%m-%d')
    fullName = serializers.CharField(source='full_name')
    isPremium = serializers.BooleanField(source='is_premium')
    isOnline = serializers.BooleanField(source='is_online')
    lastActive = serializers.DateTimeField(source='last_active')
    messagePreference = serializers.CharField(source='message_preference')

    class Meta:
        model = profile
        fields = [
            'id', 'username', 'fullName', 'bio', 'avatar', 'joinedDate', 'isPremium', 'isOnline',
            'lastActive', 'messagePreference',
        ]


class ProfileUpdateSerializer(serializers.ModelSerializer):
    fullName = serializers.CharField(source='full_name', required=False, allow_blank=True, max_length=150)
    messagePreference = serializers.ChoiceField(
        source='message_preference', choices=MessagePreference.choices, required=False
    )

    class Meta:
        model = profile
        fields = ['fullName', 'bio', 'messagePreference']
