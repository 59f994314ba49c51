import logging

from channels.db import database_sync_to_async
from django.contrib.auth.models import User
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

logger = logging.getLogger(__name__)


class CookieJWTAuthentication(JWTAuthentication):
    def authenticate(self, request):
        # Prefer cookie token; fall back to the Authorization header
        raw_token = request.COOKIES.get('access')
        if raw_token is None:
            return super().authenticate(request)

        try:
            validated_token = self.get_validated_token(raw_token)
        except Exception as exc:
            # Keep message concise to avoid leaking internals
            raise AuthenticationFailed('Token Validation Error: {}'.format(exc))

        try:
            user = self.get_user(validated_token)
        except Exception as exc:
            raise AuthenticationFailed('User Retrieval Error: {}'.format(exc))

        return (user, validated_token)


def resolve_token_user(token_key):
    """Return the active user behind an access token, or None."""
    if not token_key:
        return None
    try:
        validated_token = AccessToken(token_key)
        user_id = validated_token["user_id"]
        return User.objects.select_related('profile').get(id=user_id, is_active=True)
    except (TokenError, KeyError, User.DoesNotExist) as e:
        logger.warning(f"[TOKEN ERROR] Invalid socket token: {e}")
        return None


get_user_from_token = database_sync_to_async(resolve_token_user)
