import logging
from datetime import timedelta

from django.utils.decorators import method_decorator
from django.views.decorators.cache import never_cache
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import AccessToken

from core.responses import success

from .authentication import CookieJWTAuthentication
from .utils import identity_payload

logger = logging.getLogger(__name__)

WS_TOKEN_LIFETIME = timedelta(minutes=2)


@method_decorator(never_cache, name="dispatch")
class MeApiView(APIView):
    """
    Returns the authenticated identity.
    Requires a valid access token in HttpOnly cookie.
    """
    authentication_classes = [CookieJWTAuthentication]
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = request.user
        logger.info(f"User data requested: {user.username}")
        return success(identity_payload(user))


@method_decorator(never_cache, name="dispatch")
class GetWsTokenView(APIView):
    """
    Returns a short-lived token for the websocket handshake (?token=...).
    """
    authentication_classes = [CookieJWTAuthentication]
    permission_classes = [IsAuthenticated]

    def get(self, request):
        access = AccessToken.for_user(request.user)
        access.set_exp(lifetime=WS_TOKEN_LIFETIME)
        logger.info(f"WebSocket token issued for user: {request.user.username}")
        return success({"ws_token": str(access)})
