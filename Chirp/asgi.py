import os
import django
from channels.routing import ProtocolTypeRouter, URLRouter
from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'Chirp.settings')
django.setup()

django_asgi_app = get_asgi_application()

# Needs the app registry; the routing module reads the chatting app config
import chatting.routing  # noqa: E402

application = ProtocolTypeRouter({
    "http": django_asgi_app,
    # Sockets authenticate themselves from the ?token= query parameter
    "websocket": URLRouter(
        chatting.routing.websocket_urlpatterns
    ),
})
