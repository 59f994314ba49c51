from django.apps import apps
from django.urls import re_path

from . import consumers


def websocket_urlpatterns_for(presence, rooms):
    return [
        re_path(r'ws/chat/$', consumers.ChatConsumer.as_asgi(presence=presence)),
        re_path(r'ws/webrtc/$', consumers.WebRTCConsumer.as_asgi(presence=presence, rooms=rooms)),
    ]


_config = apps.get_app_config('chatting')
websocket_urlpatterns = websocket_urlpatterns_for(_config.presence, _config.rooms)
