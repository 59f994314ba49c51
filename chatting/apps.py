from django.apps import AppConfig


class ChattingConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'chatting'

    presence = None
    rooms = None

    def ready(self):
        from .presence import PresenceRegistry
        from .signaling import RoomRegistry

        # One of each per process; consumers and views share them
        self.presence = PresenceRegistry()
        self.rooms = RoomRegistry()
