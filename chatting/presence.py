"""
Presence registry: which users are online in this process and through which
socket connections (Channels channel names).

One instance per process, built in ChattingConfig.ready() and handed to the
socket consumers; HTTP views reach it through the app config.
"""
import logging
from typing import Dict, List, Set

from asgiref.sync import async_to_sync
from channels.db import database_sync_to_async
from channels.exceptions import ChannelFull
from channels.layers import DEFAULT_CHANNEL_LAYER, get_channel_layer
from django.utils import timezone

from Profile.models import profile

logger = logging.getLogger(__name__)

SOCKET_EVENT = "socket.event"


class OrmPresenceStore:
    """Writes presence transitions to the profile row."""

    @database_sync_to_async
    def set_online(self, user_id, online):
        profile.objects.filter(user_obj_id=user_id).update(is_online=online, last_active=timezone.now())

    @database_sync_to_async
    def touch(self, user_id):
        profile.objects.filter(user_obj_id=user_id).update(last_active=timezone.now())


class PresenceRegistry:
    def __init__(self, store=None, channel_layer_alias=DEFAULT_CHANNEL_LAYER):
        self.store = store or OrmPresenceStore()
        self.channel_layer_alias = channel_layer_alias
        self._connections: Dict[int, Set[str]] = {}

    @property
    def channel_layer(self):
        return get_channel_layer(self.channel_layer_alias)

    # ---------------- Reads ----------------
    def is_online(self, user_id):
        return bool(self._connections.get(user_id))

    def connections_of(self, user_id) -> List[str]:
        return list(self._connections.get(user_id, ()))

    def online_user_ids(self) -> List[int]:
        return [uid for uid, handles in list(self._connections.items()) if handles]

    # ---------------- Transitions ----------------
    async def register_connection(self, user_id, handle):
        """Add a live connection. Returns True when the user just came online."""
        handles = self._connections.setdefault(user_id, set())
        came_online = not handles
        handles.add(handle)
        if came_online:
            logger.info(f"[PRESENCE] user {user_id} online")
            await self.store.set_online(user_id, True)
        return came_online

    async def deregister_connection(self, user_id, handle):
        """Remove a connection; idempotent. Returns True when the user just went offline."""
        handles = self._connections.get(user_id)
        if not handles or handle not in handles:
            return False
        handles.discard(handle)
        if handles:
            return False
        del self._connections[user_id]
        logger.info(f"[PRESENCE] user {user_id} offline")
        await self.store.set_online(user_id, False)
        return True

    async def mark_offline(self, user_id):
        """Drop every connection of the user. Returns True on an online to offline transition."""
        handles = self._connections.pop(user_id, None)
        if not handles:
            return False
        logger.info(f"[PRESENCE] user {user_id} marked offline ({len(handles)} connections)")
        await self.store.set_online(user_id, False)
        return True

    async def touch(self, user_id):
        await self.store.touch(user_id)

    # ---------------- Delivery ----------------
    async def send(self, handle, event, data):
        try:
            await self.channel_layer.send(handle, {"type": SOCKET_EVENT, "event": event, "data": data})
        except ChannelFull:
            logger.warning(f"[PRESENCE] channel full, dropped {event} for {handle}")

    async def push(self, user_id, event, data):
        """Deliver to every live connection of the user; no-op when offline."""
        handles = self.connections_of(user_id)
        for handle in handles:
            await self.send(handle, event, data)
        return len(handles)

    async def broadcast_online_user_list(self):
        online = self.online_user_ids()
        for user_id in online:
            for handle in self.connections_of(user_id):
                await self.send(handle, "getOnlineUsers", online)


def process_registry() -> PresenceRegistry:
    """The registry built by ChattingConfig.ready() for this process."""
    from django.apps import apps
    return apps.get_app_config("chatting").presence


def push_from_sync(user_id, event, data):
    """Push from synchronous code (HTTP views, services)."""
    return async_to_sync(process_registry().push)(user_id, event, data)
