import logging
from typing import Dict, List, Set

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Call rooms for the WebRTC relay: room id -> channel names in it."""

    def __init__(self):
        self._rooms: Dict[str, Set[str]] = {}

    def join(self, room, handle) -> List[str]:
        """Add handle to the room and return the other members."""
        members = self._rooms.setdefault(room, set())
        members.add(handle)
        return [h for h in members if h != handle]

    def leave(self, room, handle) -> List[str]:
        """Remove handle from the room and return who is left."""
        members = self._rooms.get(room)
        if not members:
            return []
        members.discard(handle)
        if not members:
            del self._rooms[room]
            return []
        return list(members)

    def peers(self, room, handle) -> List[str]:
        return [h for h in self._rooms.get(room, ()) if h != handle]

    def rooms_of(self, handle) -> List[str]:
        return [room for room, members in self._rooms.items() if handle in members]

    def size(self, room):
        return len(self._rooms.get(room, ()))
