import asyncio
import logging
from typing import Dict, FrozenSet, Set

from roomchat.session import Session

logger = logging.getLogger(__name__)


class RoomRegistry:
    """In-memory map of room name to the sessions currently joined to it.

    A room with no members has no entry; looking it up yields an empty set.
    Every mutation also updates ``session.rooms`` under the same lock so the two
    views never disagree. Single event loop, single process.
    """

    def __init__(self):
        self._rooms: Dict[str, Set[Session]] = {}
        self._lock = asyncio.Lock()

    async def join(self, room: str, session: Session) -> bool:
        """Returns False when the session was already a member."""
        async with self._lock:
            members = self._rooms.setdefault(room, set())
            if session in members:
                return False
            members.add(session)
            session.rooms.add(room)
            return True

    async def leave(self, room: str, session: Session) -> bool:
        """Returns False when the session was not a member."""
        async with self._lock:
            return self._discard(room, session)

    async def remove_session(self, session: Session) -> Set[str]:
        """Drop the session from every room; returns the rooms it left."""
        async with self._lock:
            left = set(session.rooms)
            for room in left:
                self._discard(room, session)
            session.rooms.clear()
            return left

    async def members_of(self, room: str) -> FrozenSet[Session]:
        async with self._lock:
            return frozenset(self._rooms.get(room, ()))

    async def is_member(self, room: str, session: Session) -> bool:
        async with self._lock:
            return session in self._rooms.get(room, ())

    async def room_counts(self) -> Dict[str, int]:
        async with self._lock:
            return {room: len(members) for room, members in self._rooms.items()}

    def _discard(self, room: str, session: Session) -> bool:
        members = self._rooms.get(room)
        session.rooms.discard(room)
        if not members or session not in members:
            return False
        members.discard(session)
        if not members:
            del self._rooms[room]
            logger.debug("Room %s is empty, pruned", room)
        return True
