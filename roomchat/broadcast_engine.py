import asyncio
import logging
from typing import Iterable, List

from roomchat import database
from roomchat.auth import Identity
from roomchat.config import settings
from roomchat.exceptions import NotInRoom, SessionClosed, Unauthorized
from roomchat.models.message import Message
from roomchat.repositories.message_repository import MessageRepository
from roomchat.room_registry import RoomRegistry
from roomchat.session import Session

logger = logging.getLogger(__name__)


class BroadcastEngine:
    """Join, leave, send and disconnect handling for live sessions.

    The registry lock is held only for membership checks and snapshots;
    persistence and fan-out happen outside it. Fan-out is best effort: a
    session that is closing or not keeping up misses the event, everyone
    else still gets it and the stored message stays.
    """

    def __init__(self, registry: RoomRegistry = None, session_factory=None):
        self.registry = registry or RoomRegistry()
        # None means roomchat.database.AsyncSessionLocal, resolved per call
        self.session_factory = session_factory

    def _open_db(self):
        factory = self.session_factory or database.AsyncSessionLocal
        return factory()

    def authenticate(self, session: Session, identity: Identity):
        session.authenticate(identity)
        logger.info("Session %s authenticated as %s", session.id, identity.username)

    async def handle_join(self, session: Session, room: str) -> bool:
        self._require_authenticated(session)
        joined = await self.registry.join(room, session)
        if joined:
            logger.info("%s joined %s", session.username, room)
        return joined

    async def handle_leave(self, session: Session, room: str) -> bool:
        self._require_authenticated(session)
        left = await self.registry.leave(room, session)
        if left:
            logger.info("%s left %s", session.username, room)
        return left

    async def handle_message(self, session: Session, room: str, content: str) -> Message:
        self._require_authenticated(session)
        if not await self.registry.is_member(room, session):
            raise NotInRoom()

        async with self._open_db() as db:
            message = await MessageRepository(db).append(room, session.username, content)

        event = {"type": "message", "data": message.to_dict()}
        members = await self.registry.members_of(room)
        self.fan_out(members, event)
        return message

    async def recent(self, session: Session, room: str, limit: int = settings.HISTORY_LIMIT) -> List[Message]:
        self._require_authenticated(session)
        async with self._open_db() as db:
            return await MessageRepository(db).recent(room, limit)

    async def handle_disconnect(self, session: Session):
        """Idempotent; safe while a fan-out to this session is in flight."""
        rooms = await self.registry.remove_session(session)
        session.close()
        if rooms:
            logger.info("Session %s (%s) disconnected from %s", session.id, session.username, ", ".join(sorted(rooms)))

    def fan_out(self, members: Iterable[Session], event: dict) -> int:
        delivered = 0
        for member in members:
            try:
                member.deliver(event)
                delivered += 1
            except SessionClosed:
                logger.debug("Skipping closed session %s", member.id)
            except asyncio.QueueFull:
                logger.warning("Outbox full for session %s (%s), event dropped", member.id, member.username)
        return delivered

    async def room_counts(self) -> dict:
        return await self.registry.room_counts()

    @staticmethod
    def _require_authenticated(session: Session):
        if not session.is_authenticated:
            raise Unauthorized()


manager = BroadcastEngine()
