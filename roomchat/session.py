import asyncio
import itertools
import logging
from typing import Optional, Set

from roomchat.auth import Identity
from roomchat.config import settings
from roomchat.exceptions import SessionClosed, Unauthorized

logger = logging.getLogger(__name__)

_session_ids = itertools.count(1)
_CLOSE = object()


class Session:
    """Server-side state of one live connection.

    ``transport`` is anything with an ``async send_json(data)`` method, usually
    a Starlette ``WebSocket``. Outbound events go through a bounded queue that
    :meth:`run_writer` drains, so a slow client never stalls a broadcast.

    ``rooms`` is owned by :class:`~roomchat.room_registry.RoomRegistry` and only
    changes under its lock.
    """

    def __init__(self, transport, queue_size: int = None):
        self.id = next(_session_ids)
        self.transport = transport
        self.identity: Optional[Identity] = None
        self.rooms: Set[str] = set()
        self.closed = False
        self._outbox: asyncio.Queue = asyncio.Queue(maxsize=queue_size or settings.SESSION_QUEUE_SIZE)

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    @property
    def username(self) -> Optional[str]:
        return self.identity.username if self.identity else None

    def authenticate(self, identity: Identity):
        if self.identity is not None and self.identity != identity:
            raise Unauthorized("Session is already authenticated as another user")
        self.identity = identity

    def deliver(self, event: dict):
        """Queue an event for the writer loop.

        Raises SessionClosed when the connection is gone and asyncio.QueueFull
        when the client is not keeping up.
        """
        if self.closed:
            raise SessionClosed()
        self._outbox.put_nowait(event)

    async def run_writer(self):
        while True:
            event = await self._outbox.get()
            if event is _CLOSE:
                break
            try:
                await self.transport.send_json(event)
            except Exception as exc:
                logger.info("Session %s transport failed, stopping writer: %s", self.id, exc)
                self.closed = True
                break

    def close(self):
        """Stop accepting events; the writer exits once the queue is drained."""
        if self.closed:
            return
        self.closed = True
        try:
            self._outbox.put_nowait(_CLOSE)
        except asyncio.QueueFull:
            # Drop the backlog so the writer can see the sentinel
            while not self._outbox.empty():
                self._outbox.get_nowait()
            self._outbox.put_nowait(_CLOSE)

    def __repr__(self):
        return f"<Session(id={self.id}, user={self.username!r}, rooms={sorted(self.rooms)})>"
