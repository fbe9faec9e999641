from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from roomchat.config import settings
from roomchat.database import store_operation
from roomchat.models.message import Message

class MessageRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    @store_operation
    async def append(self, room: str, author: str, content: str) -> Message:
        """Persist a message; created_at is assigned here, never by the client."""
        message = Message(room=room, author=author, content=content)
        self.db.add(message)
        await self.db.commit()
        await self.db.refresh(message)
        return message

    @store_operation
    async def recent(self, room: str, limit: int = settings.HISTORY_LIMIT) -> List[Message]:
        """Newest ``limit`` messages of the room, returned oldest first.

        Rows sharing a timestamp keep insertion order through the id tie-break.
        """
        result = await self.db.execute(
            select(Message)
            .where(Message.room == room)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(limit)
        )
        messages = list(result.scalars().all())
        messages.reverse()
        return messages
