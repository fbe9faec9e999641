from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from roomchat.config import settings
from roomchat.database import get_db
from roomchat.repositories.message_repository import MessageRepository
from roomchat.schemas.message import MessageResponse
from roomchat.auth import Identity, get_current_identity
from roomchat.exceptions import StoreError

router = APIRouter()

@router.get("/history/{room}", response_model=List[MessageResponse])
async def get_room_history(
    room: str,
    limit: int = Query(settings.HISTORY_LIMIT, ge=1, le=settings.HISTORY_MAX_LIMIT),
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity)
):
    """Most recent messages of a room, oldest first. Rooms need not be joined."""
    message_repo = MessageRepository(db)

    try:
        return await message_repo.recent(room, limit)
    except StoreError as exc:
        raise HTTPException(status_code=503, detail=exc.message)
