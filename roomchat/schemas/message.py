from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime

class MessageResponse(BaseModel):
    id: int
    room: str
    author: str
    content: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class WebSocketAction(BaseModel):
    action: str
    data: dict = {}

class RoomPayload(BaseModel):
    room: str = Field(..., min_length=1, max_length=50)

class SendMessagePayload(RoomPayload):
    content: str

class HistoryPayload(RoomPayload):
    limit: Optional[int] = Field(None, ge=1, le=100)

class TokenPayload(BaseModel):
    token: str
