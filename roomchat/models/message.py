from sqlalchemy import Column, String, Text, Index
from .base import BaseModel

class Message(BaseModel):
    __tablename__ = "messages"
    
    room = Column(String(50), nullable=False, index=True)
    # Username at send time, not a foreign key
    author = Column(String(50), nullable=False)
    content = Column(Text, nullable=False)

    __table_args__ = (
        Index("idx_messages_room_created", "room", "created_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "room": self.room,
            "author": self.author,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
        }

    def __repr__(self):
        return f"<Message(id={self.id}, room='{self.room}', author='{self.author}')>"
