import asyncio
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from roomchat import database
from roomchat.auth import token_service
from roomchat.broadcast_engine import manager
from roomchat.config import settings
from roomchat.exceptions import AuthError, ChatError, Unauthorized
from roomchat.repositories.user_repository import UserRepository
from roomchat.schemas.message import (
    HistoryPayload,
    RoomPayload,
    SendMessagePayload,
    TokenPayload,
    WebSocketAction,
)
from roomchat.schemas.user import UserCreate, UserLogin
from roomchat.session import Session

logger = logging.getLogger(__name__)

router = APIRouter()

def reply(session: Session, event_type: str, data: dict = None):
    event = {"type": event_type}
    if data is not None:
        event["data"] = data
    manager.fan_out((session,), event)

def reply_error(session: Session, code: str, message: str):
    manager.fan_out((session,), {"type": "error", "code": code, "message": message})

@router.websocket("/chat")
async def websocket_chat(websocket: WebSocket, token: str = None):
    identity = None
    if token:
        try:
            identity = token_service.verify(token)
        except AuthError as exc:
            await websocket.close(code=1008, reason=exc.message)
            return

    await websocket.accept()
    session = Session(websocket)
    writer = asyncio.create_task(session.run_writer())
    logger.info("Session %s connected", session.id)

    if identity is not None:
        manager.authenticate(session, identity)
        reply(session, "authenticated", {"user_id": identity.user_id, "username": identity.username})

    try:
        while True:
            data = await websocket.receive_text()

            try:
                frame = WebSocketAction.model_validate(json.loads(data))
                await handle_websocket_message(frame.action, frame.data, session)
            except json.JSONDecodeError:
                reply_error(session, "invalid_json", "Invalid JSON format")
            except ValidationError as exc:
                reply_error(session, "invalid_payload", str(exc))
            except ChatError as exc:
                reply_error(session, exc.code, exc.message)

    except WebSocketDisconnect:
        pass
    finally:
        await manager.handle_disconnect(session)
        try:
            await asyncio.wait_for(writer, timeout=settings.STORE_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            logger.warning("Session %s writer did not drain, cancelled", session.id)
        logger.info("Session %s closed", session.id)

async def handle_websocket_message(action: str, payload: dict, session: Session):

    if action == "authenticate":
        data = TokenPayload(**payload)
        identity = token_service.verify(data.token)
        manager.authenticate(session, identity)
        reply(session, "authenticated", {"user_id": identity.user_id, "username": identity.username})

    elif action in ("login", "register"):
        await handle_credentials(action, payload, session)

    elif action == "join":
        data = RoomPayload(**payload)
        await manager.handle_join(session, data.room)
        reply(session, "joined", {"room": data.room})

    elif action == "leave":
        data = RoomPayload(**payload)
        await manager.handle_leave(session, data.room)
        reply(session, "left", {"room": data.room})

    elif action == "message":
        data = SendMessagePayload(**payload)
        await manager.handle_message(session, data.room, data.content)

    elif action == "history":
        data = HistoryPayload(**payload)
        messages = await manager.recent(session, data.room, data.limit or settings.HISTORY_LIMIT)
        reply(session, "history", {
            "room": data.room,
            "messages": [message.to_dict() for message in messages]
        })

    elif action == "ping":
        reply(session, "pong")

    else:
        reply_error(session, "unknown_action", f"Unknown action: {action}")

async def handle_credentials(action: str, payload: dict, session: Session):
    # Checked before touching the store so a rejected register leaves no row
    if session.is_authenticated:
        raise Unauthorized("Session is already authenticated")

    async with database.AsyncSessionLocal() as db:
        user_repo = UserRepository(db)
        if action == "register":
            data = UserCreate(**payload)
            user = await user_repo.register(data.username, data.password)
        else:
            data = UserLogin(**payload)
            user = await user_repo.verify_credentials(data.username, data.password)

    token = token_service.issue(user.id, user.username)
    manager.authenticate(session, token_service.verify(token))
    reply(session, "authenticated", {
        "user_id": user.id,
        "username": user.username,
        "token": token
    })

@router.get("/rooms")
async def get_rooms():
    """Member count of every room with at least one connected session"""
    rooms = await manager.room_counts()
    return {"rooms": rooms, "count": len(rooms)}
