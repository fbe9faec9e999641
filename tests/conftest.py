import asyncio
import os
import tempfile

# Must be set before roomchat.config is imported
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///" + os.path.join(tempfile.mkdtemp(), "roomchat.db"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from roomchat import database
from roomchat.broadcast_engine import manager
from roomchat.models.base import Base
from roomchat.room_registry import RoomRegistry


class FakeTransport:
    """Stands in for a WebSocket: records what the writer loop sends."""

    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("connection closed")
        self.sent.append(data)

    def events(self, event_type):
        return [event for event in self.sent if event["type"] == event_type]


@pytest.fixture()
def db_engine(tmp_path):
    """Fresh sqlite file per test; NullPool so no connection outlives its event loop."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'chat.db'}", poolclass=NullPool)

    async def init():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(init())
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture()
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
def client(monkeypatch, db_engine, session_factory):
    """TestClient wired to the per-test database and an empty room registry."""
    monkeypatch.setattr(database, "async_engine", db_engine)
    monkeypatch.setattr(database, "AsyncSessionLocal", session_factory)
    monkeypatch.setattr(manager, "registry", RoomRegistry())

    from roomchat.main import app
    with TestClient(app) as test_client:
        yield test_client


def register(client, username, password="password123"):
    response = client.post("/api/v1/auth/register", json={"username": username, "password": password})
    assert response.status_code == 201, response.text
    return response.json()["token"]
