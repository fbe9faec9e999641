import asyncio
import functools
import logging

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from roomchat.config import settings
from roomchat.exceptions import StoreTimeout, StoreUnavailable

logger = logging.getLogger(__name__)

async_engine = create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG)
AsyncSessionLocal = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)

async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()

async def create_tables():
    from roomchat.models.base import Base
    from roomchat.models import user, message

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

def store_operation(func):
    """Bound a repository coroutine by STORE_TIMEOUT_SECONDS and translate
    driver failures into StoreError subclasses."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await asyncio.wait_for(func(*args, **kwargs), settings.STORE_TIMEOUT_SECONDS)
        except asyncio.TimeoutError as exc:
            logger.warning("Store operation %s timed out", func.__qualname__)
            raise StoreTimeout() from exc
        except (OperationalError, InterfaceError, OSError) as exc:
            logger.error("Store operation %s failed: %s", func.__qualname__, exc)
            raise StoreUnavailable() from exc

    return wrapper
