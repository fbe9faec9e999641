import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from roomchat.auth import get_password_hash, verify_password
from roomchat.database import store_operation
from roomchat.exceptions import DuplicateUsername, UserNotFound, WrongPassword
from roomchat.models.user import User

logger = logging.getLogger(__name__)

class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    @store_operation
    async def register(self, username: str, password: str) -> User:
        """Create a user with a bcrypt hash; usernames are unique, exact match."""
        if await self._get_by_username(username):
            raise DuplicateUsername()

        hashed_password = await asyncio.to_thread(get_password_hash, password)
        db_user = User(username=username, hashed_password=hashed_password)
        self.db.add(db_user)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            # Lost a race with a concurrent registration of the same name
            await self.db.rollback()
            raise DuplicateUsername() from exc

        await self.db.refresh(db_user)
        logger.info("Registered user %s (id=%s)", db_user.username, db_user.id)
        return db_user

    @store_operation
    async def verify_credentials(self, username: str, password: str) -> User:
        db_user = await self._get_by_username(username)
        if db_user is None:
            raise UserNotFound()

        if not await asyncio.to_thread(verify_password, password, db_user.hashed_password):
            raise WrongPassword()
        return db_user

    @store_operation
    async def get_by_username(self, username: str) -> Optional[User]:
        return await self._get_by_username(username)

    async def _get_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()
