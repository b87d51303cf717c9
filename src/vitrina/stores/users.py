"""Credential store — user accounts in the document store."""

from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vitrina.auth.password import hash_password, verify_password
from vitrina.db.models import User
from vitrina.errors import DuplicateUser, IncompleteRegistration, StoreUnavailable

logger = structlog.get_logger()


class UserStore:
    """Lookup, creation and password checks for user accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_username(self, username: str) -> Optional[User]:
        try:
            result = await self.db.execute(
                select(User).where(User.username == username)
            )
        except SQLAlchemyError as e:
            logger.error("vitrina.users.lookup_failed", username=username, error=str(e))
            raise StoreUnavailable("user store unavailable") from e
        return result.scalars().first()

    async def create(self, username: str, password: str, email: str) -> User:
        """Create an account, hashing the password once with a fresh salt.

        Learn: the lookup catches the common case with a clear error, and
        the unique index on username catches the race where two requests
        pass the lookup at the same time. Both surface as DuplicateUser and
        the existing row is never touched.
        """
        if not username or not password or not email:
            raise IncompleteRegistration("username, password and email are required")

        if await self.find_by_username(username):
            raise DuplicateUser(username)

        user = User(
            username=username,
            password_hash=hash_password(password),
            email=email,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise DuplicateUser(username) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("vitrina.users.create_failed", username=username, error=str(e))
            raise StoreUnavailable("user store unavailable") from e

        await self.db.refresh(user)
        logger.info("vitrina.users.registered", username=username)
        return user

    @staticmethod
    def verify(password: str, password_hash: str) -> bool:
        return verify_password(password, password_hash)
