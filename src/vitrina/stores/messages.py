"""Message store — append-only chat history.

Learn: messages are opaque JSON documents. The store adds an id and a
timestamp for its own bookkeeping and strips both again on read, so
clients get back exactly what they sent.
"""

from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vitrina.db.models import ChatMessage
from vitrina.errors import StoreUnavailable

logger = structlog.get_logger()


class MessageStore:
    """Append-only chat message store backed by the document database."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def append(self, message: Any) -> None:
        self.db.add(ChatMessage(payload=message))
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreUnavailable("message store unavailable") from e

    async def list_all(self) -> list[Any]:
        """Every stored message. No ordering is promised to callers."""
        try:
            result = await self.db.execute(select(ChatMessage.payload).order_by(ChatMessage.id))
        except SQLAlchemyError as e:
            raise StoreUnavailable("message store unavailable") from e
        return list(result.scalars().all())
