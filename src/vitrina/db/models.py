"""SQLAlchemy ORM models.

Learn: two declarative bases because the tables live in two databases.
- `Base` — the document store: users and chat messages. Chat messages are
  schemaless JSON documents; the row only adds an id and a timestamp.
- `ProductBase` — the relational sink. Each row keeps the full product
  record as JSON plus typed copies of the fields the product form sends.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import JSON, DateTime, Integer, Numeric, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for document-store models."""
    pass


class ProductBase(DeclarativeBase):
    """Base class for relational-sink models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ══════════════════════════════════════════════════════════════
# Document store
# ══════════════════════════════════════════════════════════════


class User(Base):
    """A registered account.

    Learn: the username is the identity stored in the session, so it is
    unique at the database level. That constraint is what makes
    registration safe against two concurrent signups for the same name.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def public_dict(self) -> dict:
        """User fields safe to send to the browser."""
        return {"username": self.username, "email": self.email}


class ChatMessage(Base):
    """One chat message, stored exactly as the client sent it."""

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )


# ══════════════════════════════════════════════════════════════
# Relational sink
# ══════════════════════════════════════════════════════════════


class Product(ProductBase):
    __tablename__ = "productos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    thumbnail: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    data: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
