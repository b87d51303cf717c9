"""Async SQLAlchemy engines and session factory.

Learn: two independent engines, each with its own connection pool:
1. `engine` — the document store (users, chat messages), used through
   AsyncSession for per-request access.
2. `products_engine` — the relational product sink, used with plain
   connections acquired per write (see stores/products.py).

SQLite URLs get the driver's default pool; server databases get a sized pool.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from vitrina.config import settings
from vitrina.db.models import Base


def build_engine(url: str) -> AsyncEngine:
    """Create an engine, sizing the pool only where the dialect supports it."""
    kwargs = {"echo": settings.debug}
    if not url.startswith("sqlite"):
        kwargs.update(pool_size=5, max_overflow=15, pool_pre_ping=True)
    return create_async_engine(url, **kwargs)


engine = build_engine(settings.database_url)
products_engine = build_engine(settings.products_database_url)

# Session factory — each request gets its own session.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncSession:
    """FastAPI dependency — yields a session per request, auto-closes."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db() -> None:
    """Create the document-store tables if they are missing."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
