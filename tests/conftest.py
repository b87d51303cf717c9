"""Test fixtures — throwaway SQLite databases and in-memory sessions.

Learn: the engines are module-level singletons created at import time, so
the database URLs are pointed at a temporary directory *before* anything
from vitrina is imported. Each test gets freshly created tables, and the
teardown drops them and disposes the pools so no connection outlives the
test's event loop.
"""

import asyncio
import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="vitrina-tests-")
os.environ["VITRINA_DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP}/documents.db"
os.environ["VITRINA_PRODUCTS_DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP}/products.db"
os.environ["VITRINA_REDIS_URL"] = ""
os.environ["VITRINA_ENVIRONMENT"] = "development"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from vitrina.auth.sessions import MemorySessionStore, set_session_store  # noqa: E402
from vitrina.config import settings  # noqa: E402
from vitrina.db.engine import (  # noqa: E402
    async_session_factory,
    engine,
    init_db,
    products_engine,
)
from vitrina.db.models import Base, ProductBase  # noqa: E402
from vitrina.main import app  # noqa: E402
from vitrina.stores.products import ProductSink  # noqa: E402


async def drop_all() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    async with products_engine.begin() as conn:
        await conn.run_sync(ProductBase.metadata.drop_all)
    await engine.dispose()
    await products_engine.dispose()


@pytest_asyncio.fixture()
async def db_ready():
    """Create the document-store tables; drop both databases afterwards."""
    await init_db()
    try:
        yield
    finally:
        await drop_all()


@pytest_asyncio.fixture()
async def db_session(db_ready):
    async with async_session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def sink(db_ready):
    """Product sink with its table created, as the lifespan does at startup."""
    sink = ProductSink(products_engine)
    await sink.ensure_table()
    return sink


@pytest.fixture()
def session_store():
    """Fresh in-memory session backend installed as the process store."""
    store = MemorySessionStore(settings.session_max_age_seconds)
    set_session_store(store)
    yield store
    set_session_store(None)


@pytest_asyncio.fixture()
async def client(db_ready, session_store):
    """HTTP client against the app without running its lifespan."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def live_client():
    """Starlette TestClient with the full lifespan (hub, sessions, tables).

    Learn: WebSocket tests need the real startup path, so this fixture is
    synchronous and drives the app through TestClient's own event loop.
    """
    from starlette.testclient import TestClient

    with TestClient(app) as tc:
        yield tc
    asyncio.run(drop_all())