"""Broadcast hub — fan-out of product and chat updates.

Learn: The hub owns two pieces of shared state:
- `connections`, the set of live sockets in this process
- `catalog`, the ordered product list every client sees

Each update rebroadcasts the *full* list or history, never a delta, so a
client only ever needs the latest frame. Sends are serialized under a lock
so every client receives frames in the order the hub handled the events.

Product persistence runs as a background task: the broadcast never waits
for the SQL write, and a failed write only shows up in the logs.
"""

import asyncio
from typing import Any, Optional, Protocol

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vitrina.errors import StoreUnavailable
from vitrina.stores.messages import MessageStore
from vitrina.stores.products import ProductSink

logger = structlog.get_logger()

# Wire event names
PRODUCTS = "products"
UPDATE_PRODUCTS = "update-products"
MESSAGES = "messages"
UPDATE_CHAT = "update-chat"


class Connection(Protocol):
    async def send_json(self, data: Any) -> None: ...


class ProductCatalog:
    """Append-only, process-wide product list. Reset only by restart."""

    def __init__(self, items: Optional[list] = None):
        self._items: list[Any] = list(items or [])

    def append(self, record: Any) -> list[Any]:
        """Add a record and return a snapshot of the full list."""
        self._items.append(record)
        return self.snapshot()

    def snapshot(self) -> list[Any]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)


class BroadcastHub:
    """Tracks live connections and handles realtime events."""

    def __init__(
        self,
        sink: ProductSink,
        session_factory: async_sessionmaker[AsyncSession],
        catalog: Optional[ProductCatalog] = None,
    ):
        self.sink = sink
        self.session_factory = session_factory
        self.catalog = catalog or ProductCatalog()
        self.connections: set[Connection] = set()
        self._send_lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()

    # ─── Connection lifecycle ───────────────────────────────

    async def connect(self, conn: Connection) -> None:
        """Register a connection and send it the current snapshot.

        The initial `messages` frame carries the whole chat history, the
        same collection every other client sees.
        """
        self.connections.add(conn)
        logger.info("vitrina.hub.connected", connections=len(self.connections))

        await self._send(conn, PRODUCTS, self.catalog.snapshot())

        try:
            history = await self._read_history()
        except StoreUnavailable as e:
            logger.error("vitrina.hub.history_unavailable", error=str(e))
            return
        await self._send(conn, MESSAGES, history)

    def disconnect(self, conn: Connection) -> None:
        self.connections.discard(conn)
        logger.info("vitrina.hub.disconnected", connections=len(self.connections))

    # ─── Events ─────────────────────────────────────────────

    async def dispatch(self, event: Optional[str], data: Any) -> None:
        """Route a client event to its handler. Unknown events are ignored."""
        if event == UPDATE_PRODUCTS:
            await self.update_products(data)
        elif event == UPDATE_CHAT:
            await self.update_chat(data)
        else:
            logger.debug("vitrina.hub.unknown_event", frame=event)

    async def update_products(self, record: Any) -> None:
        snapshot = self.catalog.append(record)
        self._schedule(self.sink.persist(snapshot))
        await self.broadcast(PRODUCTS, snapshot)

    async def update_chat(self, message: Any) -> None:
        """Store a chat message and rebroadcast the history.

        Only JSON objects are accepted; anything else is logged and dropped.
        """
        if not isinstance(message, dict):
            logger.info("vitrina.hub.chat_rejected", payload_type=type(message).__name__)
            return
        try:
            async with self.session_factory() as db:
                store = MessageStore(db)
                await store.append(message)
                history = await store.list_all()
        except StoreUnavailable as e:
            logger.error("vitrina.hub.chat_store_failed", error=str(e))
            return
        await self.broadcast(MESSAGES, history)

    # ─── Fan-out ────────────────────────────────────────────

    async def broadcast(self, event: str, data: Any) -> None:
        """Send one frame to every connection, dropping dead ones."""
        async with self._send_lock:
            for conn in list(self.connections):
                await self._send(conn, event, data)

    async def _send(self, conn: Connection, event: str, data: Any) -> None:
        try:
            await conn.send_json({"type": event, "data": data})
        except Exception as e:
            logger.info("vitrina.hub.send_failed", frame=event, error=str(e))
            self.connections.discard(conn)

    async def _read_history(self) -> list[Any]:
        async with self.session_factory() as db:
            return await MessageStore(db).list_all()

    # ─── Background persistence ─────────────────────────────

    def _schedule(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def flush(self) -> None:
        """Wait for in-flight product writes (used at shutdown and in tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


# Process-wide hub (initialized in lifespan)
_hub: Optional[BroadcastHub] = None


def init_hub(
    sink: ProductSink,
    session_factory: async_sessionmaker[AsyncSession],
) -> BroadcastHub:
    global _hub
    _hub = BroadcastHub(sink, session_factory)
    return _hub


def get_hub() -> BroadcastHub:
    """Get the hub (must be initialized first)."""
    if _hub is None:
        raise RuntimeError("Broadcast hub not initialized. Call init_hub() first.")
    return _hub


async def close_hub() -> None:
    global _hub
    if _hub:
        await _hub.flush()
        _hub = None
