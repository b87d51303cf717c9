"""Product sink — mirrors the in-memory product list into SQL.

Learn: the sink runs one operation chain per product update:
acquire connection → CREATE TABLE IF NOT EXISTS → INSERT every record →
commit → release. The connection comes from the engine's pool and goes
back to it even when a step fails. Failures are logged and swallowed:
the live broadcast never waits on, or fails because of, this write.

Every update re-inserts the whole list, not just the new record, so the
table grows by len(products) rows per update.
"""

import asyncio
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

import structlog
from sqlalchemy import insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from vitrina.db.models import Product
from vitrina.errors import StoreUnavailable

logger = structlog.get_logger()


def _as_price(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def _as_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def product_row(record: Any) -> dict:
    """Map an opaque product record onto a productos row."""
    fields = record if isinstance(record, dict) else {}
    return {
        "title": _as_text(fields.get("title")),
        "price": _as_price(fields.get("price")),
        "thumbnail": _as_text(fields.get("thumbnail")),
        "data": record,
    }


class ProductSink:
    """Relational mirror of the product list."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        # Serializes write chains: two CREATE TABLE checks racing on a
        # missing table fail the second chain.
        self._write_lock = asyncio.Lock()

    async def ensure_table(self) -> None:
        """Create the productos table if it does not exist yet."""
        try:
            async with self._write_lock, self.engine.begin() as conn:
                await self._create_table(conn)
        except SQLAlchemyError as e:
            raise StoreUnavailable("product store unavailable") from e

    async def insert_batch(self, records: Iterable[Any]) -> None:
        try:
            async with self._write_lock, self.engine.begin() as conn:
                await self._insert(conn, list(records))
        except SQLAlchemyError as e:
            raise StoreUnavailable("product store unavailable") from e

    async def persist(self, records: list[Any]) -> bool:
        """Run the full write chain on one pooled connection.

        Returns True when the rows were committed. Never raises.
        """
        try:
            async with self._write_lock, self.engine.connect() as conn:
                await self._create_table(conn)
                await self._insert(conn, records)
                await conn.commit()
        except Exception as e:
            logger.error(
                "vitrina.products.persist_failed",
                records=len(records),
                error=str(e),
            )
            return False
        logger.debug("vitrina.products.persisted", records=len(records))
        return True

    async def fetch_all(self) -> list[Any]:
        """Every stored record, oldest first.

        Diagnostic read used by the test suite; the app itself never reads
        products back from SQL.
        """
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(select(Product.data).order_by(Product.id))
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise StoreUnavailable("product store unavailable") from e

    # ─── Operation steps ────────────────────────────────────

    @staticmethod
    async def _create_table(conn: AsyncConnection) -> None:
        await conn.run_sync(Product.__table__.create, checkfirst=True)

    @staticmethod
    async def _insert(conn: AsyncConnection, records: list[Any]) -> None:
        if not records:
            return
        await conn.execute(insert(Product), [product_row(r) for r in records])
