"""Credential store, message store and product sink tests."""

import asyncio
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import create_async_engine

from vitrina.db.engine import products_engine
from vitrina.errors import DuplicateUser, IncompleteRegistration, StoreUnavailable
from vitrina.stores.messages import MessageStore
from vitrina.stores.products import ProductSink, product_row
from vitrina.stores.users import UserStore


# ═══════════════════════════════════════════════════════════
# Credential store
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_and_find_user(db_session):
    users = UserStore(db_session)
    created = await users.create("alice", "pw-123456", "alice@example.com")

    found = await users.find_by_username("alice")
    assert found is not None
    assert found.id == created.id
    assert found.email == "alice@example.com"
    assert found.password_hash != "pw-123456"
    assert found.password_hash.startswith("$2")


@pytest.mark.asyncio
async def test_find_unknown_user(db_session):
    assert await UserStore(db_session).find_by_username("ghost") is None


@pytest.mark.asyncio
async def test_duplicate_user_rejected(db_session):
    users = UserStore(db_session)
    first = await users.create("alice", "pw-123456", "a@example.com")
    original_hash = first.password_hash

    with pytest.raises(DuplicateUser):
        await users.create("alice", "different", "b@example.com")

    again = await users.find_by_username("alice")
    assert again.password_hash == original_hash
    assert again.email == "a@example.com"


@pytest.mark.asyncio
async def test_duplicate_detected_by_unique_index(db_session):
    """A racing insert that slipped past the lookup still yields DuplicateUser."""
    users = UserStore(db_session)
    await users.create("alice", "pw-123456", "a@example.com")

    with patch.object(UserStore, "find_by_username", return_value=None):
        with pytest.raises(DuplicateUser):
            await users.create("alice", "pw-123456", "a@example.com")


@pytest.mark.asyncio
@pytest.mark.parametrize("fields", [("", "pw", "e@x.com"), ("u", "", "e@x.com"), ("u", "pw", "")])
async def test_incomplete_registration(db_session, fields):
    with pytest.raises(IncompleteRegistration):
        await UserStore(db_session).create(*fields)


@pytest.mark.asyncio
async def test_verify(db_session):
    user = await UserStore(db_session).create("alice", "pw-123456", "a@example.com")
    assert UserStore.verify("pw-123456", user.password_hash)
    assert not UserStore.verify("nope", user.password_hash)


@pytest.mark.asyncio
async def test_lookup_failure_is_store_unavailable(db_session):
    err = OperationalError("SELECT", {}, Exception("database is locked"))
    with patch.object(db_session, "execute", side_effect=err):
        with pytest.raises(StoreUnavailable):
            await UserStore(db_session).find_by_username("alice")


# ═══════════════════════════════════════════════════════════
# Message store
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_messages_round_trip_without_ids(db_session):
    store = MessageStore(db_session)
    await store.append({"author": "alice", "text": "hi"})
    await store.append({"author": "bob", "text": "hey", "extra": [1, 2]})

    messages = await store.list_all()
    assert {"author": "alice", "text": "hi"} in messages
    assert {"author": "bob", "text": "hey", "extra": [1, 2]} in messages
    assert all("id" not in m and "_id" not in m for m in messages)


@pytest.mark.asyncio
async def test_messages_empty(db_session):
    assert await MessageStore(db_session).list_all() == []


# ═══════════════════════════════════════════════════════════
# Product sink
# ═══════════════════════════════════════════════════════════


def test_product_row_projects_known_fields():
    row = product_row({"title": "Lamp", "price": 12.5, "thumbnail": "lamp.png", "sku": "L1"})
    assert row["title"] == "Lamp"
    assert row["price"] == Decimal("12.5")
    assert row["thumbnail"] == "lamp.png"
    assert row["data"]["sku"] == "L1"


def test_product_row_opaque_record():
    row = product_row({"name": "x", "price": "n/a"})
    assert row["title"] is None
    assert row["price"] is None
    assert row["data"] == {"name": "x", "price": "n/a"}

    assert product_row("plain string")["data"] == "plain string"


@pytest.mark.asyncio
async def test_ensure_table_is_idempotent(sink):
    await sink.ensure_table()
    await sink.ensure_table()
    await sink.insert_batch([{"name": "x"}])
    assert await sink.fetch_all() == [{"name": "x"}]


@pytest.mark.asyncio
async def test_persist_reinserts_full_list(sink):
    assert await sink.persist([{"name": "a"}])
    assert await sink.persist([{"name": "a"}, {"name": "b"}])

    rows = await sink.fetch_all()
    assert rows == [{"name": "a"}, {"name": "a"}, {"name": "b"}]


@pytest.mark.asyncio
async def test_overlapping_persists_create_missing_table_once(db_ready):
    # Fresh sink, table not created yet: both chains start with CREATE TABLE
    sink = ProductSink(products_engine)
    a, b = {"name": "a"}, {"name": "b"}

    results = await asyncio.gather(sink.persist([a]), sink.persist([a, b]))

    assert results == [True, True]
    assert len(await sink.fetch_all()) == 3


@pytest.mark.asyncio
async def test_persist_failure_is_swallowed(tmp_path):
    broken = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/missing/dir/products.db")
    try:
        assert await ProductSink(broken).persist([{"name": "x"}]) is False
    finally:
        await broken.dispose()


@pytest.mark.asyncio
async def test_insert_batch_failure_raises_store_unavailable(tmp_path):
    broken = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/missing/dir/products.db")
    try:
        with pytest.raises(StoreUnavailable):
            await ProductSink(broken).insert_batch([{"name": "x"}])
    finally:
        await broken.dispose()
