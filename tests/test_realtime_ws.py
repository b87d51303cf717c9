"""End-to-end WebSocket tests through the running app.

Learn: These use Starlette's TestClient (synchronous) because it runs the
app lifespan, so the hub, session store and tables are set up exactly as
in production. Persistence is checked through the client's portal, on the
app's own event loop, after flushing the hub's pending writes.
"""

import pytest
from starlette.websockets import WebSocketDisconnect

from _helpers import PASSWORD
from vitrina.config import settings
from vitrina.db.engine import products_engine
from vitrina.realtime.hub import get_hub
from vitrina.stores.products import ProductSink


def _initial_frames(ws):
    products = ws.receive_json()
    messages = ws.receive_json()
    assert products["type"] == "products"
    assert messages["type"] == "messages"
    return products["data"], messages["data"]


def _stored_products(client):
    """Wait for pending sink writes, then read the table on the app loop."""
    client.portal.call(get_hub().flush)
    return client.portal.call(ProductSink(products_engine).fetch_all)


def test_product_update_reaches_other_clients(live_client):
    with live_client.websocket_connect("/ws") as a, live_client.websocket_connect("/ws") as b:
        # Hub sends each client its own snapshot, in connection order
        assert _initial_frames(a) == ([], [])
        assert _initial_frames(b) == ([], [])

        a.send_json({"type": "update-products", "data": {"name": "x"}})

        frame = b.receive_json()
        assert frame == {"type": "products", "data": [{"name": "x"}]}
        assert a.receive_json() == frame

    assert {"name": "x"} in _stored_products(live_client)


def test_chat_update_reaches_all_clients(live_client):
    with live_client.websocket_connect("/ws") as a, live_client.websocket_connect("/ws") as b:
        _initial_frames(a)
        _initial_frames(b)

        b.send_json({"type": "update-chat", "data": {"text": "hi"}})

        for ws in (a, b):
            frame = ws.receive_json()
            assert frame["type"] == "messages"
            assert {"text": "hi"} in frame["data"]


def test_new_client_gets_current_snapshot(live_client):
    with live_client.websocket_connect("/ws") as a:
        _initial_frames(a)
        a.send_json({"type": "update-products", "data": {"title": "Lamp", "price": 10}})
        a.send_json({"type": "update-chat", "data": {"text": "first"}})
        a.receive_json()
        a.receive_json()

        with live_client.websocket_connect("/ws") as late:
            products, messages = _initial_frames(late)
            assert products == [{"title": "Lamp", "price": 10}]
            assert messages == [{"text": "first"}]


def test_ping_and_garbage_frames(live_client):
    with live_client.websocket_connect("/ws") as ws:
        _initial_frames(ws)
        ws.send_text("not json")
        ws.send_text("[1, 2, 3]")
        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}


def test_unknown_events_and_binary_frames_are_skipped(live_client):
    with live_client.websocket_connect("/ws") as ws:
        _initial_frames(ws)
        ws.send_json({"type": "delete-everything", "data": {}})
        ws.send_bytes(b"\x00\x01")
        ws.send_json({"type": "update-chat", "data": "not an object"})
        ws.send_json({"type": "ping"})
        # Nothing was broadcast for the skipped frames; the socket stays open
        assert ws.receive_json() == {"type": "pong"}


class DeadPeer:
    async def send_json(self, data):
        raise RuntimeError("peer went away")


def test_dead_peer_does_not_block_broadcast(live_client):
    with live_client.websocket_connect("/ws") as a, live_client.websocket_connect("/ws") as b:
        _initial_frames(a)
        _initial_frames(b)
        hub = get_hub()
        dead = DeadPeer()
        live_client.portal.call(hub.connections.add, dead)

        a.send_json({"type": "update-products", "data": {"name": "x"}})

        assert b.receive_json() == {"type": "products", "data": [{"name": "x"}]}
        assert a.receive_json()["type"] == "products"
        assert dead not in hub.connections


def test_anonymous_socket_rejected_outside_development(live_client, monkeypatch):
    monkeypatch.setattr(settings, "environment", "production")

    with pytest.raises(WebSocketDisconnect) as exc:
        with live_client.websocket_connect("/ws") as ws:
            ws.receive_json()
    assert exc.value.code == 4001


def test_logged_in_socket_accepted_outside_development(live_client, monkeypatch):
    r = live_client.post(
        "/register",
        data={"username": "alice", "password": PASSWORD, "email": "alice@example.com"},
        follow_redirects=False,
    )
    assert r.status_code == 302
    monkeypatch.setattr(settings, "environment", "production")

    with live_client.websocket_connect("/ws") as ws:
        assert _initial_frames(ws) == ([], [])
