"""WebSocket endpoint — the realtime channel.

Learn: Each browser tab opens /ws. The handler:
1. Resolves the session cookie against the session store
2. Rejects anonymous sockets outside development (code 4001)
3. Registers with the hub, which sends the products + messages snapshot
4. Feeds every client frame to the hub until the client disconnects

Frames are JSON text: {"type": "update-chat", "data": {...}}. Binary frames,
invalid JSON and non-object frames are skipped.
"""

import json
from typing import Optional

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from vitrina.auth.dependencies import SESSION_USER_KEY
from vitrina.auth.sessions import get_session_store
from vitrina.config import settings
from vitrina.realtime.hub import get_hub

logger = structlog.get_logger()
router = APIRouter()


async def _session_username(websocket: WebSocket) -> Optional[str]:
    token = websocket.cookies.get(settings.session_cookie_name)
    if not token:
        return None
    data = await get_session_store().load(token)
    return (data or {}).get(SESSION_USER_KEY)


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket):
    username = await _session_username(websocket)

    if not username and settings.environment != "development":
        await websocket.close(code=4001, reason="Authentication required")
        return

    await websocket.accept()
    structlog.contextvars.bind_contextvars(username=username)

    hub = get_hub()
    await hub.connect(websocket)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            text = message.get("text")
            if text is None:
                logger.debug("vitrina.ws.binary_frame")
                continue
            try:
                frame = json.loads(text)
            except json.JSONDecodeError:
                logger.debug("vitrina.ws.bad_frame")
                continue
            if not isinstance(frame, dict):
                continue

            if frame.get("type") == "ping":
                await websocket.send_text(json.dumps({"type": "pong"}))
                continue

            await hub.dispatch(frame.get("type"), frame.get("data"))
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(websocket)
        if websocket.client_state == WebSocketState.CONNECTED:
            await websocket.close()
