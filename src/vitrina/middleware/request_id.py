"""Request ID + access log middleware.

Learn: every HTTP request is tagged with an id (the caller's X-Request-ID
or a fresh hex UUID) that is bound into structlog's contextvars together
with the method and path, so store and auth log lines for the request
carry it. One `vitrina.request` line is logged per request with the
status and duration, and the id is echoed back in the response header.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        started = time.monotonic()
        response: Response = await call_next(request)
        logger.info(
            "vitrina.request",
            status=response.status_code,
            duration_ms=round((time.monotonic() - started) * 1000, 1),
        )
        response.headers["X-Request-ID"] = request_id
        return response
