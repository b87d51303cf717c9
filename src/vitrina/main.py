"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan wires up the process-wide pieces in dependency order:
document store tables → product sink table → session store → hub.

Request flow through middleware: RequestId → GZip → Session → handler.
"""

import os
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from vitrina import __version__
from vitrina.api import api_router
from vitrina.config import settings
from vitrina.errors import (
    DuplicateUser,
    IncompleteRegistration,
    InvalidCredentials,
    StoreUnavailable,
    Unauthenticated,
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: a database that is down at startup is logged, not fatal —
    requests touching it fail with 503 until it comes back. The session
    backend is required: an unreachable Redis aborts startup.
    """
    from vitrina.auth.sessions import close_session_store, init_session_store
    from vitrina.db.engine import (
        async_session_factory,
        engine,
        init_db,
        products_engine,
    )
    from vitrina.realtime.hub import close_hub, init_hub
    from vitrina.stores.products import ProductSink

    logger.info(
        "vitrina.starting",
        version=__version__,
        environment=settings.environment,
        mode=settings.mode,
        pid=os.getpid(),
    )

    try:
        await init_db()
        logger.info("vitrina.documents_connected")
    except SQLAlchemyError as e:
        logger.error("vitrina.documents_unavailable", error=str(e))

    sink = ProductSink(products_engine)
    try:
        await sink.ensure_table()
    except StoreUnavailable as e:
        logger.warning("vitrina.products_unavailable", error=str(e))

    store = await init_session_store()
    logger.info("vitrina.sessions_ready", backend=type(store).__name__)

    init_hub(sink, async_session_factory)

    yield

    logger.info("vitrina.shutdown")
    await close_hub()
    await close_session_store()
    await engine.dispose()
    await products_engine.dispose()


def _redirect(url: str):
    async def handler(request: Request, exc: Exception):
        return RedirectResponse(url, status_code=302)
    return handler


async def _store_unavailable(request: Request, exc: StoreUnavailable):
    logger.error("vitrina.store_unavailable", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=503, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Vitrina",
        description="Product showcase with live chat",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    from vitrina.middleware.request_id import RequestIdMiddleware
    from vitrina.middleware.session import SessionMiddleware

    app.add_middleware(SessionMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestIdMiddleware)

    # ── Error → response mapping ─────────────────────────────
    app.add_exception_handler(InvalidCredentials, _redirect("/faillogin"))
    app.add_exception_handler(DuplicateUser, _redirect("/failregister"))
    app.add_exception_handler(IncompleteRegistration, _redirect("/failregister"))
    app.add_exception_handler(Unauthenticated, _redirect("/login"))
    app.add_exception_handler(StoreUnavailable, _store_unavailable)

    app.include_router(api_router)

    from vitrina.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: vitrina.main:app)
app = create_app()
