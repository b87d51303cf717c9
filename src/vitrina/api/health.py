"""Health check endpoint.

Learn: Verifies the server is running and that both databases and the
session backend are reachable. Always answers 200; the body says which
dependency is degraded.
"""

from fastapi import APIRouter
from sqlalchemy import text

from vitrina import __version__
from vitrina.auth.sessions import get_session_store
from vitrina.db.engine import engine, products_engine

router = APIRouter()


@router.get("/health")
async def health_check():
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    for name, eng in (("documents", engine), ("products", products_engine)):
        try:
            async with eng.connect() as conn:
                await conn.execute(text("SELECT 1"))
            checks[name] = "ok"
        except Exception as e:
            checks[name] = f"error: {e}"

    try:
        await get_session_store().ping()
        checks["sessions"] = "ok"
    except Exception as e:
        checks["sessions"] = f"error: {e}"

    status = "healthy" if all(
        v == "ok" for k, v in checks.items() if k != "version"
    ) else "degraded"

    return {"status": status, **checks}
