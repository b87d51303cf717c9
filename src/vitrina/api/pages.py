"""Page routes — the session/auth gate.

Learn: Per-request state machine:
- Anonymous → POST /register → logged in, or /failregister
- Anonymous → POST /login → logged in, or /faillogin (no session created)
- Authenticated → GET /logout → session destroyed
- Anonymous on a protected page → /login

Failures are raised as VitrinaError subclasses; the handlers registered in
main.create_app() turn them into the redirects above.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Form
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from vitrina.api import views
from vitrina.auth.dependencies import (
    SESSION_USER_KEY,
    get_current_user,
    get_current_user_optional,
    get_session,
    login_session,
)
from vitrina.auth.sessions import ServerSession
from vitrina.db.engine import get_db
from vitrina.db.models import User
from vitrina.errors import InvalidCredentials
from vitrina.stores.users import UserStore

logger = structlog.get_logger()
router = APIRouter()

VISIT_COUNTER_KEY = "contador"


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=302)


@router.get("/")
async def index():
    return redirect("/datos")


# ─── Login ───────────────────────────────────────────────


@router.get("/login")
async def login_page(user: Optional[User] = Depends(get_current_user_optional)):
    if user:
        return redirect("/datos")
    return HTMLResponse(views.LOGIN_PAGE)


@router.post("/login")
async def login(
    username: str = Form(""),
    password: str = Form(""),
    session: ServerSession = Depends(get_session),
    db: AsyncSession = Depends(get_db),
):
    """Check credentials and bind the username to the session."""
    store = UserStore(db)
    user = await store.find_by_username(username) if username else None

    if not user or not store.verify(password, user.password_hash):
        logger.info("vitrina.auth.login_failed", username=username)
        raise InvalidCredentials(username)

    login_session(session, user)
    logger.info("vitrina.auth.login", username=username)
    return redirect("/datos")


@router.get("/faillogin")
async def login_failed():
    return HTMLResponse(views.LOGIN_ERROR_PAGE)


# ─── Register ────────────────────────────────────────────


@router.get("/register")
async def register_page(user: Optional[User] = Depends(get_current_user_optional)):
    if user:
        return redirect("/datos")
    return HTMLResponse(views.REGISTER_PAGE)


@router.post("/register")
async def register(
    username: str = Form(""),
    password: str = Form(""),
    email: str = Form(""),
    session: ServerSession = Depends(get_session),
    db: AsyncSession = Depends(get_db),
):
    """Create the account and log it in straight away."""
    user = await UserStore(db).create(username, password, email)
    login_session(session, user)
    return redirect("/")


@router.get("/failregister")
async def register_failed():
    return HTMLResponse(views.REGISTER_ERROR_PAGE)


# ─── Authenticated pages ────────────────────────────────


@router.get("/datos")
async def datos(
    user: User = Depends(get_current_user),
    session: ServerSession = Depends(get_session),
):
    """Main page. Every view bumps the per-session visit counter."""
    session[VISIT_COUNTER_KEY] = session.get(VISIT_COUNTER_KEY, 0) + 1
    return HTMLResponse(views.DATOS_PAGE)


@router.get("/logout")
async def logout(session: ServerSession = Depends(get_session)):
    username = session.get(SESSION_USER_KEY)
    session.destroy()
    if username:
        logger.info("vitrina.auth.logout", username=username)
    return redirect("/")
