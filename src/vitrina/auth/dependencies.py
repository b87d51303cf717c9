"""FastAPI auth dependencies.

Learn: the session holds the username only. Each request looks the user
up again by that name, so a record changed or removed in the store is
picked up on the very next request without touching the session.

- get_session — the ServerSession attached by SessionMiddleware
- get_current_user_optional — User or None ("soft" auth)
- get_current_user — User, or Unauthenticated → redirect to /login
"""

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from vitrina.auth.sessions import ServerSession
from vitrina.db.engine import get_db
from vitrina.db.models import User
from vitrina.errors import Unauthenticated
from vitrina.stores.users import UserStore

SESSION_USER_KEY = "user"


def get_session(request: Request) -> ServerSession:
    session = getattr(request.state, "session", None)
    if session is None:
        raise RuntimeError("SessionMiddleware is not installed")
    return session


async def get_current_user_optional(
    session: ServerSession = Depends(get_session),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    username = session.get(SESSION_USER_KEY)
    if not username:
        return None
    return await UserStore(db).find_by_username(username)


async def get_current_user(
    user: Optional[User] = Depends(get_current_user_optional),
) -> User:
    if user is None:
        raise Unauthenticated()
    return user


def login_session(session: ServerSession, user: User) -> None:
    """Mark the session as belonging to `user`."""
    session[SESSION_USER_KEY] = user.username
