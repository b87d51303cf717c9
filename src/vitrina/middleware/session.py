"""Session middleware — loads and saves server-side sessions.

Learn: before the handler runs, the session cookie is resolved against
the session store and a ServerSession is attached to request.state.
After the handler, whatever it did is written back:

- destroyed → delete from the store, clear the cookie
- modified and new → mint a token, store with a fresh expiry, set cookie
- modified and existing → update in place (expiry unchanged)
- untouched → nothing is written

WebSocket scopes pass through untouched; the realtime endpoint resolves
the cookie itself.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from vitrina.auth.sessions import ServerSession, get_session_store, new_token
from vitrina.config import settings


class SessionMiddleware(BaseHTTPMiddleware):
    """Attach a ServerSession to every HTTP request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        store = get_session_store()
        cookie_name = settings.session_cookie_name

        token = request.cookies.get(cookie_name)
        data = await store.load(token) if token else None
        session = ServerSession(token if data is not None else None, data)
        request.state.session = session

        response: Response = await call_next(request)

        if session.destroyed:
            if session.token:
                await store.destroy(session.token)
            response.delete_cookie(cookie_name)
        elif session.modified:
            if session.is_new:
                session.token = new_token()
                await store.save(session.token, session.data, new=True)
                response.set_cookie(
                    cookie_name,
                    session.token,
                    max_age=store.max_age_seconds,
                    httponly=True,
                    samesite="lax",
                )
            else:
                await store.save(session.token, session.data, new=False)
        return response
