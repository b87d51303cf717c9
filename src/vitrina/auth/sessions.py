"""Server-side session storage.

Learn: the browser only ever holds an opaque random token. The session
data itself (username + visit counter) stays on the server, in one of
two backends:

1. MemorySessionStore — a dict in this process. Fine for a single
   worker; in cluster mode each worker sees only its own sessions.
2. RedisSessionStore — shared by every worker that points at the same
   Redis. Uses SET EX on creation and SET KEEPTTL on updates, so the
   expiry stays absolute (one hour from creation, never extended).

Sessions are only written once something is stored in them, so anonymous
page views and failed logins never create one.
"""

import json
import secrets
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

import redis.asyncio as aioredis
import structlog

from vitrina.config import settings

logger = structlog.get_logger()


def new_token() -> str:
    return secrets.token_urlsafe(32)


class ServerSession:
    """Per-request view of one session.

    Tracks whether the handler changed or destroyed it so the session
    middleware knows what to write back after the response.
    """

    def __init__(self, token: Optional[str] = None, data: Optional[dict] = None):
        self.token = token
        self.data: dict[str, Any] = data or {}
        self.modified = False
        self.destroyed = False

    @property
    def is_new(self) -> bool:
        return self.token is None

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.data[key] = value
        self.modified = True

    def __contains__(self, key: str) -> bool:
        return key in self.data

    def destroy(self) -> None:
        self.data = {}
        self.destroyed = True


class SessionStore(ABC):
    """Backend interface for session data keyed by token."""

    def __init__(self, max_age_seconds: int):
        self.max_age_seconds = max_age_seconds

    @abstractmethod
    async def load(self, token: str) -> Optional[dict]:
        """Return the session data, or None if unknown or expired."""

    @abstractmethod
    async def save(self, token: str, data: dict, *, new: bool) -> None:
        """Store session data. `new` starts the expiry clock."""

    @abstractmethod
    async def destroy(self, token: str) -> None:
        ...

    async def ping(self) -> None:
        """Raise if the backend is unreachable."""

    async def close(self) -> None:
        pass


class MemorySessionStore(SessionStore):
    """Sessions kept in this process's memory."""

    def __init__(self, max_age_seconds: int, clock=time.monotonic):
        super().__init__(max_age_seconds)
        self._clock = clock
        self._sessions: dict[str, tuple[dict, float]] = {}

    async def load(self, token: str) -> Optional[dict]:
        entry = self._sessions.get(token)
        if entry is None:
            return None
        data, expires_at = entry
        if self._clock() >= expires_at:
            del self._sessions[token]
            return None
        return dict(data)

    async def save(self, token: str, data: dict, *, new: bool) -> None:
        if new:
            self.purge_expired()
            expires_at = self._clock() + self.max_age_seconds
        else:
            entry = self._sessions.get(token)
            if entry is None:
                # Expired between load and save: nothing to update.
                return
            expires_at = entry[1]
        self._sessions[token] = (dict(data), expires_at)

    async def destroy(self, token: str) -> None:
        self._sessions.pop(token, None)

    def purge_expired(self) -> int:
        """Drop every expired session. Runs whenever a new session is saved."""
        now = self._clock()
        expired = [t for t, (_, expires_at) in self._sessions.items() if now >= expires_at]
        for token in expired:
            del self._sessions[token]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)


class RedisSessionStore(SessionStore):
    """Sessions in Redis, shared across worker processes."""

    def __init__(self, redis: aioredis.Redis, max_age_seconds: int):
        super().__init__(max_age_seconds)
        self.redis = redis

    @staticmethod
    def _key(token: str) -> str:
        return f"vitrina:sess:{token}"

    async def load(self, token: str) -> Optional[dict]:
        raw = await self.redis.get(self._key(token))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("vitrina.sessions.corrupt", token_prefix=token[:6])
            return None

    async def save(self, token: str, data: dict, *, new: bool) -> None:
        payload = json.dumps(data)
        if new:
            await self.redis.set(self._key(token), payload, ex=self.max_age_seconds)
        else:
            # xx: never resurrect an expired session without a TTL
            await self.redis.set(self._key(token), payload, keepttl=True, xx=True)

    async def destroy(self, token: str) -> None:
        await self.redis.delete(self._key(token))

    async def ping(self) -> None:
        await self.redis.ping()

    async def close(self) -> None:
        await self.redis.aclose()


# Process-wide store (initialized in lifespan)
_store: Optional[SessionStore] = None


async def init_session_store() -> SessionStore:
    """Pick the backend from settings and verify it is reachable."""
    global _store
    if settings.redis_url:
        redis = aioredis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
        store = RedisSessionStore(redis, settings.session_max_age_seconds)
        await store.ping()
        _store = store
    else:
        _store = MemorySessionStore(settings.session_max_age_seconds)
    return _store


async def close_session_store() -> None:
    global _store
    if _store:
        await _store.close()
        _store = None


def get_session_store() -> SessionStore:
    """Get the session store (must be initialized first)."""
    if _store is None:
        raise RuntimeError("Session store not initialized. Call init_session_store() first.")
    return _store


def set_session_store(store: Optional[SessionStore]) -> None:
    """Install a specific store, e.g. a MemorySessionStore in tests."""
    global _store
    _store = store
