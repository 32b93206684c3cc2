"""
Server-side sessions: signed opaque id in a cookie, record kept in Redis or memory.
Records slide: each write-touch pushes expiry max_age into the future, and an
unchanged session is only re-written once touch_after seconds have passed.
"""
import copy
import logging
import secrets
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple

import orjson
from itsdangerous import BadSignature, Signer
from redis.asyncio import Redis
from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """Keyed by session id; a record is {"data": {...}, "touched_at": float}"""

    @abstractmethod
    async def get(self, session_id: str) -> Optional[Dict]:
        ...

    @abstractmethod
    async def set(self, session_id: str, record: Dict, ttl: int) -> None:
        ...

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        ...

    async def close(self):
        """Release backend connections"""


class MemorySessionStore(SessionStore):
    def __init__(self, clock: Callable[[], float] = time.time):
        self._records: Dict[str, Tuple[bytes, float]] = {}
        self._clock = clock

    async def get(self, session_id: str) -> Optional[Dict]:
        entry = self._records.get(session_id)
        if not entry:
            return None
        raw, expires_at = entry
        if self._clock() >= expires_at:
            del self._records[session_id]
            return None
        return orjson.loads(raw)

    async def set(self, session_id: str, record: Dict, ttl: int) -> None:
        now = self._clock()
        self._sweep(now)
        self._records[session_id] = (orjson.dumps(record), now + ttl)

    def _sweep(self, now: float):
        """Drop records whose ids will never be presented again"""
        expired = [sid for sid, (_, expires_at) in self._records.items() if now >= expires_at]
        for sid in expired:
            del self._records[sid]

    async def delete(self, session_id: str) -> None:
        self._records.pop(session_id, None)

    def __len__(self):
        return len(self._records)


class RedisSessionStore(SessionStore):
    def __init__(self, redis: Redis, prefix: str = "sess:"):
        self.redis = redis
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, **kwargs) -> 'RedisSessionStore':
        return cls(Redis.from_url(url), **kwargs)

    async def get(self, session_id: str) -> Optional[Dict]:
        raw = await self.redis.get(self.prefix + session_id)
        return orjson.loads(raw) if raw else None

    async def set(self, session_id: str, record: Dict, ttl: int) -> None:
        await self.redis.set(self.prefix + session_id, orjson.dumps(record), ex=ttl)

    async def delete(self, session_id: str) -> None:
        await self.redis.delete(self.prefix + session_id)

    async def close(self):
        await self.redis.close()


class ServerSession(dict):
    """Dict exposed as request.session; regenerate() issues a fresh id on the next write"""

    def __init__(self, data: Dict = None, session_id: str = None):
        super().__init__(data or {})
        self.session_id = session_id
        self.rotate = False

    def regenerate(self):
        self.rotate = True


class ServerSessionMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        store: SessionStore,
        secret_key: str,
        session_cookie: str = "session",
        max_age: int = 7 * 24 * 60 * 60,
        touch_after: int = 24 * 60 * 60,
        path: str = "/",
        same_site: str = "lax",
        https_only: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        self.app = app
        self.store = store
        self.signer = Signer(secret_key, salt="session-id")
        self.session_cookie = session_cookie
        self.max_age = max_age
        self.touch_after = touch_after
        self.path = path
        self.security_flags = "httponly; samesite=" + same_site
        if https_only:
            self.security_flags += "; secure"
        self.clock = clock

    def _unsign(self, cookie: Optional[str]) -> Optional[str]:
        if not cookie:
            return None
        try:
            return self.signer.unsign(cookie.encode("utf-8")).decode("utf-8")
        except BadSignature:
            return None

    async def _load(self, session_id: Optional[str]) -> Tuple[Optional[Dict], Optional[str]]:
        if not session_id:
            return None, None
        try:
            record = await self.store.get(session_id)
        except Exception as e:
            logger.error(f"Session store read failed: {e}")
            return None, None
        return (record, session_id) if record else (None, None)

    def _cookie(self, value: str, max_age: int) -> str:
        return f"{self.session_cookie}={value}; path={self.path}; Max-Age={max_age}; {self.security_flags}"

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        connection = HTTPConnection(scope)
        record, session_id = await self._load(self._unsign(connection.cookies.get(self.session_cookie)))
        data = record["data"] if record else {}
        touched_at = record.get("touched_at") if record else None
        initial = copy.deepcopy(data)
        scope["session"] = ServerSession(data, session_id)

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                await self._commit(scope["session"], initial, touched_at, message)
            await send(message)

        await self.app(scope, receive, send_wrapper)

    async def _commit(self, session: ServerSession, initial: Dict, touched_at: Optional[float], message: Message):
        headers = MutableHeaders(scope=message)
        current_id = session.session_id
        now = self.clock()
        try:
            if session.rotate and current_id:
                await self.store.delete(current_id)
                current_id = None

            if session:
                changed = current_id is None or dict(session) != initial
                stale = touched_at is None or now - touched_at >= self.touch_after
                if changed or stale:
                    current_id = current_id or secrets.token_urlsafe(32)
                    await self.store.set(current_id, {"data": dict(session), "touched_at": now}, self.max_age)
                    signed = self.signer.sign(current_id.encode("utf-8")).decode("utf-8")
                    headers.append("Set-Cookie", self._cookie(signed, self.max_age))
            elif current_id:
                await self.store.delete(current_id)
                headers.append("Set-Cookie", self._cookie("null", 0))
        except Exception as e:
            logger.error(f"Session store write failed: {e}")
