"""Per-request context: resolved identity, guard-loaded resources, flash queue"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, MutableMapping, Optional

from fastapi import Request

from database import Store
from models import Campground, Review, User

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"
SESSION_FLASH_KEY = "flash"
SESSION_RETURN_TO_KEY = "return_to"


class Flash:
    """One-shot messages kept in the session until a page is rendered"""

    CHANNELS = ("success", "error")

    def __init__(self, session: MutableMapping):
        self._session = session

    def add(self, channel: str, message: str):
        if channel not in self.CHANNELS:
            raise ValueError(f"Unknown flash channel: {channel}")
        queued = self._session.setdefault(SESSION_FLASH_KEY, {})
        queued.setdefault(channel, []).append(message)

    def success(self, message: str):
        self.add("success", message)

    def error(self, message: str):
        self.add("error", message)

    def consume(self) -> Dict[str, List[str]]:
        queued = self._session.pop(SESSION_FLASH_KEY, None) or {}
        return {channel: queued.get(channel, []) for channel in self.CHANNELS}


@dataclass
class RequestContext:
    session: MutableMapping
    user: Optional[User] = None
    campground: Optional[Campground] = None
    review: Optional[Review] = None
    flash: Flash = field(init=False)

    def __post_init__(self):
        self.flash = Flash(self.session)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def login(self, user: User):
        """Bind identity to a fresh session id"""
        regenerate = getattr(self.session, "regenerate", None)
        if regenerate:
            regenerate()
        self.session[SESSION_USER_KEY] = user.id
        self.user = user

    def logout(self):
        self.session.pop(SESSION_USER_KEY, None)
        self.user = None

    def pop_return_to(self, default: str) -> str:
        target = self.session.pop(SESSION_RETURN_TO_KEY, None)
        # local paths only
        if not target or not target.startswith("/") or target.startswith("//"):
            return default
        return target


async def resolve_identity(session: MutableMapping, store: Store) -> RequestContext:
    """Anonymous is a valid outcome; a missing or stale user id never raises"""
    ctx = RequestContext(session=session)
    user_id = session.get(SESSION_USER_KEY)
    if not user_id:
        return ctx
    try:
        ctx.user = await store.get_user(user_id)
    except Exception as e:
        logger.error(f"Failed to resolve identity {user_id}: {e}")
        return ctx
    if ctx.user is None:
        session.pop(SESSION_USER_KEY, None)
    return ctx


def get_context(request: Request) -> RequestContext:
    """Dependency: context attached by the identity middleware"""
    ctx = getattr(request.state, "ctx", None)
    if ctx is None:
        ctx = RequestContext(session=request.session if "session" in request.scope else {})
        request.state.ctx = ctx
    return ctx


def get_template_context(request: Request, **kwargs) -> Dict[str, Any]:
    """Helper to add common context variables; consumes queued flash messages"""
    ctx = get_context(request)
    context = {
        "request": request,
        "current_user": ctx.user,
        "flash": ctx.flash.consume(),
    }
    context.update(kwargs)
    return context
