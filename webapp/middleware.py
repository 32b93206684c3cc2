"""ASGI middleware: HTML form method override and security headers"""
from typing import Dict, List

from starlette.datastructures import MutableHeaders, QueryParams
from starlette.types import ASGIApp, Message, Receive, Scope, Send

OVERRIDABLE_METHODS = {"PUT", "PATCH", "DELETE"}

SCRIPT_SRC_URLS = [
    "https://stackpath.bootstrapcdn.com",
    "https://cdn.maptiler.com/",
    "https://kit.fontawesome.com",
    "https://cdnjs.cloudflare.com",
    "https://cdn.jsdelivr.net",
    "https://api.maptiler.com",
]
STYLE_SRC_URLS = [
    "https://kit-free.fontawesome.com",
    "https://stackpath.bootstrapcdn.com",
    "https://fonts.googleapis.com",
    "https://use.fontawesome.com",
    "https://cdn.maptiler.com",
    "https://cdn.jsdelivr.net",
    "https://api.maptiler.com",
]
CONNECT_SRC_URLS = [
    "https://cdn.maptiler.com",
    "https://api.maptiler.com",
    "https://cdn.jsdelivr.net",
]
IMG_SRC_URLS = [
    "https://res.cloudinary.com/",
    "https://images.unsplash.com/",
    "https://api.maptiler.com",
]


def build_csp(directives: Dict[str, List[str]]) -> str:
    return "; ".join(f"{name} {' '.join(values)}".strip() for name, values in directives.items())


DEFAULT_CSP = build_csp({
    "default-src": ["'self'"],
    "connect-src": ["'self'", *CONNECT_SRC_URLS],
    "script-src": ["'unsafe-inline'", "'self'", *SCRIPT_SRC_URLS],
    "style-src": ["'self'", "'unsafe-inline'", *STYLE_SRC_URLS],
    "worker-src": ["'self'", "blob:"],
    "child-src": ["blob:"],
    "object-src": ["'none'"],
    "img-src": ["'self'", "blob:", "data:", *IMG_SRC_URLS],
    "font-src": ["'self'", "data:"],
})


class MethodOverrideMiddleware:
    """POST /path?_method=DELETE is routed as DELETE /path"""

    def __init__(self, app: ASGIApp, param: str = "_method"):
        self.app = app
        self.param = param

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["method"] == "POST":
            override = QueryParams(scope.get("query_string", b"")).get(self.param, "").upper()
            if override in OVERRIDABLE_METHODS:
                scope["method"] = override
        await self.app(scope, receive, send)


class SecurityHeadersMiddleware:
    def __init__(self, app: ASGIApp, csp: str = DEFAULT_CSP):
        self.app = app
        self.headers = {
            "Content-Security-Policy": csp,
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "SAMEORIGIN",
            "Referrer-Policy": "no-referrer",
            "Cross-Origin-Opener-Policy": "same-origin",
        }

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in self.headers.items():
                    if name not in headers:
                        headers[name] = value
            await send(message)

        await self.app(scope, receive, send_wrapper)
