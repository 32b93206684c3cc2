"""
Error boundary: every route handler (and its dependencies) runs inside
ErrorBoundaryRoute, so any failure ends up in respond_error and produces
exactly one response.
"""
import logging
from typing import Callable

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import RedirectResponse
from fastapi.routing import APIRoute
from starlette.routing import Match
from starlette.types import Receive, Scope, Send
from starlette.exceptions import HTTPException as StarletteHTTPException

from utils.validation import SchemaError, Violation
from webapp.context import SESSION_RETURN_TO_KEY, get_context, get_template_context
from webapp.errors import (
    AppError, Forbidden, NotAuthenticated, NotFound, UpstreamFailure, ValidationFailed
)
from webapp.utils import responses

logger = logging.getLogger(__name__)

LOGIN_URL = "/login"


def as_app_error(request: Request, exc: Exception) -> AppError:
    if isinstance(exc, AppError):
        return exc
    if isinstance(exc, SchemaError):
        return ValidationFailed(exc.violations)
    if isinstance(exc, RequestValidationError):
        violations = [
            Violation(".".join(str(p) for p in e.get("loc", ())[1:]) or "request", e.get("msg", "invalid"))
            for e in exc.errors()
        ]
        return ValidationFailed(violations)
    if isinstance(exc, StarletteHTTPException):
        if exc.status_code == 404:
            return NotFound(str(exc.detail))
        err = AppError(str(exc.detail))
        err.status_code = exc.status_code
        return err
    logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
    err = UpstreamFailure()
    if getattr(request.app.state, "debug", False):
        err.message = f"{type(exc).__name__}: {exc}"
    return err


async def respond_error(request: Request, exc: Exception) -> Response:
    err = as_app_error(request, exc)
    if isinstance(err, UpstreamFailure) and err.__cause__ is not None:
        logger.error(f"Upstream failure on {request.method} {request.url.path}: {err.__cause__}")
    elif err.status_code < 500:
        logger.info(f"{request.method} {request.url.path} -> {err.status_code} {err.message}")

    if responses.wants_json(request):
        errors = [str(v) for v in getattr(err, "violations", [])]
        return responses.error(err.message, errors, status_code=err.status_code)

    ctx = get_context(request)
    if isinstance(err, NotAuthenticated):
        if request.method == "GET":
            ctx.session[SESSION_RETURN_TO_KEY] = request.url.path + (f"?{request.url.query}" if request.url.query else "")
        ctx.flash.error(err.message)
        return RedirectResponse(LOGIN_URL, status_code=303)
    if isinstance(err, Forbidden):
        ctx.flash.error(err.message)
        return RedirectResponse(err.redirect_to, status_code=303)

    templates = request.app.state.templates
    return templates.TemplateResponse(
        request, "error.html",
        get_template_context(request, status_code=err.status_code, message=err.message,
                             violations=getattr(err, "violations", []), title="Error"),
        status_code=err.status_code,
    )


class ErrorBoundaryRoute(APIRoute):
    """Route class that forwards any failure to respond_error"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # same as a plain Starlette Route
        if "GET" in self.methods:
            self.methods.add("HEAD")

    def get_route_handler(self) -> Callable:
        handler = super().get_route_handler()

        async def guarded_handler(request: Request) -> Response:
            try:
                return await handler(request)
            except Exception as exc:
                return await respond_error(request, exc)

        return guarded_handler


class CatchAllRoute(ErrorBoundaryRoute):
    """Accepts every method, including ones no other route declares"""

    def matches(self, scope: Scope):
        match, child_scope = super().matches(scope)
        if match == Match.PARTIAL:
            match = Match.FULL
        return match, child_scope

    async def handle(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.app(scope, receive, send)
