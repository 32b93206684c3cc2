"""Authentication router: register, login, logout"""
import asyncio
import logging
from typing import Optional

import bcrypt
from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from database import DuplicateUserError
from utils.validation import SchemaError, validate
from webapp.boundary import ErrorBoundaryRoute
from webapp.context import RequestContext, get_context
from webapp.core import RouterConfig
from webapp.schemas import LOGIN_SCHEMA, REGISTER_SCHEMA

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72
LOGIN_FAILED = "Password or username is incorrect"


def _encode(password: str) -> bytes:
    return password.encode('utf-8')[:BCRYPT_MAX_BYTES]


async def hash_password(password: str) -> str:
    hashed = await asyncio.to_thread(bcrypt.hashpw, _encode(password), bcrypt.gensalt())
    return hashed.decode('utf-8')


_dummy_hash: Optional[bytes] = None


async def _get_dummy_hash() -> bytes:
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = await asyncio.to_thread(bcrypt.hashpw, b"not-a-real-password", bcrypt.gensalt())
    return _dummy_hash


async def verify_password(password: str, password_hash: str = None) -> bool:
    """Always pays for one bcrypt check so unknown users and bad passwords look alike"""
    stored = password_hash.encode('utf-8') if password_hash else await _get_dummy_hash()
    matched = await asyncio.to_thread(bcrypt.checkpw, _encode(password), stored)
    return matched and password_hash is not None


def build_router(cfg: RouterConfig) -> APIRouter:
    router = APIRouter(tags=["auth"], route_class=ErrorBoundaryRoute)

    @router.get("/register", response_class=HTMLResponse)
    async def register_page(request: Request):
        return cfg.render(request, "users/register.html", title="Register")

    @router.post("/register")
    async def register(request: Request, ctx: RequestContext = Depends(get_context)):
        form = await request.form()
        try:
            data = validate(REGISTER_SCHEMA, form)
        except SchemaError as e:
            for violation in e.violations:
                ctx.flash.error(str(violation))
            return RedirectResponse("/register", status_code=303)

        password_hash = await hash_password(data["password"])
        try:
            user = await cfg.store.create_user(data["username"], data["email"], password_hash)
        except DuplicateUserError as e:
            ctx.flash.error(str(e))
            return RedirectResponse("/register", status_code=303)

        logger.info(f"Registered user {user.username} ({user.id})")
        ctx.login(user)
        ctx.flash.success("Welcome to Yelp Camp!")
        return RedirectResponse("/campgrounds", status_code=303)

    @router.get("/login", response_class=HTMLResponse)
    async def login_page(request: Request):
        return cfg.render(request, "users/login.html", title="Login")

    @router.post("/login")
    async def login(request: Request, ctx: RequestContext = Depends(get_context)):
        form = await request.form()
        try:
            data = validate(LOGIN_SCHEMA, form)
        except SchemaError:
            ctx.flash.error(LOGIN_FAILED)
            return RedirectResponse("/login", status_code=303)

        user = await cfg.store.get_user_by_username(data["username"])
        if not await verify_password(data["password"], user.password_hash if user else None):
            ctx.flash.error(LOGIN_FAILED)
            return RedirectResponse("/login", status_code=303)

        destination = ctx.pop_return_to("/campgrounds")
        ctx.login(user)
        ctx.flash.success("Welcome back!")
        return RedirectResponse(destination, status_code=303)

    @router.get("/logout")
    async def logout(ctx: RequestContext = Depends(get_context)):
        ctx.logout()
        ctx.flash.success("Goodbye!")
        return RedirectResponse("/campgrounds", status_code=303)

    return router
