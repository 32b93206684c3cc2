"""YelpCamp - FastAPI app factory with modular routers"""
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException

from utils.sessions import ServerSessionMiddleware
from webapp.boundary import CatchAllRoute, ErrorBoundaryRoute, respond_error
from webapp.context import resolve_identity
from webapp.core import AppDeps, RouterConfig
from webapp.errors import NotFound
from webapp.guards import OwnershipGuard
from webapp.middleware import MethodOverrideMiddleware, SecurityHeadersMiddleware
from webapp.routers import auth, campgrounds

logger = logging.getLogger(__name__)

# Paths
WEB_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = WEB_DIR / "templates"
STATIC_DIR = WEB_DIR / "static"

# Timing constants
SLOW_REQUEST_THRESHOLD = 3.0


def create_app(deps: AppDeps) -> FastAPI:
    """Build the application around explicitly constructed collaborators"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        await deps.store.connect()
        logger.info("Store connected")

        yield

        # Shutdown
        await deps.image_storage.close()
        await deps.session_store.close()
        await deps.store.close()

    app = FastAPI(title="YelpCamp", lifespan=lifespan)
    app.router.route_class = ErrorBoundaryRoute

    templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    app.state.templates = templates
    app.state.debug = deps.debug

    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
    if deps.uploads_dir:
        deps.uploads_dir.mkdir(parents=True, exist_ok=True)
        app.mount("/uploads", StaticFiles(directory=str(deps.uploads_dir)), name="uploads")

    # === Middleware ===

    @app.middleware("http")
    async def context_middleware(request: Request, call_next):
        """Resolve the session identity into the request context"""
        start_time = time.time()

        request.state.ctx = await resolve_identity(request.session, deps.store)

        user = request.state.ctx.user
        logger.info(f"➡️  {request.method} {request.url.path} (User: {user.username if user else 'anonymous'})")

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            logger.error(f"❌ Request failed: {request.method} {request.url.path} - {duration:.2f}s - {e}")
            raise

        duration = time.time() - start_time
        if duration > SLOW_REQUEST_THRESHOLD:
            logger.warning(f"🐢 Slow request: {request.method} {request.url.path} {duration:.2f}s")

        return response

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(MethodOverrideMiddleware)

    # Add Session Middleware LAST so it wraps everything (including consumers of session)
    app.add_middleware(
        ServerSessionMiddleware,
        store=deps.session_store,
        secret_key=deps.secret_key,
        session_cookie=deps.session_cookie,
        max_age=deps.session_max_age,
        touch_after=deps.session_touch_after,
        https_only=deps.session_https_only,
    )

    app.add_exception_handler(StarletteHTTPException, respond_error)

    # === Setup Routers ===

    cfg = RouterConfig(
        templates=templates,
        store=deps.store,
        guard=OwnershipGuard(deps.store),
        image_storage=deps.image_storage,
        allowed_image_formats=deps.allowed_image_formats,
        max_upload_files=deps.max_upload_files,
    )
    app.include_router(auth.build_router(cfg))
    app.include_router(campgrounds.build_router(cfg))

    @app.get("/", response_class=HTMLResponse)
    async def home(request: Request):
        return cfg.render(request, "home.html", title="YelpCamp")

    # Must stay last: anything unmatched becomes a 404
    async def not_found(path: str):
        raise NotFound("Page Not Found")

    app.router.add_api_route(
        "/{path:path}", not_found, methods=["GET"], include_in_schema=False, route_class_override=CatchAllRoute
    )

    return app
