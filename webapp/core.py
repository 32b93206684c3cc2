"""
Web Core - explicitly constructed collaborators handed to the app factory and routers
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Request
from fastapi.templating import Jinja2Templates

from database import Store
from utils.sessions import SessionStore
from utils.storage import ImageStorage
from webapp.context import get_template_context
from webapp.guards import OwnershipGuard


@dataclass
class AppDeps:
    """Everything the application needs from the outside world"""
    store: Store
    session_store: SessionStore
    image_storage: ImageStorage
    secret_key: str
    debug: bool = False
    session_cookie: str = "session"
    session_max_age: int = 7 * 24 * 60 * 60
    session_touch_after: int = 24 * 60 * 60
    session_https_only: bool = False
    uploads_dir: Optional[Path] = None  # served at /uploads when images are stored locally
    allowed_image_formats: List[str] = field(default_factory=lambda: ["jpeg", "jpg", "png"])
    max_upload_files: int = 10


@dataclass
class RouterConfig:
    """Configuration object for router setup - avoids passing many arguments"""
    templates: Jinja2Templates
    store: Store
    guard: OwnershipGuard
    image_storage: ImageStorage
    allowed_image_formats: List[str]
    max_upload_files: int

    def context(self, request: Request, **kwargs) -> Dict[str, Any]:
        """Shorthand for get_template_context"""
        return get_template_context(request, **kwargs)

    def render(self, request: Request, name: str, status_code: int = 200, **kwargs):
        return self.templates.TemplateResponse(request, name, self.context(request, **kwargs), status_code=status_code)
