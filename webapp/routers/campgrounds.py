"""Campgrounds router: listing, detail, create/update/delete for owners"""
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.datastructures import UploadFile

from models import Campground, Review, User
from utils.validation import validate
from webapp.boundary import ErrorBoundaryRoute
from webapp.context import RequestContext, get_context
from webapp.core import RouterConfig
from webapp.errors import NotFound
from webapp.routers import reviews
from webapp.schemas import CAMPGROUND_SCHEMA
from webapp.uploads import discard_images, select_files, upload_images
from webapp.utils import responses

logger = logging.getLogger(__name__)


@dataclass
class CampgroundSubmission:
    fields: Dict[str, Any]
    files: List[UploadFile] = field(default_factory=list)
    delete_images: List[str] = field(default_factory=list)


def campground_to_dict(campground: Campground, users: Dict[str, User] = None,
                       reviews_list: List[Review] = None) -> Dict[str, Any]:
    users = users or {}
    data = asdict(campground)
    data.pop("created_at", None)
    owner = users.get(campground.owner_id)
    data["owner"] = owner.username if owner else None
    if reviews_list is not None:
        data["reviews"] = [
            {"id": r.id, "rating": r.rating, "body": r.body, "author_id": r.author_id,
             "author": users[r.author_id].username if r.author_id in users else None}
            for r in reviews_list
        ]
    return data


def build_router(cfg: RouterConfig) -> APIRouter:
    router = APIRouter(prefix="/campgrounds", tags=["campgrounds"], route_class=ErrorBoundaryRoute)

    # === Pipeline dependencies ===

    def require_user(ctx: RequestContext = Depends(get_context)) -> RequestContext:
        return cfg.guard.require_authenticated(ctx)

    async def owned_campground(campground_id: str, ctx: RequestContext = Depends(get_context)) -> Campground:
        return await cfg.guard.require_owner(ctx, campground_id)

    async def campground_form(request: Request) -> CampgroundSubmission:
        form = await request.form()
        return CampgroundSubmission(
            fields=validate(CAMPGROUND_SCHEMA, form),
            files=select_files(form.getlist("images"), cfg.allowed_image_formats, cfg.max_upload_files),
            delete_images=[v for v in form.getlist("deleteImages") if isinstance(v, str)],
        )

    # === Routes ===

    @router.get("", response_class=HTMLResponse)
    async def index(request: Request):
        campgrounds = await cfg.store.list_campgrounds()
        if responses.wants_json(request):
            return responses.success([campground_to_dict(c) for c in campgrounds])
        return cfg.render(request, "campgrounds/index.html", campgrounds=campgrounds, title="All Campgrounds")

    @router.post("")
    async def create_campground(
        ctx: RequestContext = Depends(require_user),
        submission: CampgroundSubmission = Depends(campground_form),
    ):
        images = await upload_images(cfg.image_storage, submission.files)
        try:
            campground = await cfg.store.create_campground(ctx.user.id, submission.fields, images)
        except Exception:
            await discard_images(cfg.image_storage, images)
            raise

        logger.info(f"User {ctx.user.id} created campground {campground.id} with {len(images)} images")
        ctx.flash.success("Successfully made a new campground!")
        return RedirectResponse(f"/campgrounds/{campground.id}", status_code=303)

    @router.get("/new", response_class=HTMLResponse)
    async def new_form(request: Request, ctx: RequestContext = Depends(require_user)):
        return cfg.render(request, "campgrounds/new.html", title="New Campground")

    @router.get("/{campground_id}", response_class=HTMLResponse)
    async def show(request: Request, campground_id: str, ctx: RequestContext = Depends(get_context)):
        campground = await cfg.guard.load_campground(ctx, campground_id)
        reviews_list = await cfg.store.list_reviews(campground.id)
        users = await cfg.store.get_users([campground.owner_id] + [r.author_id for r in reviews_list])
        if responses.wants_json(request):
            return responses.success(campground_to_dict(campground, users, reviews_list))
        return cfg.render(
            request, "campgrounds/show.html", campground=campground, reviews=reviews_list,
            users=users, title=campground.title
        )

    @router.put("/{campground_id}")
    async def update_campground(
        ctx: RequestContext = Depends(require_user),
        submission: CampgroundSubmission = Depends(campground_form),
        campground: Campground = Depends(owned_campground),
    ):
        images = await upload_images(cfg.image_storage, submission.files)
        doomed = set(submission.delete_images)
        removed = [i for i in campground.images if i.filename in doomed]
        try:
            updated = await cfg.store.update_campground(
                campground.id, submission.fields, images, [i.filename for i in removed]
            )
        except Exception:
            await discard_images(cfg.image_storage, images)
            raise
        if updated is None:
            await discard_images(cfg.image_storage, images)
            raise NotFound("Cannot find that campground!")

        await discard_images(cfg.image_storage, removed)
        ctx.flash.success("Successfully updated campground!")
        return RedirectResponse(f"/campgrounds/{updated.id}", status_code=303)

    @router.delete("/{campground_id}")
    async def delete_campground(
        ctx: RequestContext = Depends(require_user),
        campground: Campground = Depends(owned_campground),
    ):
        deleted = await cfg.store.delete_campground(campground.id)
        if deleted is None:
            # removed by a concurrent request after the ownership check
            raise NotFound("Cannot find that campground!")

        await discard_images(cfg.image_storage, deleted.images)
        logger.info(f"User {ctx.user.id} deleted campground {deleted.id}")
        ctx.flash.success("Successfully deleted campground")
        return RedirectResponse("/campgrounds", status_code=303)

    @router.get("/{campground_id}/edit", response_class=HTMLResponse)
    async def edit_form(request: Request, campground: Campground = Depends(owned_campground)):
        return cfg.render(request, "campgrounds/edit.html", campground=campground, title=f"Edit {campground.title}")

    router.include_router(reviews.build_router(cfg), prefix="/{campground_id}/reviews")

    return router
