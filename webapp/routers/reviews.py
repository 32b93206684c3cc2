"""
Reviews router, mounted under /campgrounds/{campground_id}/reviews.

The parent campground id comes from the enclosing path; a review id is only
resolved within that campground.
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from models import Review
from utils.validation import validate
from webapp.boundary import ErrorBoundaryRoute
from webapp.context import RequestContext, get_context
from webapp.core import RouterConfig
from webapp.errors import NotFound
from webapp.schemas import REVIEW_SCHEMA

logger = logging.getLogger(__name__)


def build_router(cfg: RouterConfig) -> APIRouter:
    router = APIRouter(tags=["reviews"], route_class=ErrorBoundaryRoute)

    def require_user(ctx: RequestContext = Depends(get_context)) -> RequestContext:
        return cfg.guard.require_authenticated(ctx)

    async def review_form(request: Request) -> Dict[str, Any]:
        return validate(REVIEW_SCHEMA, await request.form())

    async def authored_review(campground_id: str, review_id: str,
                              ctx: RequestContext = Depends(get_context)) -> Review:
        return await cfg.guard.require_review_author(ctx, campground_id, review_id)

    @router.post("")
    async def create_review(
        campground_id: str,
        ctx: RequestContext = Depends(require_user),
        payload: Dict[str, Any] = Depends(review_form),
    ):
        campground = await cfg.guard.load_campground(ctx, campground_id)
        review = await cfg.store.create_review(campground.id, ctx.user.id, payload["rating"], payload["body"])
        if review is None:
            raise NotFound("Cannot find that campground!")

        logger.info(f"User {ctx.user.id} reviewed campground {campground.id}")
        ctx.flash.success("Created new review!")
        return RedirectResponse(f"/campgrounds/{campground.id}", status_code=303)

    @router.delete("/{review_id}")
    async def delete_review(
        campground_id: str,
        ctx: RequestContext = Depends(require_user),
        review: Review = Depends(authored_review),
    ):
        if not await cfg.store.delete_review(campground_id, review.id):
            raise NotFound("Cannot find that review!")

        ctx.flash.success("Successfully deleted review")
        return RedirectResponse(f"/campgrounds/{campground_id}", status_code=303)

    return router
