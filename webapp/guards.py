"""
Ownership guard.

Loads the targeted resource, compares its owner/author id with the resolved
identity and leaves the loaded record on the request context so the handler
does not load it a second time.
"""
import logging

from database import Store
from models import Campground, Review
from webapp.context import RequestContext
from webapp.errors import Forbidden, NotAuthenticated, NotFound

logger = logging.getLogger(__name__)


class OwnershipGuard:
    def __init__(self, store: Store):
        self.store = store

    def require_authenticated(self, ctx: RequestContext) -> RequestContext:
        if not ctx.is_authenticated:
            raise NotAuthenticated()
        return ctx

    async def load_campground(self, ctx: RequestContext, campground_id: str) -> Campground:
        campground = await self.store.get_campground(campground_id)
        if campground is None:
            raise NotFound("Cannot find that campground!")
        ctx.campground = campground
        return campground

    async def require_owner(self, ctx: RequestContext, campground_id: str) -> Campground:
        self.require_authenticated(ctx)
        campground = await self.load_campground(ctx, campground_id)
        if not campground.is_owned_by(ctx.user.id):
            logger.warning(f"User {ctx.user.id} is not the owner of campground {campground_id}")
            raise Forbidden(redirect_to=f"/campgrounds/{campground_id}")
        return campground

    async def require_review_author(self, ctx: RequestContext, campground_id: str, review_id: str) -> Review:
        self.require_authenticated(ctx)
        review = await self.store.get_review(review_id)
        # a review is only addressable through its own campground
        if review is None or review.campground_id != campground_id:
            raise NotFound("Cannot find that review!")
        if not review.is_written_by(ctx.user.id):
            logger.warning(f"User {ctx.user.id} is not the author of review {review_id}")
            raise Forbidden(redirect_to=f"/campgrounds/{campground_id}")
        ctx.review = review
        return review
