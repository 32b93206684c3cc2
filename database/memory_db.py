"""
In-memory store - dict arenas keyed by id, used for development and tests
"""
import copy
import logging
from typing import Any, Dict, Iterable, List, Optional

import config
from database.base import DuplicateUserError, Store, new_id, pick_campground_fields
from models import Campground, CampgroundId, Image, Review, ReviewId, User, UserId

logger = logging.getLogger(__name__)


class InMemoryStore(Store):
    """Arena-of-records store; callers always get copies, never the stored record"""

    def __init__(self):
        self._users: Dict[str, User] = {}
        self._usernames: Dict[str, str] = {}
        self._emails: Dict[str, str] = {}
        self._campgrounds: Dict[str, Campground] = {}
        self._reviews: Dict[str, Review] = {}

    async def connect(self):
        logger.info("Using in-memory store")

    # === Users ===

    async def create_user(self, username: str, email: str, password_hash: str) -> User:
        if username.lower() in self._usernames:
            raise DuplicateUserError("username")
        if email.lower() in self._emails:
            raise DuplicateUserError("email")
        user = User(id=UserId(new_id()), username=username, email=email,
                    password_hash=password_hash, created_at=config.get_now())
        self._users[user.id] = user
        self._usernames[username.lower()] = user.id
        self._emails[email.lower()] = user.id
        return copy.copy(user)

    async def get_user(self, user_id: str) -> Optional[User]:
        user = self._users.get(user_id)
        return copy.copy(user) if user else None

    async def get_users(self, user_ids: Iterable[str]) -> Dict[str, User]:
        return {uid: copy.copy(self._users[uid]) for uid in set(user_ids) if uid in self._users}

    async def get_user_by_username(self, username: str) -> Optional[User]:
        user_id = self._usernames.get((username or "").lower())
        return await self.get_user(user_id) if user_id else None

    # === Campgrounds ===

    async def list_campgrounds(self) -> List[Campground]:
        return [copy.deepcopy(c) for c in self._campgrounds.values()]

    async def get_campground(self, campground_id: str) -> Optional[Campground]:
        campground = self._campgrounds.get(campground_id)
        return copy.deepcopy(campground) if campground else None

    async def create_campground(self, owner_id: str, fields: Dict[str, Any], images: List[Image]) -> Campground:
        if owner_id not in self._users:
            raise ValueError(f"Unknown owner {owner_id}")
        values = pick_campground_fields(fields)
        campground = Campground(
            id=CampgroundId(new_id()),
            title=values['title'],
            location=values['location'],
            price=values['price'],
            description=values.get('description') or "",
            owner_id=UserId(owner_id),
            images=list(images),
            created_at=config.get_now(),
        )
        self._campgrounds[campground.id] = campground
        return copy.deepcopy(campground)

    async def update_campground(
        self, campground_id: str, fields: Dict[str, Any],
        add_images: List[Image] = None, remove_filenames: List[str] = None
    ) -> Optional[Campground]:
        campground = self._campgrounds.get(campground_id)
        if not campground:
            return None
        for key, value in pick_campground_fields(fields).items():
            setattr(campground, key, value)
        if remove_filenames:
            doomed = set(remove_filenames)
            campground.images = [i for i in campground.images if i.filename not in doomed]
        campground.images.extend(add_images or [])
        return copy.deepcopy(campground)

    async def delete_campground(self, campground_id: str) -> Optional[Campground]:
        campground = self._campgrounds.pop(campground_id, None)
        if not campground:
            return None
        for review_id in campground.review_ids:
            self._reviews.pop(review_id, None)
        return campground

    # === Reviews ===

    async def list_reviews(self, campground_id: str) -> List[Review]:
        campground = self._campgrounds.get(campground_id)
        if not campground:
            return []
        return [copy.copy(self._reviews[rid]) for rid in campground.review_ids if rid in self._reviews]

    async def get_review(self, review_id: str) -> Optional[Review]:
        review = self._reviews.get(review_id)
        return copy.copy(review) if review else None

    async def create_review(self, campground_id: str, author_id: str, rating: int, body: str) -> Optional[Review]:
        campground = self._campgrounds.get(campground_id)
        if not campground or author_id not in self._users:
            return None
        review = Review(
            id=ReviewId(new_id()),
            campground_id=CampgroundId(campground_id),
            author_id=UserId(author_id),
            rating=rating,
            body=body,
            created_at=config.get_now(),
        )
        self._reviews[review.id] = review
        campground.review_ids.append(review.id)
        return copy.copy(review)

    async def delete_review(self, campground_id: str, review_id: str) -> bool:
        review = self._reviews.get(review_id)
        if not review or review.campground_id != campground_id:
            return False
        del self._reviews[review_id]
        campground = self._campgrounds.get(campground_id)
        if campground and review_id in campground.review_ids:
            campground.review_ids.remove(review_id)
        return True
