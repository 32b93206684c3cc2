"""
Store interface - one addressable arena per entity, relationships by typed id
"""
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from models import Campground, Image, Review, User

# Whitelist of fields a campground update may touch; owner_id is never one of them
ALLOWED_CAMPGROUND_FIELDS = {'title', 'location', 'price', 'description'}


class DuplicateUserError(Exception):
    """Username or email already registered"""

    def __init__(self, field: str):
        super().__init__(f"A user with that {field} is already registered")
        self.field = field


def new_id() -> str:
    return uuid.uuid4().hex


def pick_campground_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in fields.items() if k in ALLOWED_CAMPGROUND_FIELDS}


class Store(ABC):
    """Async persistence contract shared by the Postgres and in-memory backends"""

    async def connect(self):
        """Open connections / create schema"""

    async def close(self):
        """Release connections"""

    # === Users ===

    @abstractmethod
    async def create_user(self, username: str, email: str, password_hash: str) -> User:
        ...

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    async def get_users(self, user_ids: Iterable[str]) -> Dict[str, User]:
        ...

    @abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[User]:
        ...

    # === Campgrounds ===

    @abstractmethod
    async def list_campgrounds(self) -> List[Campground]:
        ...

    @abstractmethod
    async def get_campground(self, campground_id: str) -> Optional[Campground]:
        ...

    @abstractmethod
    async def create_campground(self, owner_id: str, fields: Dict[str, Any], images: List[Image]) -> Campground:
        ...

    @abstractmethod
    async def update_campground(
        self, campground_id: str, fields: Dict[str, Any],
        add_images: List[Image] = None, remove_filenames: List[str] = None
    ) -> Optional[Campground]:
        """Returns the updated campground, or None when it no longer exists"""

    @abstractmethod
    async def delete_campground(self, campground_id: str) -> Optional[Campground]:
        """Deletes the campground and its reviews. Returns what was deleted, or None"""

    # === Reviews ===

    @abstractmethod
    async def list_reviews(self, campground_id: str) -> List[Review]:
        """Reviews of a campground in insertion order"""

    @abstractmethod
    async def get_review(self, review_id: str) -> Optional[Review]:
        ...

    @abstractmethod
    async def create_review(self, campground_id: str, author_id: str, rating: int, body: str) -> Optional[Review]:
        """Returns None when the parent campground does not exist"""

    @abstractmethod
    async def delete_review(self, campground_id: str, review_id: str) -> bool:
        """Only deletes a review that belongs to campground_id"""
