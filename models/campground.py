"""
Campground Model - Typed representation of a listed campground
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, NewType, Optional

from .user import UserId

CampgroundId = NewType("CampgroundId", str)


@dataclass(frozen=True)
class Image:
    """Remote image locator returned by the image storage"""
    url: str
    filename: str  # storage key, used to destroy the remote object


@dataclass
class Campground:
    """Represents a campground; owner_id is set once at creation"""
    id: CampgroundId
    title: str
    location: str
    price: float
    owner_id: UserId
    description: str = ""
    images: List[Image] = field(default_factory=list)
    review_ids: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None

    def is_owned_by(self, user_id: Optional[str]) -> bool:
        return user_id is not None and str(self.owner_id) == str(user_id)

    @classmethod
    def from_db_row(cls, row: dict, images: List[dict] = None, review_ids: List[str] = None) -> 'Campground':
        """Create Campground from database rows"""
        return cls(
            id=CampgroundId(row['id']),
            title=row['title'],
            location=row['location'],
            price=float(row['price']),
            owner_id=UserId(row['owner_id']),
            description=row.get('description') or "",
            images=[Image(url=i['url'], filename=i['filename']) for i in (images or [])],
            review_ids=list(review_ids or []),
            created_at=row.get('created_at'),
        )
