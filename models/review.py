"""
Review Model - A rating left on exactly one campground
"""
from dataclasses import dataclass
from datetime import datetime
from typing import NewType, Optional

from .campground import CampgroundId
from .user import UserId

ReviewId = NewType("ReviewId", str)

MIN_RATING = 1
MAX_RATING = 5


@dataclass
class Review:
    """Represents a review; author_id and campground_id never change"""
    id: ReviewId
    campground_id: CampgroundId
    author_id: UserId
    rating: int
    body: str
    created_at: Optional[datetime] = None

    def is_written_by(self, user_id: Optional[str]) -> bool:
        return user_id is not None and str(self.author_id) == str(user_id)

    @classmethod
    def from_db_row(cls, row: dict) -> 'Review':
        """Create Review from database row"""
        return cls(
            id=ReviewId(row['id']),
            campground_id=CampgroundId(row['campground_id']),
            author_id=UserId(row['author_id']),
            rating=int(row['rating']),
            body=row['body'],
            created_at=row.get('created_at'),
        )
