"""
Data Models - Typed dataclasses for YelpCamp entities
"""
from .user import User, UserId
from .campground import Campground, CampgroundId, Image
from .review import Review, ReviewId

__all__ = ['User', 'UserId', 'Campground', 'CampgroundId', 'Image', 'Review', 'ReviewId']
