"""
User Model - Typed representation of a registered identity
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import NewType, Optional

UserId = NewType("UserId", str)


@dataclass
class User:
    """Represents a registered account usable for ownership checks"""
    id: UserId
    username: str
    email: str
    password_hash: str = field(repr=False)
    created_at: Optional[datetime] = None

    @classmethod
    def from_db_row(cls, row: dict) -> 'User':
        """Create User from database row"""
        return cls(
            id=UserId(row['id']),
            username=row['username'],
            email=row.get('email', ''),
            password_hash=row['password_hash'],
            created_at=row.get('created_at'),
        )
