"""
Database module - store interface and its Postgres / in-memory backends
"""
from database.base import Store, DuplicateUserError, ALLOWED_CAMPGROUND_FIELDS
from database.memory_db import InMemoryStore
from database.pg_db import PostgresStore, DBWrapper

__all__ = [
    'Store', 'DuplicateUserError', 'ALLOWED_CAMPGROUND_FIELDS',
    'InMemoryStore', 'PostgresStore', 'DBWrapper',
]
