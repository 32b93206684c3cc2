"""
PostgreSQL store - asyncpg pool, schema bootstrap, foreign keys enforce parent existence
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Iterable, List, Optional

import asyncpg

from database.base import DuplicateUserError, Store, new_id, pick_campground_fields
from models import Campground, Image, Review, User

logger = logging.getLogger(__name__)

# Timeout for acquiring connection from pool (seconds)
POOL_ACQUIRE_TIMEOUT = 10.0


class DBWrapper:
    """Consistent interface for asyncpg"""
    def __init__(self, conn):
        self.conn = conn

    async def execute(self, query: str, *args):
        return await self.conn.execute(query, *args)

    async def executemany(self, query: str, args_list):
        """Execute query with multiple argument sets (batch insert/update)"""
        return await self.conn.executemany(query, args_list)

    async def fetch(self, query: str, *args) -> List[Dict]:
        return [dict(r) for r in await self.conn.fetch(query, *args)]

    async def fetchrow(self, query: str, *args) -> Optional[Dict]:
        row = await self.conn.fetchrow(query, *args)
        return dict(row) if row else None

    async def fetchval(self, query: str, *args) -> Any:
        return await self.conn.fetchval(query, *args)

    def transaction(self):
        return self.conn.transaction()


class PostgresStore(Store):
    """Manages the connection pool and queries for the campground database"""

    def __init__(self, database_url: str, min_size: int = 2, max_size: int = 10):
        self.database_url = database_url
        self.min_size = min_size
        self.max_size = max_size
        self._pool = None

    async def connect(self):
        """Initialize connection pool"""
        if self._pool:
            return

        logger.info("Connecting to PostgreSQL...")
        self._pool = await asyncpg.create_pool(
            self.database_url,
            min_size=self.min_size,
            max_size=self.max_size,
            max_inactive_connection_lifetime=300,
            command_timeout=60,
        )
        logger.info(f"PostgreSQL pool initialized (min={self.min_size}, max={self.max_size})")

        await self._create_schema()

    async def close(self):
        """Close connection pool"""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("PostgreSQL pool closed")

    @asynccontextmanager
    async def get_connection(self):
        """Get connection from pool with timeout"""
        if not self._pool:
            raise RuntimeError("Database pool not initialized")

        try:
            conn = await asyncio.wait_for(self._pool.acquire(), timeout=POOL_ACQUIRE_TIMEOUT)
        except asyncio.TimeoutError:
            logger.error(f"Failed to acquire DB connection within {POOL_ACQUIRE_TIMEOUT}s - pool may be exhausted")
            raise RuntimeError(f"Database connection pool timeout after {POOL_ACQUIRE_TIMEOUT}s")
        try:
            yield DBWrapper(conn)
        finally:
            await self._pool.release(conn)

    async def _create_schema(self):
        async with self.get_connection() as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    username TEXT NOT NULL,
                    email TEXT NOT NULL,
                    password_hash TEXT NOT NULL,
                    created_at TIMESTAMPTZ DEFAULT NOW()
                );
            """)
            await db.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_users_username ON users(LOWER(username))")
            await db.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_users_email ON users(LOWER(email))")

            await db.execute("""
                CREATE TABLE IF NOT EXISTS campgrounds (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT DEFAULT '',
                    location TEXT NOT NULL,
                    price DOUBLE PRECISION NOT NULL CHECK (price >= 0),
                    owner_id TEXT NOT NULL REFERENCES users(id),
                    created_at TIMESTAMPTZ DEFAULT NOW()
                );
            """)

            await db.execute("""
                CREATE TABLE IF NOT EXISTS campground_images (
                    id BIGSERIAL PRIMARY KEY,
                    campground_id TEXT NOT NULL REFERENCES campgrounds(id) ON DELETE CASCADE,
                    url TEXT NOT NULL,
                    filename TEXT NOT NULL
                );
            """)

            await db.execute("""
                CREATE TABLE IF NOT EXISTS reviews (
                    seq BIGSERIAL,
                    id TEXT PRIMARY KEY,
                    campground_id TEXT NOT NULL REFERENCES campgrounds(id) ON DELETE CASCADE,
                    author_id TEXT NOT NULL REFERENCES users(id),
                    rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
                    body TEXT NOT NULL,
                    created_at TIMESTAMPTZ DEFAULT NOW()
                );
            """)

            await db.execute("CREATE INDEX IF NOT EXISTS idx_images_campground ON campground_images(campground_id, id)")
            await db.execute("CREATE INDEX IF NOT EXISTS idx_reviews_campground ON reviews(campground_id, seq)")

            logger.info("Schema initialized")

    # === Users ===

    async def create_user(self, username: str, email: str, password_hash: str) -> User:
        async with self.get_connection() as db:
            try:
                row = await db.fetchrow(
                    "INSERT INTO users (id, username, email, password_hash) VALUES ($1, $2, $3, $4) RETURNING *",
                    new_id(), username, email, password_hash
                )
            except asyncpg.UniqueViolationError as e:
                raise DuplicateUserError("email" if "email" in (e.constraint_name or "") else "username")
            return User.from_db_row(row)

    async def get_user(self, user_id: str) -> Optional[User]:
        async with self.get_connection() as db:
            row = await db.fetchrow("SELECT * FROM users WHERE id = $1", user_id)
            return User.from_db_row(row) if row else None

    async def get_users(self, user_ids: Iterable[str]) -> Dict[str, User]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        async with self.get_connection() as db:
            rows = await db.fetch("SELECT * FROM users WHERE id = ANY($1::text[])", ids)
            return {row['id']: User.from_db_row(row) for row in rows}

    async def get_user_by_username(self, username: str) -> Optional[User]:
        async with self.get_connection() as db:
            row = await db.fetchrow("SELECT * FROM users WHERE LOWER(username) = LOWER($1)", username)
            return User.from_db_row(row) if row else None

    # === Campgrounds ===

    async def _load_campground(self, db: DBWrapper, row: dict) -> Campground:
        images = await db.fetch(
            "SELECT url, filename FROM campground_images WHERE campground_id = $1 ORDER BY id", row['id']
        )
        review_ids = [r['id'] for r in await db.fetch(
            "SELECT id FROM reviews WHERE campground_id = $1 ORDER BY seq", row['id']
        )]
        return Campground.from_db_row(row, images, review_ids)

    async def list_campgrounds(self) -> List[Campground]:
        async with self.get_connection() as db:
            rows = await db.fetch("SELECT * FROM campgrounds ORDER BY created_at")
            images = await db.fetch("SELECT campground_id, url, filename FROM campground_images ORDER BY id")
            by_campground: Dict[str, List[dict]] = {}
            for image in images:
                by_campground.setdefault(image['campground_id'], []).append(image)
            return [Campground.from_db_row(row, by_campground.get(row['id'])) for row in rows]

    async def get_campground(self, campground_id: str) -> Optional[Campground]:
        async with self.get_connection() as db:
            row = await db.fetchrow("SELECT * FROM campgrounds WHERE id = $1", campground_id)
            return await self._load_campground(db, row) if row else None

    async def create_campground(self, owner_id: str, fields: Dict[str, Any], images: List[Image]) -> Campground:
        values = pick_campground_fields(fields)
        async with self.get_connection() as db:
            async with db.transaction():
                row = await db.fetchrow(
                    "INSERT INTO campgrounds (id, title, description, location, price, owner_id) "
                    "VALUES ($1, $2, $3, $4, $5, $6) RETURNING *",
                    new_id(), values['title'], values.get('description') or "",
                    values['location'], values['price'], owner_id
                )
                if images:
                    await db.executemany(
                        "INSERT INTO campground_images (campground_id, url, filename) VALUES ($1, $2, $3)",
                        [(row['id'], i.url, i.filename) for i in images]
                    )
                return await self._load_campground(db, row)

    async def update_campground(
        self, campground_id: str, fields: Dict[str, Any],
        add_images: List[Image] = None, remove_filenames: List[str] = None
    ) -> Optional[Campground]:
        values = pick_campground_fields(fields)
        async with self.get_connection() as db:
            async with db.transaction():
                exists = await db.fetchval("SELECT 1 FROM campgrounds WHERE id = $1 FOR UPDATE", campground_id)
                if not exists:
                    return None
                if values:
                    assignments = []
                    vals = []
                    for idx, (k, v) in enumerate(values.items(), start=1):
                        assignments.append(f"{k} = ${idx}")
                        vals.append(v)
                    vals.append(campground_id)
                    await db.execute(
                        f"UPDATE campgrounds SET {', '.join(assignments)} WHERE id = ${len(vals)}", *vals
                    )
                if remove_filenames:
                    await db.execute(
                        "DELETE FROM campground_images WHERE campground_id = $1 AND filename = ANY($2::text[])",
                        campground_id, list(remove_filenames)
                    )
                if add_images:
                    await db.executemany(
                        "INSERT INTO campground_images (campground_id, url, filename) VALUES ($1, $2, $3)",
                        [(campground_id, i.url, i.filename) for i in add_images]
                    )
                row = await db.fetchrow("SELECT * FROM campgrounds WHERE id = $1", campground_id)
                return await self._load_campground(db, row)

    async def delete_campground(self, campground_id: str) -> Optional[Campground]:
        async with self.get_connection() as db:
            async with db.transaction():
                row = await db.fetchrow("SELECT * FROM campgrounds WHERE id = $1 FOR UPDATE", campground_id)
                if not row:
                    return None
                campground = await self._load_campground(db, row)
                # reviews and images go with it (ON DELETE CASCADE)
                result = await db.execute("DELETE FROM campgrounds WHERE id = $1", campground_id)
                return campground if result == "DELETE 1" else None

    # === Reviews ===

    async def list_reviews(self, campground_id: str) -> List[Review]:
        async with self.get_connection() as db:
            rows = await db.fetch("SELECT * FROM reviews WHERE campground_id = $1 ORDER BY seq", campground_id)
            return [Review.from_db_row(row) for row in rows]

    async def get_review(self, review_id: str) -> Optional[Review]:
        async with self.get_connection() as db:
            row = await db.fetchrow("SELECT * FROM reviews WHERE id = $1", review_id)
            return Review.from_db_row(row) if row else None

    async def create_review(self, campground_id: str, author_id: str, rating: int, body: str) -> Optional[Review]:
        async with self.get_connection() as db:
            try:
                row = await db.fetchrow(
                    "INSERT INTO reviews (id, campground_id, author_id, rating, body) "
                    "SELECT $1, c.id, $3, $4, $5 FROM campgrounds c WHERE c.id = $2 RETURNING *",
                    new_id(), campground_id, author_id, rating, body
                )
            except asyncpg.ForeignKeyViolationError:
                # parent deleted between the SELECT and the FK check
                return None
            return Review.from_db_row(row) if row else None

    async def delete_review(self, campground_id: str, review_id: str) -> bool:
        async with self.get_connection() as db:
            result = await db.execute(
                "DELETE FROM reviews WHERE id = $1 AND campground_id = $2", review_id, campground_id
            )
            return result == "DELETE 1"
