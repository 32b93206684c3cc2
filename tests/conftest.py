import os
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Callable, Dict, List, Optional
from urllib.parse import urlsplit

import asyncpg
import pytest
from fastapi.testclient import TestClient

from database import InMemoryStore, PostgresStore
from utils.sessions import MemorySessionStore
from utils.storage import LocalImageStorage, StorageError
from webapp import AppDeps, create_app

PASSWORD = "secret123"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"pixels" * 32
JSON = {"Accept": "application/json"}


# --- helpers -----------------------------------------------------------------
def register(client: TestClient, username: str, password: str = PASSWORD) -> None:
    response = client.post(
        "/register",
        data={"username": username, "email": f"{username}@example.com", "password": password},
    )
    assert response.status_code == 303
    assert response.headers["location"] == "/campgrounds"


def campground_fields(**overrides) -> Dict[str, str]:
    fields = {
        "title": "Pine Ridge",
        "location": "Bend, Oregon",
        "price": "25",
        "description": "Tall pines and a creek",
    }
    fields.update(overrides)
    return fields


def png_files(*names: str) -> List[tuple]:
    return [("images", (name, PNG_BYTES + name.encode(), "image/png")) for name in names]


def create_campground(client: TestClient, files: Optional[List[tuple]] = None, **overrides) -> str:
    response = client.post("/campgrounds", data=campground_fields(**overrides), files=files)
    assert response.status_code == 303, response.text
    location = response.headers["location"]
    assert location.startswith("/campgrounds/")
    return location.rsplit("/", 1)[1]


def get_campground_json(client: TestClient, campground_id: str) -> dict:
    response = client.get(f"/campgrounds/{campground_id}", headers=JSON)
    assert response.status_code == 200
    return response.json()["data"]


def stored_files(uploads_dir: Path) -> List[Path]:
    return sorted(p for p in uploads_dir.iterdir() if p.is_file())


class FlakyStorage(LocalImageStorage):
    """Fails on the n-th upload"""

    def __init__(self, root: Path, fail_on: int) -> None:
        super().__init__(root)
        self.fail_on = fail_on
        self.calls = 0

    async def upload(self, file):
        self.calls += 1
        if self.calls == self.fail_on:
            raise StorageError("storage unavailable")
        return await super().upload(file)


@asynccontextmanager
async def throwaway_postgres():
    """PostgresStore on a database created for one test and dropped afterwards"""
    url = os.getenv("TEST_DATABASE_URL")
    if not url:
        pytest.skip("TEST_DATABASE_URL is not set")

    name = f"yelpcamp_test_{uuid.uuid4().hex[:12]}"
    admin = await asyncpg.connect(url)
    await admin.execute(f'CREATE DATABASE "{name}"')
    store = PostgresStore(urlsplit(url)._replace(path=f"/{name}").geturl(), min_size=1, max_size=4)
    try:
        await store.connect()
        yield store
    finally:
        await store.close()
        await admin.execute(f'DROP DATABASE IF EXISTS "{name}"')
        await admin.close()


# --- fixtures ----------------------------------------------------------------
@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def session_store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def uploads_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def image_storage(uploads_dir: Path) -> LocalImageStorage:
    return LocalImageStorage(uploads_dir, base_url="/uploads")


@pytest.fixture
def deps(store, session_store, image_storage, uploads_dir) -> AppDeps:
    return AppDeps(
        store=store,
        session_store=session_store,
        image_storage=image_storage,
        secret_key="test-secret",
        uploads_dir=uploads_dir,
    )


@pytest.fixture
def app(deps):
    return create_app(deps)


@pytest.fixture
def make_client(app) -> Callable[..., TestClient]:
    """Builds clients with their own cookie jar, optionally registered and logged in"""
    clients = []

    def factory(username: Optional[str] = None) -> TestClient:
        client = TestClient(app, follow_redirects=False)
        clients.append(client)
        if username:
            register(client, username)
        return client

    yield factory
    for client in clients:
        client.close()


@pytest.fixture
def anon(make_client) -> TestClient:
    return make_client()


@pytest.fixture
def alice(make_client) -> TestClient:
    return make_client("alice")


@pytest.fixture
def bob(make_client) -> TestClient:
    return make_client("bob")
