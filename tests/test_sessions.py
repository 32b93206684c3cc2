import fakeredis
import pytest
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from utils.sessions import MemorySessionStore, RedisSessionStore, ServerSessionMiddleware

HOUR = 60 * 60
DAY = 24 * HOUR


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# --- helpers -----------------------------------------------------------------
async def _read(request: Request) -> JSONResponse:
    return JSONResponse(dict(request.session))


async def _write(request: Request) -> JSONResponse:
    request.session["visits"] = request.session.get("visits", 0) + 1
    return JSONResponse(dict(request.session))


async def _clear(request: Request) -> JSONResponse:
    request.session.clear()
    return JSONResponse({})


async def _rotate(request: Request) -> JSONResponse:
    request.session.regenerate()
    request.session["user_id"] = "u1"
    return JSONResponse(dict(request.session))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> MemorySessionStore:
    return MemorySessionStore(clock=clock)


@pytest.fixture
def app(store: MemorySessionStore, clock: FakeClock) -> Starlette:
    app = Starlette(routes=[
        Route("/read", _read),
        Route("/write", _write),
        Route("/clear", _clear),
        Route("/rotate", _rotate),
    ])
    app.add_middleware(
        ServerSessionMiddleware, store=store, secret_key="k",
        max_age=7 * DAY, touch_after=DAY, clock=clock,
    )
    return app


@pytest.fixture
def client(app: Starlette) -> TestClient:
    return TestClient(app)


# --- tests -------------------------------------------------------------------
def test_empty_session_sets_no_cookie(client: TestClient, store: MemorySessionStore) -> None:
    response = client.get("/read")
    assert response.json() == {}
    assert "set-cookie" not in response.headers
    assert len(store) == 0


def test_write_then_read(client: TestClient, store: MemorySessionStore) -> None:
    response = client.get("/write")
    cookie = response.headers["set-cookie"]
    assert cookie.startswith("session=")
    assert "httponly" in cookie
    assert f"Max-Age={7 * DAY}" in cookie
    assert len(store) == 1

    assert client.get("/read").json() == {"visits": 1}
    assert client.get("/write").json() == {"visits": 2}


def test_unchanged_session_is_not_rewritten_within_touch_window(client: TestClient, clock: FakeClock) -> None:
    client.get("/write")
    clock.advance(HOUR)
    assert "set-cookie" not in client.get("/read").headers


def test_touch_after_threshold_slides_expiry(client: TestClient, clock: FakeClock) -> None:
    client.get("/write")
    clock.advance(DAY + 1)
    assert "set-cookie" in client.get("/read").headers

    # 7.5 days after creation but only 6.5 after the touch
    clock.advance(6.5 * DAY)
    assert client.get("/read").json() == {"visits": 1}


def test_session_expires_after_max_age_without_touch(client: TestClient, clock: FakeClock) -> None:
    client.get("/write")
    clock.advance(7 * DAY + 1)
    assert client.get("/read").json() == {}


def test_forged_cookie_is_anonymous(app: Starlette) -> None:
    with TestClient(app) as fresh:
        response = fresh.get("/read", headers={"Cookie": "session=not-a-signed-id"})
    assert response.status_code == 200
    assert response.json() == {}


def test_clearing_session_deletes_record(client: TestClient, store: MemorySessionStore) -> None:
    client.get("/write")
    response = client.get("/clear")
    assert "Max-Age=0" in response.headers["set-cookie"]
    assert len(store) == 0


def test_regenerate_issues_new_id(app: Starlette, client: TestClient, store: MemorySessionStore) -> None:
    client.get("/write")
    old_cookie = client.cookies["session"]

    assert client.get("/rotate").json() == {"visits": 1, "user_id": "u1"}
    assert client.cookies["session"] != old_cookie
    assert len(store) == 1

    with TestClient(app) as fresh:
        assert fresh.get("/read", headers={"Cookie": f"session={old_cookie}"}).json() == {}


@pytest.mark.asyncio
async def test_expired_records_are_swept_on_write(store: MemorySessionStore, clock: FakeClock) -> None:
    # written once for a client that never comes back
    await store.set("abandoned", {"data": {"return_to": "/campgrounds/new"}, "touched_at": clock()}, 7 * DAY)
    clock.advance(7 * DAY + 1)
    await store.set("fresh", {"data": {"visits": 1}, "touched_at": clock()}, 7 * DAY)

    assert len(store) == 1
    assert (await store.get("fresh"))["data"] == {"visits": 1}


# --- redis backend -----------------------------------------------------------
@pytest.fixture
def redis_store() -> RedisSessionStore:
    return RedisSessionStore(fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer()), prefix="test:")


@pytest.mark.asyncio
async def test_redis_store_sets_record_with_ttl(redis_store: RedisSessionStore) -> None:
    record = {"data": {"user_id": "u1"}, "touched_at": 1.0}
    await redis_store.set("abc", record, ttl=DAY)

    assert await redis_store.get("abc") == record
    assert 0 < await redis_store.redis.ttl("test:abc") <= DAY

    # a later write-touch pushes expiry out again
    await redis_store.redis.expire("test:abc", 10)
    await redis_store.set("abc", record, ttl=DAY)
    assert await redis_store.redis.ttl("test:abc") > 10


@pytest.mark.asyncio
async def test_redis_store_missing_and_deleted(redis_store: RedisSessionStore) -> None:
    assert await redis_store.get("nope") is None
    await redis_store.set("abc", {"data": {}, "touched_at": 1.0}, ttl=60)
    await redis_store.delete("abc")
    assert await redis_store.get("abc") is None
    assert await redis_store.redis.exists("test:abc") == 0


def test_middleware_round_trip_through_redis(redis_store: RedisSessionStore) -> None:
    app = Starlette(routes=[Route("/read", _read), Route("/write", _write), Route("/clear", _clear)])
    app.add_middleware(ServerSessionMiddleware, store=redis_store, secret_key="k", max_age=7 * DAY)

    with TestClient(app) as client:
        assert client.get("/write").json() == {"visits": 1}
        assert client.get("/read").json() == {"visits": 1}
        assert client.get("/write").json() == {"visits": 2}

        response = client.get("/clear")
        assert "Max-Age=0" in response.headers["set-cookie"]
        assert client.portal.call(redis_store.redis.keys, "test:*") == []
