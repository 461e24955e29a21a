"""
Test infrastructure for the article server.

Strategy
--------
- SQLite in-memory via aiosqlite, shared through a StaticPool so every
  session sees the same connection-scoped database.
- The app's get_db dependency is overridden with the test session factory.
  The override keeps the production unit-of-work contract: commit, then
  publish queued article events and drop stale cache keys; roll back and
  discard both on error.
- Tables are created before and dropped after each test.
- Redis is disabled for both the enum cache and the event publisher by
  setting their ``_redis`` to None; both degrade to no-ops.  Tests that
  care about published events install a ``FakeRedis`` recorder instead.
- ``SELECT ... FOR UPDATE`` compiles to a plain SELECT on SQLite, so the
  locking paths run unchanged.
"""
import json
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from app.cache import cache, discard_invalidations, invalidate_pending
from app.database import Base, get_db
from app.events import discard_pending, publish_pending, publisher
from app.main import app
from app.middleware import install_query_counter
from app.models import Board, Keyword, RegularArticle

# ---------------------------------------------------------------------------
# Test database engine (SQLite in-memory with aiosqlite)
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            discard_pending(session)
            discard_invalidations(session)
            raise
        await publish_pending(session)
        await invalidate_pending(session)


app.dependency_overrides[get_db] = override_get_db


class FakeRedis:
    """Records PUBLISH and DEL calls; optionally fails publishing."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.published: list[tuple[str, dict]] = []
        self.deleted: list[str] = []

    async def delete(self, *keys: str) -> int:
        self.deleted.extend(keys)
        return len(keys)

    async def publish(self, channel: str, message: str) -> int:
        if self.fail:
            raise ConnectionError("redis down")
        self.published.append((channel, json.loads(message)))
        return 1


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    cache._redis = None
    publisher._redis = None
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    publisher._redis = None
    cache._redis = None


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def fake_redis() -> FakeRedis:
    fake = FakeRedis()
    publisher._redis = fake
    return fake


@pytest.fixture
def fake_cache_redis() -> FakeRedis:
    fake = FakeRedis()
    cache._redis = fake
    return fake


@pytest_asyncio.fixture
async def boards(db_session: AsyncSession) -> dict[str, Board]:
    """FREE and QNA regular boards plus the well-known NOTICE and EVENT boards."""
    created = {}
    for order, name in enumerate(["FREE", "QNA", "NOTICE", "EVENT"]):
        board = Board(name=name, description=f"{name} board", display_order=order)
        db_session.add(board)
        created[name] = board
    await db_session.commit()
    return created


@pytest_asyncio.fixture
async def keywords(db_session: AsyncSession, boards) -> dict[str, Keyword]:
    created = {
        "python": Keyword(name="python", board_id=None, usage_count=0),
        "redis": Keyword(name="redis", board_id=None, usage_count=0),
        "tip": Keyword(name="tip", board_id=boards["FREE"].id, usage_count=0),
    }
    db_session.add_all(created.values())
    await db_session.commit()
    return created


BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_regular(article_id: str, board_id: int, minutes: int = 0, **kwargs) -> RegularArticle:
    """A REGULAR article stamped ``BASE_TIME + minutes``."""
    stamp = BASE_TIME + timedelta(minutes=minutes)
    fields = dict(
        id=article_id,
        title=f"title {article_id}",
        content=f"content {article_id}",
        writer_id="u1",
        board_id=board_id,
        view_count=0,
        created_at=stamp,
        updated_at=stamp,
    )
    fields.update(kwargs)
    return RegularArticle(**fields)


@pytest.fixture
def article_factory():
    return make_regular
