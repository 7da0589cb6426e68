"""Shared fixtures: in-memory SQLite database, a fixed clock and a dict-backed cache."""

from datetime import datetime, timezone

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from deals_admin.models import UserProfile
from deals_admin.models.user_profile import ROLE_ADMIN
from deals_admin.services.auth import Caller
from deals_admin.stores.postgres import Database
from deals_admin.stores.redis import Cache

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def db():
    """Fresh in-memory database with all tables created."""
    # One shared connection so every session sees the same in-memory database.
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    database = Database(engine)
    await database.create_tables()
    yield database
    await database.close()


@pytest.fixture
async def admin(db: Database) -> Caller:
    async with db.session() as session:
        session.add(UserProfile(id="a1", email="admin@deals.test", full_name="Ada Admin", role=ROLE_ADMIN))
    return Caller(uid="a1", email="admin@deals.test", role=ROLE_ADMIN)


class DictRedis:
    """Just enough of redis.asyncio.Redis for the JSON cache."""

    def __init__(self):
        self.data: dict[str, str] = {}

    async def get(self, key):
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        self.data[key] = value

    async def delete(self, *keys):
        for k in keys:
            self.data.pop(k, None)


@pytest.fixture
def cache() -> Cache:
    """Stats cache backed by a dict instead of Redis."""
    return Cache(DictRedis())
