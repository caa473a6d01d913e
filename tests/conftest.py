"""Root conftest — shared test configuration and storage fixtures.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - Repositories receive a store handle wrapping the test engine, exactly
      as the lifespan wires the production one

Design Decisions:
    - SQLite in-memory: fast, no external dependency; per-user locking falls
      back to in-process asyncio locks on this dialect
"""

import os

os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402

from parallel_calendar.db.base import Base  # noqa: E402
import parallel_calendar.models  # noqa: E402,F401
from parallel_calendar.core.entities import Task, User  # noqa: E402
from parallel_calendar.infrastructure.database import DatabaseSessionManager  # noqa: E402
from parallel_calendar.repositories.tasks import SqlTaskRepository  # noqa: E402
from parallel_calendar.repositories.time_slots import SqlTimeSlotRepository  # noqa: E402
from parallel_calendar.repositories.users import SqlUserRepository  # noqa: E402


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def store(test_engine):
    return DatabaseSessionManager.from_engine(test_engine)


@pytest.fixture
def user_repo(store):
    return SqlUserRepository(store)


@pytest.fixture
def task_repo(store):
    return SqlTaskRepository(store)


@pytest.fixture
def slot_repo(store):
    return SqlTimeSlotRepository(store)


@pytest.fixture
async def owner(user_repo):
    return await user_repo.create(User.new("Ada Lovelace", "ada@example.com"))


@pytest.fixture
async def other_owner(user_repo):
    return await user_repo.create(User.new("Alan Turing", "alan@example.com"))


@pytest.fixture
async def task(task_repo, owner):
    return await task_repo.create(
        Task.new(owner.id, "Write quarterly report", None, owner.id),
    )


@pytest.fixture
async def foreign_task(task_repo, other_owner):
    return await task_repo.create(
        Task.new(other_owner.id, "Review pull requests", None, other_owner.id),
    )
