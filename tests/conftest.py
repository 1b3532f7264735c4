"""Shared test fixtures - async SQLite engine, sessions, test client, factories."""

import os

# Set env vars BEFORE importing app modules (config reads at import time)
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-tests")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REFERENCE_TIMEZONE", "UTC")

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from questlearn.core.database import enable_sqlite_savepoints, get_db  # noqa: E402
from questlearn.main import app  # noqa: E402
from questlearn.models import (  # noqa: E402
    AchievementDefinition,
    AttemptRecord,
    Base,
    DailyTaskDefinition,
    Player,
)
from questlearn.services.auth import create_access_token  # noqa: E402

# Fixed clock for anything that depends on "today"
NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
async def engine():
    """Fresh in-memory database per test, one shared connection."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_savepoints(test_engine)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(session_maker):
    async def _override_get_db():
        async with session_maker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


# --- Helpers ---

def auth_headers(player_id: int) -> dict:
    """Authorization header dict for a player."""
    return {"Authorization": f"Bearer {create_access_token(player_id)}"}


async def create_player(db: AsyncSession, **overrides) -> Player:
    """Insert and commit a player with fresh progression state."""
    values = {"display_name": "Test Player", "exp_to_next_level": 100}
    values.update(overrides)
    player = Player(**values)
    db.add(player)
    await db.commit()
    return player


async def create_achievement(db: AsyncSession, **overrides) -> AchievementDefinition:
    values = {
        "code": "STREAK_10",
        "name": "Hot Streak",
        "description": "Answer 10 questions correctly in a row",
        "requirement_kind": "correct_streak",
        "requirement_value": 10,
        "exp_reward": 75,
        "gold_reward": 30,
    }
    values.update(overrides)
    definition = AchievementDefinition(**values)
    db.add(definition)
    await db.commit()
    return definition


async def create_daily_task(db: AsyncSession, **overrides) -> DailyTaskDefinition:
    values = {
        "code": "DAILY_Q3",
        "name": "First Challenge",
        "description": "Answer 3 questions today",
        "requirement_kind": "questions_answered",
        "target_value": 3,
        "exp_reward": 15,
        "gold_reward": 5,
    }
    values.update(overrides)
    task = DailyTaskDefinition(**values)
    db.add(task)
    await db.commit()
    return task


async def record_attempts(
    db: AsyncSession,
    player_id: int,
    outcomes: list[bool],
    start: datetime = NOW - timedelta(hours=1),
    exp: int = 0,
    gold: int = 0,
) -> None:
    """Append attempts oldest -> newest, one second apart, and commit."""
    for i, is_correct in enumerate(outcomes):
        db.add(AttemptRecord(
            player_id=player_id,
            question_id=f"q{i}",
            is_correct=is_correct,
            exp_granted=exp if is_correct else 0,
            gold_granted=gold if is_correct else 0,
            created_at=start + timedelta(seconds=i),
        ))
    await db.commit()
