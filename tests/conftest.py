"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for Settings; the global engine is never connected in tests
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from blockminer.config.database import create_session_maker
from blockminer.models import (
    ActiveBoost,
    Base,
    Participant,
    ParticipantPrestige,
    Season,
)

# Fixed settlement instant shared by the tests
NOW = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def now():
    """Fixed settlement timestamp."""
    return NOW


@pytest.fixture
def clock():
    """Clock returning the fixed settlement timestamp."""
    return lambda: NOW


@pytest.fixture
def mock_session():
    """Mock AsyncSession for tests without a database."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def mock_redis_client():
    """Mock Redis client for lock tests."""
    client = AsyncMock()
    client.set = AsyncMock(return_value=True)
    client.eval = AsyncMock(return_value=1)
    client.aclose = AsyncMock()
    return client


@pytest_asyncio.fixture
async def engine(tmp_path):
    """File-backed SQLite engine with every table created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'settlement.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    """Session factory configured like the application one."""
    return create_session_maker(engine)


@pytest_asyncio.fixture
async def session(session_maker):
    """Database session for one test."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def make_participant(session_maker):
    """
    Factory creating a participant with optional prestige and boosts.

    Boosts are (kind, boost_percent, expires_at) tuples.
    Returns the new participant ID.
    """

    async def _make(
        username,
        capacity,
        balance="0",
        prestige_level=None,
        boosts=(),
    ):
        async with session_maker() as session:
            participant = Participant(
                username=username,
                total_capacity=Decimal(str(capacity)),
                balance=Decimal(str(balance)),
                total_earned=Decimal("0"),
            )
            session.add(participant)
            await session.flush()

            if prestige_level is not None:
                session.add(
                    ParticipantPrestige(
                        participant_id=participant.id,
                        prestige_level=prestige_level,
                    )
                )
            for kind, percent, expires_at in boosts:
                session.add(
                    ActiveBoost(
                        participant_id=participant.id,
                        kind=kind,
                        boost_percent=Decimal(str(percent)),
                        expires_at=expires_at,
                    )
                )
            await session.commit()
            return participant.id

    return _make


@pytest.fixture
def make_season(session_maker):
    """Factory creating an active season around NOW."""

    async def _make(bonus_multiplier, season_id="winter", is_active=True):
        async with session_maker() as session:
            session.add(
                Season(
                    season_id=season_id,
                    name=season_id.title(),
                    start_date=NOW - timedelta(days=1),
                    end_date=NOW + timedelta(days=1),
                    bonus_multiplier=Decimal(str(bonus_multiplier)),
                    is_active=is_active,
                )
            )
            await session.commit()

    return _make


@pytest.fixture
def get_participant(session_maker):
    """Read a participant through a fresh session."""

    async def _get(participant_id):
        async with session_maker() as session:
            return await session.get(Participant, participant_id)

    return _get
