"""Shared database fixtures.

Tests run against an in-memory SQLite database (aiosqlite). StaticPool keeps
a single connection so every session sees the same database.
"""

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from pokerclub.models import Base, Player, Registration, Tournament, TournamentStatus

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

BASE_TIME = datetime(2026, 3, 14, 19, 0, tzinfo=timezone.utc)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Engine with fresh tables for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_db(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Session configured like the production session factory."""
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


# =============================================================================
# Data Factories
# =============================================================================


async def _create_player(db: AsyncSession, name: str) -> Player:
    player = Player(name=name)
    db.add(player)
    await db.commit()
    return player


async def _create_tournament(db: AsyncSession, **overrides: Any) -> Tournament:
    values: dict[str, Any] = {
        "name": "Friday Deepstack",
        "buy_in_amount": Decimal("50.00"),
        "status": TournamentStatus.IN_PROGRESS.value,
    }
    values.update(overrides)
    tournament = Tournament(**values)
    db.add(tournament)
    await db.commit()
    return tournament


async def _seed_registrations(
    db: AsyncSession,
    tournament: Tournament,
    count: int,
    **overrides: Any,
) -> list[Registration]:
    """Register ``count`` new players with strictly increasing registration times."""
    registrations = []
    for i in range(count):
        player = Player(name=f"Player {i + 1}")
        db.add(player)
        await db.flush()
        registration = Registration(
            tournament_id=tournament.id,
            player_id=player.id,
            registration_time=BASE_TIME + timedelta(minutes=i),
            **overrides,
        )
        db.add(registration)
        registrations.append(registration)
    await db.commit()
    return registrations


@pytest_asyncio.fixture
async def make_player(test_db: AsyncSession):
    async def factory(name: str = "Alice") -> Player:
        return await _create_player(test_db, name)

    return factory


@pytest_asyncio.fixture
async def make_tournament(test_db: AsyncSession):
    async def factory(**overrides: Any) -> Tournament:
        return await _create_tournament(test_db, **overrides)

    return factory


@pytest_asyncio.fixture
async def seed_registrations(test_db: AsyncSession):
    async def factory(tournament: Tournament, count: int, **overrides: Any) -> list[Registration]:
        return await _seed_registrations(test_db, tournament, count, **overrides)

    return factory
