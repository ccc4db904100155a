"""Pytest fixtures for bulk payroll tests."""

from __future__ import annotations

from datetime import date, time, timedelta
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from bulk_payroll.database import create_schema, make_session_factory
from bulk_payroll.models import Profile, WorkingHour, WorkingHoursStatus

PERIOD_START = date(2024, 1, 1)
PERIOD_END = date(2024, 1, 14)


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Create a test database engine on a per-test SQLite file."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'bulk_payroll.db'}",
        echo=False,
    )
    await create_schema(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    """Session factory configured as in the application."""
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


async def add_profile(
    session: AsyncSession,
    name: str,
    hourly_rate: Decimal | None,
) -> Profile:
    """Persist an employee profile."""
    profile = Profile(
        id=uuid4(),
        full_name=name,
        email=f"{name.split()[0].lower()}-{uuid4().hex[:6]}@example.com",
        role="employee",
        employment_type="full-time",
        hourly_rate=hourly_rate,
    )
    session.add(profile)
    await session.flush()
    return profile


async def add_hours(
    session: AsyncSession,
    profile: Profile,
    work_date: date,
    hours: Decimal,
    status: WorkingHoursStatus = WorkingHoursStatus.APPROVED,
    actual_hours: Decimal | None = None,
) -> WorkingHour:
    """Persist a working-hours entry."""
    entry = WorkingHour(
        id=uuid4(),
        profile_id=profile.id,
        work_date=work_date,
        start_time=time(9, 0),
        end_time=time(17, 0),
        total_hours=hours,
        actual_hours=actual_hours,
        status=status.value,
    )
    session.add(entry)
    await session.flush()
    return entry


@pytest_asyncio.fixture
async def employees(session: AsyncSession) -> list[Profile]:
    """Three employees; the last has no hourly rate set."""
    profiles = [
        await add_profile(session, "Alice Smith", Decimal("25.00")),
        await add_profile(session, "Bob Jones", Decimal("30.00")),
        await add_profile(session, "Carol White", None),
    ]
    await session.commit()
    return profiles


@pytest_asyncio.fixture
async def approved_hours(
    session: AsyncSession, employees: list[Profile]
) -> list[WorkingHour]:
    """8 approved hours each weekday of the period (80 hours per employee)."""
    entries = []
    for emp in employees:
        for day_offset in range(14):
            work_date = PERIOD_START + timedelta(days=day_offset)

            # Skip weekends
            if work_date.weekday() >= 5:
                continue

            entries.append(await add_hours(session, emp, work_date, Decimal("8.00")))

    await session.commit()
    return entries
