import os
import itertools
from datetime import date
from decimal import Decimal

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./academy-test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from academy.core.db import Base, get_db, get_session_factory
from academy.core.security import create_access_token
from academy.models import User, Coach, Student, AttendanceRecord
from academy.models.enums import AttendanceStatus, UserType
from main import app

_sequence = itertools.count(1)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'academy.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    async def _make(user_type=UserType.COACH, is_admin=False):
        n = next(_sequence)
        user = User(
            email=f"user{n}@academy.in",
            full_name=f"User {n}",
            hashed_password="not-a-real-hash",
            user_type=user_type,
            is_admin=is_admin,
        )
        db.add(user)
        await db.commit()
        return user

    return _make


@pytest.fixture
def make_coach(db):
    async def _make(hourly_rate="1500", outstanding="0", user=None):
        n = next(_sequence)
        coach = Coach(
            code=f"COA{n:04d}",
            name=f"Coach {n}",
            email=f"coach{n}@academy.in",
            hourly_rate=Decimal(hourly_rate),
            outstanding_salary=Decimal(outstanding),
            user_id=user.id if user else None,
        )
        db.add(coach)
        await db.commit()
        return coach

    return _make


@pytest.fixture
def make_student(db):
    async def _make(coach=None, user=None):
        n = next(_sequence)
        student = Student(
            code=f"STU{n:04d}",
            name=f"Student {n}",
            email=f"student{n}@academy.in",
            coach_id=coach.id if coach else None,
            user_id=user.id if user else None,
        )
        db.add(student)
        await db.commit()
        return student

    return _make


@pytest.fixture
def make_attendance(db):
    """Insert an attendance row directly, bypassing the intake checks."""

    async def _make(student, day: date, minutes=60, status=AttendanceStatus.PRESENT, coach=None):
        record = AttendanceRecord(
            student_id=student.id,
            coach_id=coach.id if coach else student.coach_id,
            date=day,
            status=status,
            session_duration=minutes,
        )
        db.add(record)
        await db.commit()
        return record

    return _make


@pytest.fixture
def headers_for():
    def _headers(user: User) -> dict:
        token = create_access_token({"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user(user_type=UserType.ADMIN, is_admin=True)
