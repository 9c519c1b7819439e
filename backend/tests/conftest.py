"""
Pytest fixtures for test database, client, and authentication.

Every test gets its own file-backed SQLite database (WAL mode) so that
concurrent sessions behave like separate connections to a real server.
"""

import os

os.environ["ENVIRONMENT"] = "test"
os.environ["REDIS_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SECRET_KEY"] = "test-secret-key-with-enough-bytes-for-hs256"

from datetime import date, time, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event as sa_event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from college_events.main import app
from college_events.db.base import Base
from college_events.db.session import get_db
from college_events.core.security import create_access_token, hash_password
from college_events.models import User, Event
from college_events.models.status import UserRole, EventCategory
from college_events.services.id_allocator import EntityCategory, get_allocator


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh database per test; tables created up front."""
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    # pysqlite's own transaction handling breaks SAVEPOINT; issue BEGIN ourselves
    @sa_event.listens_for(test_engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()

    @sa_event.listens_for(test_engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests each get their own session on the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def make_user(session_factory, role: UserRole = UserRole.student, name: str = "Test User") -> User:
    user_id = get_allocator().next(EntityCategory.user)
    async with session_factory() as session:
        user = User(
            id=user_id,
            name=name,
            email=f"user{user_id}@college.edu",
            credential_hash=hash_password("testpassword123"),
            role=role.value,
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
    return user


async def make_event(session_factory, organizer: User, total_tickets: int = 100, **overrides) -> Event:
    fields = dict(
        id=get_allocator().next(EntityCategory.event),
        title="Spring Concert",
        description="Annual spring concert",
        date=date.today() + timedelta(days=30),
        time_start=time(18, 0),
        time_end=time(21, 0),
        location="Main Auditorium",
        category=EventCategory.cultural.value,
        price=Decimal("25.00"),
        total_tickets=total_tickets,
        available_tickets=total_tickets,
        organizer_id=organizer.id,
        version=1,
    )
    fields.update(overrides)
    async with session_factory() as session:
        event = Event(**fields)
        session.add(event)
        await session.commit()
        await session.refresh(event)
    return event


def headers_for(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


def event_payload(**overrides) -> dict:
    payload = {
        "title": "Robotics Workshop",
        "description": "Hands-on intro to robotics",
        "date": (date.today() + timedelta(days=14)).isoformat(),
        "time_start": "10:00:00",
        "time_end": "12:00:00",
        "location": "Engineering Lab 2",
        "category": "workshops",
        "price": "10.00",
        "total_tickets": 30,
    }
    payload.update(overrides)
    return payload


@pytest_asyncio.fixture
async def student(session_factory) -> User:
    return await make_user(session_factory, UserRole.student, name="Sam Student")


@pytest_asyncio.fixture
async def other_student(session_factory) -> User:
    return await make_user(session_factory, UserRole.student, name="Olive Other")


@pytest_asyncio.fixture
async def admin(session_factory) -> User:
    return await make_user(session_factory, UserRole.admin, name="Ada Admin")


@pytest_asyncio.fixture
async def student_headers(student) -> dict:
    return headers_for(student)


@pytest_asyncio.fixture
async def admin_headers(admin) -> dict:
    return headers_for(admin)


@pytest_asyncio.fixture
async def test_event(session_factory, admin) -> Event:
    """An event with 100 tickets organized by the admin."""
    return await make_event(session_factory, admin, total_tickets=100)


@pytest_asyncio.fixture
async def sold_out_event(session_factory, admin) -> Event:
    return await make_event(session_factory, admin, total_tickets=50, available_tickets=0, title="Sold Out Show")
