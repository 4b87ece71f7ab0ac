"""Shared test fixtures for all test groups."""

import os

os.environ.setdefault("TESTING_MODE", "true")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ALGORITHM", "HS256")
os.environ.setdefault("PAYSTACK_SECRET_KEY", "sk_test_webhook_secret")

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

import app.models  # noqa: F401
from app.constants.constants import TaskStatus, UserRole
from app.models.base import Base
from app.models.booking import Booking
from app.models.milestones import Milestone
from app.models.task import Task
from app.models.user import User
from app.services.ProgressService import ProgressService
from app.services.ProgressStore import SQLAlchemyProgressStore


@pytest.fixture
async def engine(tmp_path) -> AsyncEngine:
    """File-backed SQLite engine so separate sessions really are separate connections."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture
def service(db_session) -> ProgressService:
    return ProgressService(SQLAlchemyProgressStore(db_session))


# ---------------------------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------------------------


class Seeder:
    """Inserts rows directly, bypassing the progress service."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._counter = 0

    async def user(self, role: UserRole = UserRole.client, **kwargs) -> User:
        self._counter += 1
        user = User(
            email=kwargs.pop("email", f"user{self._counter}@acme-services.com"),
            first_name=kwargs.pop("first_name", "Test"),
            last_name=kwargs.pop("last_name", f"User{self._counter}"),
            role=role,
            **kwargs,
        )
        self.session.add(user)
        await self.session.commit()
        return user

    async def booking(self, client: User, provider: User, **kwargs) -> Booking:
        booking = Booking(
            client_id=client.user_id,
            provider_id=provider.user_id,
            service_title=kwargs.pop("service_title", "Website redesign"),
            **kwargs,
        )
        self.session.add(booking)
        await self.session.commit()
        return booking

    async def milestone(self, booking: Booking, weight=1.0, order_index=0, **kwargs) -> Milestone:
        milestone = Milestone(
            booking_id=booking.booking_id,
            title=kwargs.pop("title", f"Milestone {order_index}"),
            weight=weight,
            order_index=order_index,
            **kwargs,
        )
        self.session.add(milestone)
        await self.session.commit()
        return milestone

    async def tasks(self, milestone: Milestone, count: int, completed: int = 0):
        tasks = []
        for i in range(count):
            task = Task(
                milestone_id=milestone.milestone_id,
                title=f"Task {i + 1}",
                status=TaskStatus.completed if i < completed else TaskStatus.pending,
            )
            self.session.add(task)
            tasks.append(task)
        await self.session.commit()
        return tasks


@pytest.fixture
def seed(db_session) -> Seeder:
    return Seeder(db_session)


@pytest.fixture
async def parties(seed):
    """A client, a provider, an admin and an unrelated user."""
    return {
        "client": await seed.user(UserRole.client),
        "provider": await seed.user(UserRole.provider),
        "admin": await seed.user(UserRole.admin),
        "stranger": await seed.user(UserRole.client),
    }


@pytest.fixture
async def booking(seed, parties) -> Booking:
    return await seed.booking(parties["client"], parties["provider"])
