"""Global pytest fixtures for the CampusFix workflow tests.

Provides:
- An in-memory unit of work shared by services under test
- A controllable clock
- Seeded users (one admin, several students) and a department
- An ``IssueService`` factory wired to all of the above
- A rolled-back PostgreSQL session for the storage tests
"""

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from campusfix.config import CampusFixSettings
from campusfix.database import make_session_factory, normalize_database_url
from campusfix.models import Base
from campusfix.services.issue_service import IssueService
from tests.factories import FIXED_NOW, IssueFactory, UserFactory, actor_for, make_department
from tests.fakes import FakeUnitOfWork, InMemoryStore


class FakeClock:
    """A callable clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# ===========================================
# CORE FIXTURES
# ===========================================


@pytest.fixture
def settings() -> CampusFixSettings:
    return CampusFixSettings(
        contest_threshold=3,
        revalidation_threshold=3,
        window_days=7,
        min_credibility_to_contest=65,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryStore:
    store = InMemoryStore()
    store.add_department(make_department())
    store.add_department(make_department("dept-2", "Student Welfare", 92))
    return store


@pytest.fixture
def uow(store) -> FakeUnitOfWork:
    return FakeUnitOfWork(store)


@pytest.fixture
def make_service(uow, clock, settings):
    """Build an IssueService on the shared store, optionally for another uow."""

    def _make(unit_of_work=None) -> IssueService:
        return IssueService(unit_of_work or uow, clock=clock, settings=settings)

    return _make


@pytest.fixture
def service(make_service) -> IssueService:
    return make_service()


# ===========================================
# USER FIXTURES
# ===========================================


@pytest.fixture
def admin_user(store):
    return store.add_user(UserFactory.create_admin())


@pytest.fixture
def admin(admin_user):
    return actor_for(admin_user)


@pytest.fixture
def student_users(store):
    """Five students, all credible enough to contest."""
    return [
        store.add_user(UserFactory.create(name=f"Student {i}", credibility=70 + i))
        for i in range(5)
    ]


@pytest.fixture
def students(student_users):
    return [actor_for(u) for u in student_users]


@pytest.fixture
def creator_user(store):
    return store.add_user(UserFactory.create(name="Reporter", credibility=50))


@pytest.fixture
def creator(creator_user):
    return actor_for(creator_user)


@pytest.fixture
def low_credibility_student(store):
    return actor_for(store.add_user(UserFactory.create(name="Newcomer", credibility=40)))


# ===========================================
# ISSUE FIXTURES
# ===========================================


@pytest.fixture
def add_issue(store, creator_user):
    """Insert an issue in a given status, supported by its creator."""

    def _add(status, **kwargs):
        supporters = kwargs.pop("supporters", [creator_user])
        issue = IssueFactory.create(creator_user.id, status=status, **kwargs)
        issue.support_count = len(supporters)
        return store.add_issue(issue, supporters=supporters)

    return _add


# ===========================================
# DATABASE FIXTURES
# ===========================================


@pytest_asyncio.fixture
async def real_db_session() -> AsyncGenerator[AsyncSession, None]:
    """A PostgreSQL session wrapped in a transaction that is rolled back after the test.

    Set ``CAMPUSFIX_TEST_DATABASE_URL`` to a disposable database to run these
    tests; they are skipped otherwise.
    """
    raw_url = os.environ.get("CAMPUSFIX_TEST_DATABASE_URL")
    if not raw_url:
        pytest.skip("CAMPUSFIX_TEST_DATABASE_URL not set")

    engine = create_async_engine(normalize_database_url(raw_url))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with make_session_factory(engine)() as session:
        yield session
        await session.rollback()

    await engine.dispose()


# ===========================================
# REDIS MOCK FIXTURES
# ===========================================


@pytest.fixture
def mock_redis_client() -> MagicMock:
    """Create a mock Redis client whose pipeline reports ``request_count`` hits."""
    redis = MagicMock()
    redis.pipeline = MagicMock(return_value=redis)
    redis.execute = AsyncMock(return_value=[0, 1, 1, True])
    return redis
