"""
Pytest fixtures for testing.
"""
import pytest
import pytest_asyncio
from typing import AsyncGenerator

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from gatepass.database import Base, build_session_factory
# Import ALL models so Base.metadata knows about all tables
import gatepass.models  # noqa: F401
from gatepass.api.gatepasses import get_lifecycle_manager
from gatepass.services.lifecycle import LifecycleManager
from gatepass.services.notifications import NotificationDispatcher, NotificationResult
from gatepass.services.store import GatepassStore

from gatepass.main import app as fastapi_app


# Test database URL (use in-memory SQLite for fast tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_BASE_URL = "http://gate.test"


class RecordingNotifier:
    """Notifier double that records every intent it is asked to deliver."""

    def __init__(self):
        self.intents = []
        self.fail = False
        self.raise_error = False

    async def notify(self, intent):
        self.intents.append(intent)
        if self.raise_error:
            raise RuntimeError("SMTP connection refused")
        if self.fail:
            return NotificationResult.failed("mail provider rejected the message")
        return NotificationResult.success()


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    Create a fresh database for each test.
    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield test_engine
    finally:
        async with test_engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def commit_hook_session_factory(engine):
    """
    Build session factories whose commit() awaits a hook once the commit is done.

    Lets a test stall or interleave another writer between a store commit and
    whatever the store does next.
    """
    def build(after_commit):
        class CommitHookSession(AsyncSession):
            async def commit(self):
                await super().commit()
                await after_commit()

        return async_sessionmaker(engine, class_=CommitHookSession, expire_on_commit=False)

    return build


@pytest.fixture
def store(session_factory) -> GatepassStore:
    return GatepassStore(session_factory, timeout_seconds=5.0)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture
async def dispatcher(notifier) -> AsyncGenerator[NotificationDispatcher, None]:
    dispatcher = NotificationDispatcher(notifier)
    dispatcher.start()
    yield dispatcher
    await dispatcher.stop()


@pytest.fixture
def lifecycle(store, dispatcher) -> LifecycleManager:
    return LifecycleManager(
        store=store,
        dispatcher=dispatcher,
        app_base_url=TEST_BASE_URL,
        student_email_domain="college.edu",
    )


@pytest_asyncio.fixture
async def async_client(lifecycle) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client for testing endpoints.

    ASGITransport does not run the lifespan, so the test manager is injected
    through dependency_overrides instead.
    """
    fastapi_app.dependency_overrides[get_lifecycle_manager] = lambda: lifecycle
    transport = ASGITransport(app=fastapi_app)

    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        follow_redirects=True
    ) as client:
        yield client

    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def valid_payload() -> dict:
    """Minimal valid submission."""
    return {
        "student_name": "Asha Rao",
        "roll_number": "21CS042",
        "parent_email": "parent@x.com",
        "reason": "Medical",
        "departure_date_time": "2025-03-01T10:00:00",
    }
