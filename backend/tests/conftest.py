"""Pytest fixtures for call center backend tests."""

import os

# Point the app engine at SQLite before callcenter modules are imported.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import random
from collections.abc import AsyncGenerator, Callable, Coroutine
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from callcenter.config import Settings
from callcenter.database import Base, get_db
from callcenter.dependencies import get_code_allocator, get_triage_client
from callcenter.limiter import limiter
from callcenter.main import app
from callcenter.models import Call, CallStatus, Unit, Urgency
from callcenter.services.classifier import ClassificationResult
from callcenter.services.codes import CodeAllocator
from callcenter.services.store import CallStore

# Test database URL - in-memory SQLite shared through a single connection
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeTriageClient:
    """Stands in for the provider-backed TriageClient."""

    def __init__(self, result: ClassificationResult):
        self.result = result
        self.calls: list[str] = []

    async def classify(self, description: str) -> ClassificationResult:
        self.calls.append(description)
        return self.result


class ScriptedRandom(random.Random):
    """Random source whose `choice` replays a fixed character script."""

    def __init__(self, script: str):
        super().__init__(0)
        self.script = list(script)
        self.draws = 0

    def choice(self, seq):
        self.draws += 1
        return self.script.pop(0)


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with safe defaults."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        ai_api_key="test_key",
        debug=True,
    )


@pytest_asyncio.fixture
async def async_engine():
    """Create async engine for testing."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def store(db_session: AsyncSession) -> CallStore:
    return CallStore(db_session)


@pytest.fixture
def classified_result() -> ClassificationResult:
    return ClassificationResult(
        urgency=Urgency.RED,
        unit=Unit.AMBULANCE,
        reformulated_text="Soggetto ferito sulla pubblica via, richiesto soccorso sanitario",
        classified=True,
    )


@pytest.fixture
def make_triage() -> Callable[[ClassificationResult], FakeTriageClient]:
    return FakeTriageClient


@pytest.fixture
def fake_triage(classified_result: ClassificationResult) -> FakeTriageClient:
    return FakeTriageClient(classified_result)


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, fake_triage: FakeTriageClient
) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with database and provider overrides."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_triage_client] = lambda: fake_triage
    limiter.enabled = False

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture
def sample_datetime() -> datetime:
    """Sample datetime for testing."""
    return datetime(2026, 10, 19, 10, 0, 0, tzinfo=UTC)


@pytest.fixture
def make_call(
    store: CallStore,
) -> Callable[..., Coroutine[Any, Any, Call]]:
    """Factory inserting calls straight into the store."""
    counter = iter(range(100))

    async def _make_call(**overrides: Any) -> Call:
        n = next(counter)
        fields: dict[str, Any] = {
            "code": f"T{n:02d}",
            "unit": Unit.POLICE,
            "urgency": Urgency.GREEN,
            "description": "Segnalazione di prova numero " + str(n),
            "address": "Via Test 1, Milano",
            "lat": 45.4642,
            "lng": 9.1900,
            "status": CallStatus.PENDING,
            "created_at": datetime.now(UTC) - timedelta(minutes=100 - n),
        }
        fields.update(overrides)
        return await store.insert(Call(**fields))

    return _make_call


@pytest.fixture
def scripted_allocator() -> Callable[[str], CodeAllocator]:
    """Allocator whose random draws follow a fixed script, e.g. 'A11B22'."""

    def _build(script: str, max_attempts: int = 10) -> CodeAllocator:
        return CodeAllocator(rng=ScriptedRandom(script), max_attempts=max_attempts)

    return _build


@pytest.fixture
def override_allocator():
    """Install a specific CodeAllocator for API requests."""

    def _install(allocator: CodeAllocator) -> None:
        app.dependency_overrides[get_code_allocator] = lambda: allocator

    return _install
