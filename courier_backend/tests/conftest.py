"""
Pytest configuration and fixtures for courier backend tests.
"""
import os
import pytest
from typing import List, Tuple
from unittest.mock import MagicMock, AsyncMock

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-for-unit-tests-only"
os.environ["COOKIE_SECURE"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "true"
os.environ["RATE_LIMIT_STORAGE"] = "memory"
os.environ["REDIS_URL"] = ""
os.environ["RESEND_API_KEY"] = ""
os.environ["MAPBOX_ACCESS_TOKEN"] = ""

from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.core.database import create_all_tables, engine, get_db_session  # noqa: E402
from app.core.rate_limit import InMemoryRateLimitStore, limiter, rate_limiter  # noqa: E402
from app.core.security import create_session_token, get_password_hash  # noqa: E402
from app.main import app  # noqa: E402
from app.models.user import User, UserRole  # noqa: E402
from app.services.notifications import get_notifier  # noqa: E402

ADMIN_EMAIL = "ops@courier.test"
ADMIN_PASSWORD = "Sup3rSecret"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Fresh counters per test; both limiters are process-global."""
    rate_limiter.use_store(InMemoryRateLimitStore())
    limiter.reset()
    yield


@pytest.fixture
def admin_credentials() -> dict:
    return {"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}


@pytest.fixture
def mock_db() -> AsyncMock:
    """Create mock async database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.execute = AsyncMock()
    db.get = AsyncMock()
    return db


@pytest.fixture
async def db_tables():
    """
    Fresh in-memory SQLite schema per test.

    The engine holds a single connection (StaticPool); disposing it at
    teardown discards the database.
    """
    await create_all_tables()
    yield
    await engine.dispose()


@pytest.fixture
async def db_session(db_tables):
    async with get_db_session() as session:
        yield session


class RecordingNotifier:
    """Stands in for NotificationDispatcher; records instead of sending."""

    def __init__(self):
        self.calls: List[Tuple[str, dict]] = []

    def shipment_created(self, **kwargs):
        self.calls.append(("shipment_created", kwargs))

    def status_updated(self, **kwargs):
        self.calls.append(("status_updated", kwargs))

    def quote_responded(self, **kwargs):
        self.calls.append(("quote_responded", kwargs))

    def names(self) -> List[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def notifier():
    recorder = RecordingNotifier()
    app.dependency_overrides[get_notifier] = lambda: recorder
    yield recorder
    app.dependency_overrides.pop(get_notifier, None)


@pytest.fixture
async def admin_user(db_tables) -> User:
    async with get_db_session() as db:
        user = User(
            name="Ops Admin",
            email=ADMIN_EMAIL,
            hashed_password=get_password_hash(ADMIN_PASSWORD),
            role=UserRole.ADMIN,
            is_active=True,
        )
        db.add(user)
        await db.flush()
    return user


@pytest.fixture
async def client(db_tables):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def admin_client(db_tables, admin_user, notifier):
    """Client carrying a Bearer session token for the seeded admin."""
    token = create_session_token({"sub": admin_user.id, "role": UserRole.ADMIN.value})
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Authorization": f"Bearer {token}"},
    ) as ac:
        yield ac


@pytest.fixture
def sample_shipment_payload() -> dict:
    """Admin create-shipment body (camelCase, as the admin UI sends it)."""
    return {
        "serviceType": "EXPRESS",
        "shipmentMode": "AIR",
        "sender": {
            "name": "Ada Sender",
            "phone": "+1 555 0100",
            "email": "ada@example.com",
            "address": "1 Origin Street, Lagos",
        },
        "receiver": {
            "name": "Bob Receiver",
            "phone": "+44 20 7946 0000",
            "email": "bob@example.com",
            "address": "2 Destination Road, London",
            "coordinates": {"latitude": 51.5, "longitude": -0.12},
        },
        "package": {
            "weight": 2.5,
            "dimensions": {"length": 30, "width": 20, "height": 10},
            "value": 200,
            "description": "Documents",
        },
        "origin": "Lagos, Nigeria",
        "destination": "London, United Kingdom",
    }


@pytest.fixture
def sample_quote_payload() -> dict:
    return {
        "name": "Carol Customer",
        "email": "Carol@Example.com",
        "phone": "+1 555 0199",
        "origin": "New York, USA",
        "destination": "Toronto, Canada",
        "packageDetails": {
            "weight": 5,
            "dimensions": {"length": 10, "width": 10, "height": 10},
        },
        "serviceType": "STANDARD",
    }
