"""
Pytest configuration and shared fixtures for the order lifecycle tests.

Provides an in-memory SQLite DB (seeded like a fresh install), an httpx
client bound to the app, staff/admin tokens and small factories for
statuses, numbers, bundles and orders.
"""
import pytest
import pytest_asyncio
from typing import AsyncGenerator

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from database import Base, get_db, seed_defaults
from config import settings

# ── Test Configuration ───────────────────────────────────────────────
# Set test-only values for settings that would normally come from .env
if not settings.jwt_secret:
    settings.jwt_secret = "test-jwt-secret-for-pytest-only-0123456789"
settings.reclamation_enabled = False


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    from middleware.rate_limit import reset_rate_limits
    reset_rate_limits()
    yield


# ── Database Fixtures ────────────────────────────────────────────────


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create an in-memory SQLite database session for each test.

    Uses StaticPool to allow in-memory SQLite with async SQLAlchemy. The
    database is seeded with the default creation status and schedule.
    """
    import db_models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        await seed_defaults(session)
        yield session

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx client bound to the app.

    Overrides get_db dependency to use the test DB session.
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


# ── Auth Fixtures ────────────────────────────────────────────────────


@pytest.fixture
def staff_headers() -> dict:
    from middleware.auth import issue_access_token
    token = issue_access_token(email="agent@example.com", role="staff", name="Agent Smith")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> dict:
    from middleware.auth import issue_access_token
    token = issue_access_token(email="admin@example.com", role="admin", name="Admin")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def staff_actor():
    from services.audit_service import Actor
    return Actor.user(name="Agent Smith", email="agent@example.com", role="staff")


# ── Test Data Fixtures ────────────────────────────────────────────────


@pytest.fixture
def make_status(db_session: AsyncSession):
    """Factory: create a status tagged with the given events."""
    from services import mapping_service, status_service

    async def _make(name: str, *events):
        status = await status_service.create_status(db_session, name=name)
        for event in events:
            await mapping_service.tag_status(db_session, status_id=status.id, event=event)
        await db_session.commit()
        return status

    return _make


@pytest.fixture
def make_item(db_session: AsyncSession):
    """Factory: add a number to the pool."""
    from services import inventory_service

    counter = {"n": 0}

    async def _make(number: str | None = None, price: float = 100.0, discount: float = 0.0, state=None):
        counter["n"] += 1
        kwargs = {}
        if state is not None:
            kwargs["state"] = state
        item = await inventory_service.create_item(
            db_session,
            number=number or f"0300{counter['n']:07d}",
            price=price,
            discount=discount,
            **kwargs,
        )
        await db_session.commit()
        return item

    return _make


@pytest_asyncio.fixture
async def sample_bundle(db_session: AsyncSession):
    from db_models import Bundle

    bundle = Bundle(name="Monthly 20GB", price=50.0)
    db_session.add(bundle)
    await db_session.commit()
    await db_session.refresh(bundle)
    return bundle


@pytest_asyncio.fixture
async def sample_city(db_session: AsyncSession):
    from db_models import City

    city = City(name="Lahore")
    db_session.add(city)
    await db_session.commit()
    await db_session.refresh(city)
    return city


@pytest.fixture
def make_order(db_session: AsyncSession):
    """Factory: create an order through the engine."""
    from services import order_service

    async def _make(inventory_item_id: int | None = None, **kwargs):
        kwargs.setdefault("personal_phone", "+923001234567")
        kwargs.setdefault("customer_name", "Ali Raza")
        return await order_service.create_order(
            db_session, inventory_item_id=inventory_item_id, **kwargs
        )

    return _make
