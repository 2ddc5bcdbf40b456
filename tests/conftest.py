"""pytest fixtures shared across all tests."""

from __future__ import annotations

import os

# Settings are read once and cached: pin the test values before any import.
os.environ["APP_ENV"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["PUBLIC_BASE_URL"] = "http://market.test"
os.environ.pop("LINE_CLIENT_ID", None)
os.environ.pop("LINE_CLIENT_SECRET", None)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402

from villagemarket.core.config import get_settings  # noqa: E402

get_settings.cache_clear()

from villagemarket.core import accounts  # noqa: E402
from villagemarket.core.auth import issue_token  # noqa: E402
from villagemarket.core.limiter import limiter  # noqa: E402
from villagemarket.models.base import Base  # noqa: E402
from villagemarket.models.shop import Shop  # noqa: E402
from villagemarket.models.user import UserRole  # noqa: E402

# In-memory SQLite: no PostgreSQL needed to run the suite.
# Each test function gets its own fresh DB to avoid cross-test pollution.
TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

PASSWORD = "secret1"


@pytest_asyncio.fixture
async def engine():
    """Create a fresh in-memory SQLite engine per test function."""
    eng = create_async_engine(
        TEST_DB_URL,
        echo=False,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=True)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Yield an async session bound to the test engine."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def app(session_factory):
    """The FastAPI app wired to the test DB (auth is NOT bypassed)."""
    from villagemarket.api.app import create_app
    from villagemarket.api.dependencies import get_db

    application = create_app()

    async def override_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db] = override_db
    limiter.enabled = False
    yield application
    limiter.enabled = True


@pytest_asyncio.fixture
async def client(app):
    """HTTPX async test client wired to the FastAPI app with a test DB."""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def make_user(session_factory):
    """Factory creating a committed password account."""
    counter = {"n": 0}

    async def _make(role: UserRole = UserRole.CUSTOMER, active: bool = True, **kwargs):
        counter["n"] += 1
        house = kwargs.pop("house_number", f"{counter['n']}/1")
        async with session_factory() as session:
            user = await accounts.create_local_user(
                session,
                name=kwargs.pop("name", f"Villager {counter['n']}"),
                username=kwargs.pop("username", house),
                password=kwargs.pop("password", PASSWORD),
                house_number=house,
                role=role,
                **kwargs,
            )
            if not active:
                await accounts.set_active(session, user, False)
            await session.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def make_shop(session_factory):
    async def _make(owner, name: str = "Fresh Veg", **kwargs):
        async with session_factory() as session:
            shop = Shop(
                owner_id=owner.id,
                name=name,
                house_number=kwargs.pop("house_number", owner.house_number or "0/0"),
                **kwargs,
            )
            session.add(shop)
            await session.commit()
            return shop

    return _make


@pytest.fixture
def auth_headers():
    """Build an Authorization header carrying a fresh token for a user."""

    def _headers(user) -> dict[str, str]:
        return {"Authorization": f"Bearer {issue_token(user)}"}

    return _headers
