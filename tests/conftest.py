"""
Shared test fixtures for the EMS test suite.

Every test gets a fresh in-memory SQLite schema (aiosqlite + AsyncSession)
and talks to the app through httpx's ASGI transport.
"""

import os
import sys
from collections.abc import AsyncGenerator, Awaitable, Callable, Generator
from datetime import date

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
# Cheap hashes and no throttling in the suite
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOGIN_RATE_LIMIT"] = "1000/minute"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ems.api.v1.deps import get_db
from ems.core.security import get_password_hash
from ems.db.base import Base
from ems.main import app
from ems.models.employee import Department, Employee
from ems.models.user import User

PASSWORD = "secret123"

TestingSessionLocal = async_sessionmaker(
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def setup_db():
    """Fresh in-memory database per test, bound to the current event loop."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal.configure(bind=test_engine)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestingSessionLocal() as session:
        yield session


app.dependency_overrides[get_db] = _override_get_db


class UnreachableSession:
    """Stand-in for an AsyncSession whose database cannot be reached."""

    def __init__(self, error: Exception):
        self.error = error
        self.rollbacks = 0

    async def execute(self, *args, **kwargs):
        raise self.error

    async def commit(self):
        raise self.error

    async def delete(self, obj):
        raise self.error

    def add(self, obj):
        pass

    async def rollback(self):
        self.rollbacks += 1

    async def close(self):
        pass


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Anonymous httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ── Accounts ────────────────────────────────────────────────────────
async def create_account(
    db: AsyncSession,
    username: str,
    role: str = "employee",
    *,
    status: str = "active",
    password: str = PASSWORD,
    profile: bool = True,
    department_id: int | None = None,
) -> User:
    """Insert a user (and, by default, a linked employee profile)."""
    user = User(
        username=username,
        email=f"{username}@ems.test",
        hashed_password=get_password_hash(password),
        role=role,
        status=status,
    )
    db.add(user)
    await db.flush()
    if profile:
        db.add(
            Employee(
                user_id=user.id,
                employee_code=f"EMP-{user.id:04d}",
                first_name=username.capitalize(),
                last_name="Tester",
                department_id=department_id,
                position="Staff",
                hire_date=date(2024, 1, 15),
            )
        )
    await db.commit()
    await db.refresh(user)
    return user


async def login(client: AsyncClient, username: str, password: str = PASSWORD) -> dict:
    """Log *client* in over the JSON API and arm it with the CSRF header."""
    resp = await client.post(
        "/api/v1/auth/login",
        json={"username": username, "password": password},
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()
    client.headers["X-CSRF-Token"] = data["csrf_token"]
    return data


@pytest.fixture
async def client_factory() -> AsyncGenerator[Callable[..., Awaitable[AsyncClient]], None]:
    """Build extra clients, each with its own cookie jar (JSON API clients by default)."""
    clients: list[AsyncClient] = []

    async def _make(accept: str = "application/json") -> AsyncClient:
        client = AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            headers={"Accept": accept},
        )
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.aclose()


@pytest.fixture
async def department(db_session: AsyncSession) -> Department:
    dept = Department(name="Engineering", description="Builds things")
    db_session.add(dept)
    await db_session.commit()
    await db_session.refresh(dept)
    return dept


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await create_account(db_session, "admin", "admin")


@pytest.fixture
async def employee_user(db_session: AsyncSession, department: Department) -> User:
    return await create_account(db_session, "alice", "employee", department_id=department.id)


@pytest.fixture
async def admin_client(client_factory, admin_user: User) -> AsyncClient:
    client = await client_factory()
    await login(client, admin_user.username)
    return client


@pytest.fixture
async def employee_client(client_factory, employee_user: User) -> AsyncClient:
    client = await client_factory()
    await login(client, employee_user.username)
    return client


@pytest.fixture
def store_down() -> Generator[None, None, None]:
    """Route every request's database session to a refused connection."""

    async def _unreachable_db() -> AsyncGenerator[UnreachableSession, None]:
        yield UnreachableSession(ConnectionRefusedError(111, "Connect call failed"))

    app.dependency_overrides[get_db] = _unreachable_db
    yield
    app.dependency_overrides[get_db] = _override_get_db
