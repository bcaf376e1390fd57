"""Pytest fixtures for payroll bureau tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import date
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from payroll_bureau.api.app import create_app
from payroll_bureau.api.dependencies import get_db_session
from payroll_bureau.identity import InMemoryIdentityProvider, Principal
from payroll_bureau.models import (
    Base,
    Client,
    ClientOnboarding,
    ClientStatus,
    PayrollRun,
    Tenant,
    TenantPlan,
    User,
)
from payroll_bureau.services import ProvisioningService

# Use in-memory SQLite for tests (with async support)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    """Create a fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def identity_provider() -> InMemoryIdentityProvider:
    return InMemoryIdentityProvider()


@pytest.fixture
def provisioning(session: AsyncSession, identity_provider) -> ProvisioningService:
    return ProvisioningService(session, identity_provider)


@pytest.fixture
async def test_tenant(session: AsyncSession) -> Tenant:
    """Create a test tenant."""
    tenant = Tenant(id=uuid4(), name="Acme Payroll Ltd", plan=TenantPlan.TRIAL.value)
    session.add(tenant)
    await session.commit()
    return tenant


@pytest.fixture
async def test_user(session: AsyncSession, test_tenant: Tenant) -> User:
    """Create an admin profile in the test tenant."""
    user = User(
        id=uuid4(),
        tenant_id=test_tenant.id,
        email="jane@acme-payroll.co.uk",
        name="Jane Smith",
    )
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
def principal(test_user: User) -> Principal:
    """Session principal matching the test user."""
    return Principal(user_id=test_user.id, email=test_user.email)


@pytest.fixture
def stranger() -> Principal:
    """Authenticated principal with no profile yet."""
    return Principal(user_id=uuid4(), email="sam@newbureau.co.uk", metadata={"name": "Sam Lee"})


@pytest.fixture
async def onboarding_client(session: AsyncSession, test_tenant: Tenant) -> Client:
    """Client in onboarding with a two-task checklist, both required."""
    client = Client(
        id=uuid4(),
        tenant_id=test_tenant.id,
        name="Bakery Co",
        status=ClientStatus.ONBOARDING.value,
    )
    session.add(client)
    await session.flush()
    session.add(
        ClientOnboarding(
            client_id=client.id,
            tasks=[
                {"id": "a", "required": True, "completed": False},
                {"id": "b", "required": True, "completed": False},
            ],
            progress_percentage=0,
        )
    )
    await session.commit()
    return client


@pytest.fixture
async def monthly_client(session: AsyncSession, test_tenant: Tenant) -> Client:
    """Active client paid on the 28th of each month."""
    client = Client(
        id=uuid4(),
        tenant_id=test_tenant.id,
        name="Garage Ltd",
        status=ClientStatus.ACTIVE.value,
        pay_frequency="monthly",
        pay_day="28",
    )
    session.add(client)
    await session.commit()
    return client


@pytest.fixture
def make_run(session: AsyncSession, test_tenant: Tenant):
    """Factory adding a payroll run for a client."""

    async def _make(client: Client, pay_date: date, status: str = "not_started", **kwargs):
        run = PayrollRun(
            tenant_id=test_tenant.id,
            client_id=client.id,
            pay_date=pay_date,
            status=status,
            **kwargs,
        )
        session.add(run)
        await session.commit()
        return run

    return _make


@pytest.fixture
async def client(session_factory, identity_provider) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, backed by the test database."""
    app = create_app(identity_provider=identity_provider)

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as db:
            yield db

    app.dependency_overrides[get_db_session] = override_db_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers(test_user: User) -> dict[str, str]:
    return {"X-User-ID": str(test_user.id), "X-User-Email": test_user.email}
