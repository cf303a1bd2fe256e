"""
Pytest configuration and fixtures for async database testing.

Every test gets its own throwaway SQLite database (aiosqlite) with the full
schema created from the models, so tests never share state and never touch
a real PostgreSQL instance.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from salonhub.core.db import Base
from salonhub.models import Client, Company, CounterKind, Employee, Service
from salonhub.scheduling.ids import next_sequential_id
from salonhub.seed import seed_demo_data
from salonhub.tenancy import CompanyContext


# 11:30 in Asia/Kolkata
FIXED_NOW = datetime(2025, 3, 14, 6, 0, tzinfo=timezone.utc)


@dataclass
class Salon:
    """One seeded tenant and the records tests book against."""

    company: Company
    ctx: CompanyContext
    client: Client
    employee: Employee
    free_service: Service
    haircut: Service
    colour: Service


# ────────────────────────────────────────────────────────────────
# Database
# ────────────────────────────────────────────────────────────────

@pytest.fixture
async def async_engine(tmp_path):
    """Fresh SQLite database file per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'salonhub_test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine):
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def async_session(session_factory):
    async with session_factory() as session:
        yield session


# ────────────────────────────────────────────────────────────────
# Tenants
# ────────────────────────────────────────────────────────────────

async def _load_salon(session: AsyncSession, company: Company) -> Salon:
    client = (
        await session.execute(select(Client).where(Client.company_id == company.id))
    ).scalars().first()
    employee = (
        await session.execute(
            select(Employee).where(Employee.company_id == company.id).order_by(Employee.id)
        )
    ).scalars().first()
    services = {
        svc.service_name: svc
        for svc in (
            await session.execute(select(Service).where(Service.company_id == company.id))
        ).scalars().all()
    }
    return Salon(
        company=company,
        ctx=CompanyContext(company_id=company.id, company_name=company.name, timezone=company.timezone),
        client=client,
        employee=employee,
        free_service=services["Consultation"],
        haircut=services["Haircut"],
        colour=services["Hair Colour"],
    )


@pytest.fixture
async def salon(async_session) -> Salon:
    """The demo tenant: client CL001, stylists Alex and Sam, three services."""
    company = await seed_demo_data(async_session)
    return await _load_salon(async_session, company)


async def create_company(
    session: AsyncSession,
    slug: str,
    *,
    timezone_name: str = "Asia/Kolkata",
    service_duration: str = "45 mins",
    service_price: Decimal = Decimal("800"),
) -> Salon:
    """A second, independent tenant with one client, stylist and service."""
    company = Company(name=slug.replace("-", " ").title(), slug=slug, timezone=timezone_name)
    session.add(company)
    await session.flush()

    client_code = await next_sequential_id(session, company.id, CounterKind.CLIENT)
    client = Client(company_id=company.id, client_code=client_code, name="Other Client")
    employee = Employee(company_id=company.id, employee_name="Jordan", active=True)
    service = Service(
        company_id=company.id,
        service_name="Beard Trim",
        duration=service_duration,
        price=service_price,
    )
    session.add_all([client, employee, service])
    await session.commit()
    return Salon(
        company=company,
        ctx=CompanyContext(company_id=company.id, company_name=company.name, timezone=timezone_name),
        client=client,
        employee=employee,
        free_service=service,
        haircut=service,
        colour=service,
    )


@pytest.fixture
async def other_salon(async_session) -> Salon:
    return await create_company(async_session, "other-salon")


# ────────────────────────────────────────────────────────────────
# HTTP
# ────────────────────────────────────────────────────────────────

@pytest.fixture
async def client(session_factory):
    """
    AsyncClient against the FastAPI app with get_session overridden to use
    the per-test database. Startup events (schema creation on PostgreSQL,
    the background sweeper) do not run under ASGITransport.
    """
    from salonhub.main import app
    from salonhub.core.db import get_session

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
