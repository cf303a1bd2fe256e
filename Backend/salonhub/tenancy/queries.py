"""
Tenant-scoped query helpers.

These functions provide safe, tenant-isolated database queries.
ALL queries for tenant data MUST use these helpers or include explicit
company_id filtering.

Usage:
    from salonhub.tenancy.queries import get_service_by_id, scoped_select

    service = await get_service_by_id(session, ctx.company_id, service_id)

    # Or using composable helpers:
    stmt = scoped_select(Appointment, company_id).where(Appointment.is_trashed.is_(False))
"""

import uuid
from typing import Optional, Sequence, Type, TypeVar

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import DeclarativeBase

from ..models import Appointment, Client, Employee, Service

# Type variable for generic model functions
T = TypeVar("T", bound=DeclarativeBase)


# ────────────────────────────────────────────────────────────────
# Composable Query Helpers
# ────────────────────────────────────────────────────────────────

def scoped_select(model: Type[T], company_id: int) -> Select:
    """
    Create a SELECT statement pre-filtered by company_id.

    Usage:
        stmt = scoped_select(Service, ctx.company_id).where(Service.price > 0)
        result = await session.execute(stmt)
    """
    return select(model).where(model.company_id == company_id)


def tenant_filter(model: Type[T], company_id: int):
    """
    Return a SQLAlchemy filter clause for company_id.

    Usage:
        stmt = select(func.count()).select_from(Appointment).where(tenant_filter(Appointment, ctx.company_id))
    """
    return model.company_id == company_id


async def require_owned(
    session: AsyncSession,
    model: Type[T],
    entity_id,
    company_id: int,
) -> Optional[T]:
    """
    Fetch an entity by ID, validating company ownership.
    Returns None if not found or wrong company.
    """
    result = await session.execute(
        select(model).where(
            model.id == entity_id,
            model.company_id == company_id,
        )
    )
    return result.scalar_one_or_none()


# ────────────────────────────────────────────────────────────────
# Reference Lookups
# ────────────────────────────────────────────────────────────────

async def get_employee_by_id(
    session: AsyncSession,
    company_id: int,
    employee_id: int,
) -> Optional[Employee]:
    """Get an employee (stylist) by ID, scoped to company."""
    return await require_owned(session, Employee, employee_id, company_id)


async def get_service_by_id(
    session: AsyncSession,
    company_id: int,
    service_id: int,
) -> Optional[Service]:
    """Get a service by ID, scoped to company."""
    return await require_owned(session, Service, service_id, company_id)


async def get_client_by_id(
    session: AsyncSession,
    company_id: int,
    client_id: int,
) -> Optional[Client]:
    """Get a non-trashed client by primary key, scoped to company."""
    result = await session.execute(
        scoped_select(Client, company_id).where(
            Client.id == client_id,
            Client.is_trashed.is_(False),
        )
    )
    return result.scalar_one_or_none()


async def get_client_by_code(
    session: AsyncSession,
    company_id: int,
    client_code: str,
) -> Optional[Client]:
    """
    Get a non-trashed client by its human-readable code (e.g. "CL001").

    Codes are stored upper-case; the lookup normalizes the input the same way.
    """
    normalized = (client_code or "").strip().upper()
    if not normalized:
        return None
    result = await session.execute(
        scoped_select(Client, company_id).where(
            Client.client_code == normalized,
            Client.is_trashed.is_(False),
        )
    )
    return result.scalar_one_or_none()


# ────────────────────────────────────────────────────────────────
# Appointment Queries
# ────────────────────────────────────────────────────────────────

async def get_appointment_by_id(
    session: AsyncSession,
    company_id: int,
    appointment_id: uuid.UUID,
) -> Optional[Appointment]:
    """Get a non-trashed appointment by ID, scoped to company."""
    result = await session.execute(
        scoped_select(Appointment, company_id).where(
            Appointment.id == appointment_id,
            Appointment.is_trashed.is_(False),
        )
    )
    return result.scalar_one_or_none()


async def list_company_ids_with_active_appointments(session: AsyncSession) -> Sequence[int]:
    """Distinct companies owning at least one non-trashed appointment."""
    result = await session.execute(
        select(Appointment.company_id)
        .where(Appointment.is_trashed.is_(False))
        .distinct()
        .order_by(Appointment.company_id)
    )
    return result.scalars().all()
