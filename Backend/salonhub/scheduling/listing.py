"""
Read-side appointment queries: list, count, stats, per client, per employee.

Everything here is company-scoped and ignores trashed appointments.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.responses import ApiError, ErrorCodes
from ..models import Appointment, AppointmentStatus, Client, Employee, Service
from ..tenancy import CompanyContext, get_client_by_id, get_employee_by_id, tenant_filter
from .errors import ClientNotFound, StylistNotFound
from .schemas import (
    AppointmentListItem,
    AppointmentListOut,
    AppointmentOut,
    AppointmentStatsOut,
    Pagination,
)
from .timeutils import format_local


def _live_appointments(company_id: int):
    return (
        tenant_filter(Appointment, company_id),
        Appointment.is_trashed.is_(False),
    )


def _with_names(filters) -> Select:
    return (
        select(Appointment, Client.name, Employee.employee_name, Service.service_name)
        .outerjoin(Client, Client.id == Appointment.client_id)
        .outerjoin(Employee, Employee.id == Appointment.employee_id)
        .outerjoin(Service, Service.id == Appointment.service_id)
        .where(*filters)
        .order_by(Appointment.created_at.desc(), Appointment.start_at_utc.desc())
    )


def _to_item(row, tz_name: str) -> AppointmentListItem:
    appointment, client_name, employee_name, service_name = row
    base = AppointmentOut.model_validate(appointment).model_dump()
    return AppointmentListItem(
        **base,
        expires_at=format_local(appointment.expires_at_utc, tz_name),
        client_name=client_name,
        employee_name=employee_name,
        service_name=service_name,
    )


def local_day_bounds(selected_date: str, tz_name: str) -> tuple[datetime, datetime]:
    """UTC bounds of one business-local calendar day."""
    try:
        day = datetime.strptime(selected_date.strip(), "%Y-%m-%d")
    except ValueError:
        raise ApiError(
            f"Invalid date format: {selected_date!r} (expected YYYY-MM-DD)",
            code=ErrorCodes.VALIDATION_ERROR,
            status_code=400,
        )
    tz = ZoneInfo(tz_name)
    local_start = day.replace(tzinfo=tz)
    local_end = (day + timedelta(days=1)).replace(tzinfo=tz)
    return local_start.astimezone(timezone.utc), local_end.astimezone(timezone.utc)


async def list_appointments(
    session: AsyncSession,
    ctx: CompanyContext,
    status: Optional[AppointmentStatus] = None,
    selected_date: Optional[str] = None,
    client_id: Optional[int] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> AppointmentListOut:
    """
    Newest first. Pagination applies only when both `page` and `limit` are
    positive; otherwise every matching appointment is returned.
    """
    filters = list(_live_appointments(ctx.company_id))
    if status is not None:
        filters.append(Appointment.status == status)
    if client_id is not None:
        filters.append(Appointment.client_id == client_id)
    if selected_date:
        day_start, day_end = local_day_bounds(selected_date, ctx.timezone)
        filters.append(Appointment.start_at_utc >= day_start)
        filters.append(Appointment.start_at_utc < day_end)

    stmt = _with_names(filters)
    paginated = bool(page and limit and page > 0 and limit > 0)
    pagination = None
    if paginated:
        total = (
            await session.execute(select(func.count()).select_from(Appointment).where(*filters))
        ).scalar_one()
        stmt = stmt.offset((page - 1) * limit).limit(limit)
        pagination = Pagination(
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
        )

    result = await session.execute(stmt)
    items = [_to_item(row, ctx.timezone) for row in result.all()]
    return AppointmentListOut(items=items, pagination=pagination)


async def count_appointments(session: AsyncSession, company_id: int) -> int:
    result = await session.execute(
        select(func.count()).select_from(Appointment).where(*_live_appointments(company_id))
    )
    return result.scalar_one()


async def appointment_stats(session: AsyncSession, company_id: int) -> AppointmentStatsOut:
    result = await session.execute(
        select(Appointment.status, func.count())
        .where(*_live_appointments(company_id))
        .group_by(Appointment.status)
    )
    counts = {status: count for status, count in result.all()}
    return AppointmentStatsOut(
        upcoming=counts.get(AppointmentStatus.UPCOMING, 0),
        ongoing=counts.get(AppointmentStatus.ONGOING, 0),
        completed=counts.get(AppointmentStatus.COMPLETED, 0),
        cancelled=counts.get(AppointmentStatus.CANCELLED, 0),
        total=sum(counts.values()),
    )


async def list_client_appointments(
    session: AsyncSession,
    ctx: CompanyContext,
    client_id: int,
) -> tuple[Client, list[AppointmentListItem]]:
    client = await get_client_by_id(session, ctx.company_id, client_id)
    if not client:
        raise ClientNotFound()
    result = await session.execute(
        _with_names([*_live_appointments(ctx.company_id), Appointment.client_id == client.id])
    )
    return client, [_to_item(row, ctx.timezone) for row in result.all()]


async def list_employee_appointments(
    session: AsyncSession,
    ctx: CompanyContext,
    employee_id: int,
) -> tuple[Employee, list[AppointmentListItem]]:
    employee = await get_employee_by_id(session, ctx.company_id, employee_id)
    if not employee:
        raise StylistNotFound()
    result = await session.execute(
        _with_names([*_live_appointments(ctx.company_id), Appointment.employee_id == employee.id])
    )
    return employee, [_to_item(row, ctx.timezone) for row in result.all()]
