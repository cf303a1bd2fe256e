"""
Company-scoped appointment routes.

The caller's company arrives on the X-Company-Id header (see
salonhub.tenancy.context). Every response uses the standard envelope:

    POST  /appointments                         -> schedule (201)
    GET   /appointments                         -> list (filters + pagination)
    GET   /appointments/count                   -> count
    GET   /appointments/stats                   -> counts per status
    GET   /appointments/client/{client_id}      -> one client's appointments
    GET   /appointments/employee/{employee_id}  -> one stylist's appointments
    PATCH /appointments/{appointment_id}        -> update / cancel
    PATCH /appointments/soft-delete/{appointment_id} -> trash
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from .core.db import get_session
from .core.responses import success_response
from .models import AppointmentStatus
from .scheduling.listing import (
    appointment_stats,
    count_appointments,
    list_appointments,
    list_client_appointments,
    list_employee_appointments,
)
from .scheduling.scheduler import schedule_appointment
from .scheduling.schemas import (
    AppointmentOut,
    ScheduleAppointmentRequest,
    ScheduledAppointmentOut,
    UpdateAppointmentRequest,
)
from .scheduling.updates import soft_delete_appointment, update_appointment
from .tenancy import CompanyContext, get_company_context


router = APIRouter(prefix="/appointments", tags=["appointments"])


# ────────────────────────────────────────────────────────────────
# Write
# ────────────────────────────────────────────────────────────────

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_appointment(
    payload: ScheduleAppointmentRequest,
    ctx: CompanyContext = Depends(get_company_context),
    session: AsyncSession = Depends(get_session),
):
    scheduled = await schedule_appointment(session, ctx, payload)
    body = ScheduledAppointmentOut(
        appointment=AppointmentOut.model_validate(scheduled.appointment),
        selected_time=scheduled.selected_time,
        appointment_date=scheduled.appointment_date,
    )
    return success_response(body.model_dump(mode="json"))


@router.patch("/soft-delete/{appointment_id}")
async def trash_appointment(
    appointment_id: uuid.UUID,
    ctx: CompanyContext = Depends(get_company_context),
    session: AsyncSession = Depends(get_session),
):
    appointment = await soft_delete_appointment(session, ctx, appointment_id)
    return success_response(AppointmentOut.model_validate(appointment).model_dump(mode="json"))


@router.patch("/{appointment_id}")
async def patch_appointment(
    appointment_id: uuid.UUID,
    payload: UpdateAppointmentRequest,
    ctx: CompanyContext = Depends(get_company_context),
    session: AsyncSession = Depends(get_session),
):
    appointment = await update_appointment(session, ctx, appointment_id, payload)
    return success_response(AppointmentOut.model_validate(appointment).model_dump(mode="json"))


# ────────────────────────────────────────────────────────────────
# Read
# ────────────────────────────────────────────────────────────────

@router.get("")
async def get_appointments(
    status_filter: Optional[AppointmentStatus] = Query(default=None, alias="status"),
    selected_date: Optional[str] = Query(default=None, description="YYYY-MM-DD in business time"),
    client_id: Optional[int] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    ctx: CompanyContext = Depends(get_company_context),
    session: AsyncSession = Depends(get_session),
):
    listing = await list_appointments(
        session,
        ctx,
        status=status_filter,
        selected_date=selected_date,
        client_id=client_id,
        page=page,
        limit=limit,
    )
    return success_response(listing.model_dump(mode="json"))


@router.get("/count")
async def get_appointment_count(
    ctx: CompanyContext = Depends(get_company_context),
    session: AsyncSession = Depends(get_session),
):
    return success_response({"count": await count_appointments(session, ctx.company_id)})


@router.get("/stats")
async def get_appointment_stats(
    ctx: CompanyContext = Depends(get_company_context),
    session: AsyncSession = Depends(get_session),
):
    stats = await appointment_stats(session, ctx.company_id)
    return success_response(stats.model_dump())


@router.get("/client/{client_id}")
async def get_client_appointments(
    client_id: int,
    ctx: CompanyContext = Depends(get_company_context),
    session: AsyncSession = Depends(get_session),
):
    client, items = await list_client_appointments(session, ctx, client_id)
    return success_response(
        {
            "client": {
                "id": client.id,
                "client_code": client.client_code,
                "name": client.name,
                "email": client.email,
                "phone_number": client.phone_number,
                "gender": client.gender,
            },
            "appointments": [item.model_dump(mode="json") for item in items],
        }
    )


@router.get("/employee/{employee_id}")
async def get_employee_appointments(
    employee_id: int,
    ctx: CompanyContext = Depends(get_company_context),
    session: AsyncSession = Depends(get_session),
):
    employee, items = await list_employee_appointments(session, ctx, employee_id)
    return success_response(
        {
            "employee": {
                "id": employee.id,
                "employee_name": employee.employee_name,
                "email": employee.email,
                "active": employee.active,
            },
            "appointments": [item.model_dump(mode="json") for item in items],
        }
    )
