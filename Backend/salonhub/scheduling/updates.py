import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Appointment, AppointmentStatus, Client
from ..notifications import APPOINTMENT_UPDATED_MESSAGE, build_appointment_details
from ..tenancy import (
    CompanyContext,
    get_appointment_by_id,
    get_employee_by_id,
    get_service_by_id,
    require_owned,
)
from .errors import AppointmentNotFound, ServiceNotFound, StylistNotFound
from .followups import enqueue_notification
from .scheduler import compute_expiry, run_followups_best_effort
from .schemas import UpdateAppointmentRequest
from .status import classify_status, ensure_cancellable
from .timeutils import normalize_appointment_time


logger = logging.getLogger(__name__)


async def update_appointment(
    session: AsyncSession,
    ctx: CompanyContext,
    appointment_id: uuid.UUID,
    patch: UpdateAppointmentRequest,
    now: Optional[datetime] = None,
) -> Appointment:
    """
    Apply an edit to an existing appointment.

    Cancelling is only allowed from Upcoming. Any other status in the patch
    is not trusted: status is re-derived from the (possibly new) window, and
    Cancelled stays Cancelled. A new date/time or service recomputes the
    window from the service's duration.
    """
    now = now or datetime.now(timezone.utc)

    appointment = await get_appointment_by_id(session, ctx.company_id, appointment_id)
    if not appointment:
        raise AppointmentNotFound()

    cancelling = patch.status == AppointmentStatus.CANCELLED
    if cancelling:
        ensure_cancellable(appointment.status)

    # Validate everything before touching the row
    employee = None
    if patch.employee_id is not None and patch.employee_id != appointment.employee_id:
        employee = await get_employee_by_id(session, ctx.company_id, patch.employee_id)
        if not employee:
            raise StylistNotFound()

    service_changed = patch.service_id is not None and patch.service_id != appointment.service_id
    window_changed = service_changed or patch.changes_time()

    if window_changed:
        service = await get_service_by_id(
            session, ctx.company_id, patch.service_id if service_changed else appointment.service_id
        )
        if not service:
            raise ServiceNotFound()

        start_at_utc = appointment.start_at_utc
        display_time = appointment.display_time
        if patch.changes_time():
            normalized = normalize_appointment_time(
                ctx.timezone,
                date_time=patch.appointment_date_time,
                date=patch.date,
                time=patch.time,
            )
            start_at_utc = normalized.start_at_utc
            display_time = normalized.local_time
        expires_at_utc = compute_expiry(start_at_utc, service)

        appointment.start_at_utc = start_at_utc
        appointment.display_time = display_time
        appointment.expires_at_utc = expires_at_utc
        appointment.service_id = service.id

    if employee:
        appointment.employee_id = employee.id

    if cancelling:
        appointment.status = AppointmentStatus.CANCELLED
    elif window_changed or patch.status is not None:
        appointment.status = classify_status(
            now, appointment.start_at_utc, appointment.expires_at_utc, appointment.status
        )

    if "note" in patch.model_fields_set:
        appointment.note = patch.note
    if patch.paid_status is not None:
        appointment.paid_status = patch.paid_status

    client = await require_owned(session, Client, appointment.client_id, ctx.company_id)
    client_name = client.name if client else ""

    try:
        followup = enqueue_notification(
            session,
            appointment,
            APPOINTMENT_UPDATED_MESSAGE,
            build_appointment_details(appointment, client_name, ctx.timezone),
        )
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(
        "Updated appointment %s (%s) for company_id=%s",
        appointment.appointment_code,
        appointment.status.value,
        ctx.company_id,
    )

    await run_followups_best_effort(session, [followup.id], appointment, now)
    return appointment


async def soft_delete_appointment(
    session: AsyncSession,
    ctx: CompanyContext,
    appointment_id: uuid.UUID,
) -> Appointment:
    """Trash an appointment. Its code is never handed out again."""
    appointment = await get_appointment_by_id(session, ctx.company_id, appointment_id)
    if not appointment:
        raise AppointmentNotFound()

    appointment.is_trashed = True
    await session.commit()
    await session.refresh(appointment)
    logger.info(
        "Trashed appointment %s for company_id=%s",
        appointment.appointment_code,
        ctx.company_id,
    )
    return appointment
