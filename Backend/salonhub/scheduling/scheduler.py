"""
Appointment scheduling.

schedule_appointment validates every reference before it writes anything,
then commits the appointment, its sequential code and its follow-ups
(payment when the service is priced, notification always) in a single
transaction. Follow-ups are applied right after commit on a best-effort
basis; the sweep replays whatever did not complete.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Appointment, AppointmentStatus, CounterKind, Service
from ..notifications import APPOINTMENT_SCHEDULED_MESSAGE, build_appointment_details
from ..tenancy import CompanyContext, get_client_by_code, get_employee_by_id, get_service_by_id
from .duration import parse_duration_minutes
from .errors import (
    ClientNotFound,
    InvalidExpireTimeCalculation,
    ServiceNotFound,
    StylistNotFound,
)
from .followups import enqueue_notification, enqueue_payment, process_followups
from .ids import next_sequential_id
from .schemas import ScheduleAppointmentRequest
from .status import classify_status
from .timeutils import normalize_appointment_time


logger = logging.getLogger(__name__)


@dataclass
class ScheduledAppointment:
    appointment: Appointment
    selected_time: str
    appointment_date: str


def compute_expiry(start_at_utc: datetime, service: Service) -> datetime:
    """start + the service's duration; raises if the window would be empty."""
    minutes = parse_duration_minutes(service.duration)
    try:
        expires_at = start_at_utc + timedelta(minutes=minutes)
    except OverflowError as exc:
        raise InvalidExpireTimeCalculation() from exc
    if expires_at <= start_at_utc:
        raise InvalidExpireTimeCalculation(
            f"Service duration {service.duration!r} does not produce a valid appointment window"
        )
    return expires_at


async def run_followups_best_effort(
    session: AsyncSession,
    followup_ids: list[int],
    appointment: Appointment,
    now: datetime,
) -> None:
    appointment_code = appointment.appointment_code
    try:
        await process_followups(session, followup_ids, now=now)
    except Exception as exc:
        await session.rollback()
        logger.exception(
            "Follow-ups for appointment %s left for replay: %s",
            appointment_code,
            exc,
        )
    # Rollbacks during follow-up processing expire loaded instances
    await session.refresh(appointment)


async def schedule_appointment(
    session: AsyncSession,
    ctx: CompanyContext,
    payload: ScheduleAppointmentRequest,
    now: Optional[datetime] = None,
) -> ScheduledAppointment:
    """
    Book an appointment for `ctx.company_id`.

    Raises:
        InvalidAppointmentDateTime: time input missing or unparseable
        StylistNotFound / ClientNotFound / ServiceNotFound: unknown reference
        InvalidDurationFormat / UnsupportedDurationUnit: bad service duration
        InvalidExpireTimeCalculation: duration does not yield a window
    """
    now = now or datetime.now(timezone.utc)

    normalized = normalize_appointment_time(
        ctx.timezone,
        date_time=payload.appointment_date_time,
        date=payload.date,
        time=payload.time,
    )

    employee = await get_employee_by_id(session, ctx.company_id, payload.employee_id)
    if not employee:
        raise StylistNotFound()

    client = await get_client_by_code(session, ctx.company_id, payload.client_id)
    if not client:
        raise ClientNotFound(f"Client not found: {payload.client_id.upper()}")

    service = await get_service_by_id(session, ctx.company_id, payload.service_id)
    if not service:
        raise ServiceNotFound()

    expires_at = compute_expiry(normalized.start_at_utc, service)
    status = classify_status(now, normalized.start_at_utc, expires_at, AppointmentStatus.UPCOMING)

    try:
        appointment_code = await next_sequential_id(session, ctx.company_id, CounterKind.APPOINTMENT)
        appointment = Appointment(
            id=uuid.uuid4(),
            company_id=ctx.company_id,
            appointment_code=appointment_code,
            client_id=client.id,
            client_code=client.client_code,
            employee_id=employee.id,
            service_id=service.id,
            start_at_utc=normalized.start_at_utc,
            expires_at_utc=expires_at,
            display_time=normalized.local_time,
            note=payload.note,
            paid_status=payload.paid_status,
            status=status,
            is_trashed=False,
        )
        session.add(appointment)

        price = Decimal(service.price or 0)
        followups = []
        if price > 0:
            followups.append(enqueue_payment(session, appointment, price))
        followups.append(
            enqueue_notification(
                session,
                appointment,
                APPOINTMENT_SCHEDULED_MESSAGE,
                build_appointment_details(appointment, client.name, ctx.timezone),
            )
        )
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    followup_ids = [followup.id for followup in followups]
    logger.info(
        "Scheduled appointment %s (%s) for company_id=%s",
        appointment.appointment_code,
        status.value,
        ctx.company_id,
    )

    await run_followups_best_effort(session, followup_ids, appointment, now)

    return ScheduledAppointment(
        appointment=appointment,
        selected_time=payload.selected_time(),
        appointment_date=normalized.local_date,
    )
