"""
Company notification inbox.

Notifications are append-only audit records of domain events (appointments
scheduled or changed). The only mutation allowed afterwards is flipping the
read flag from the inbox.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .core.responses import ApiError, ErrorCodes
from .models import Appointment, Notification, NotificationType
from .scheduling.timeutils import DISPLAY_DATE_FORMAT, to_local


logger = logging.getLogger(__name__)

APPOINTMENT_SCHEDULED_MESSAGE = "You have a new appointment scheduled."
APPOINTMENT_UPDATED_MESSAGE = "Appointment updated."


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    company_id: int
    type: NotificationType
    message: str
    details: dict[str, Any]
    timestamp: datetime
    is_read: bool


class MarkReadRequest(BaseModel):
    notification_ids: list[int] = Field(default_factory=list)


def build_appointment_details(appointment: Appointment, client_name: str, tz_name: str) -> dict:
    """Snapshot of the appointment as the inbox shows it."""
    return {
        "appointment_id": str(appointment.id),
        "appointment_code": appointment.appointment_code,
        "client_name": client_name,
        "status": appointment.status.value,
        "appointment_date": to_local(appointment.start_at_utc, tz_name).strftime(DISPLAY_DATE_FORMAT),
        "time": appointment.display_time,
        "paid_status": appointment.paid_status.value,
    }


async def save_notification(
    session: AsyncSession,
    *,
    company_id: int,
    type: NotificationType,
    message: str,
    details: dict,
    timestamp: Optional[datetime] = None,
    source_key: Optional[str] = None,
) -> Notification:
    """
    Add a notification to the session (the caller commits).

    When `source_key` is given and a notification with that key already
    exists, the existing row is returned instead of writing a duplicate.
    """
    if source_key:
        result = await session.execute(
            select(Notification).where(
                Notification.company_id == company_id,
                Notification.source_key == source_key,
            )
        )
        existing = result.scalar_one_or_none()
        if existing:
            logger.debug("Notification %s already recorded", source_key)
            return existing

    notification = Notification(
        company_id=company_id,
        type=type,
        message=message,
        details=details,
        source_key=source_key,
        timestamp=timestamp or datetime.now(timezone.utc),
        is_read=False,
    )
    session.add(notification)
    await session.flush()
    return notification


def _month_bounds(now: datetime, tz_name: str) -> tuple[datetime, datetime]:
    local_now = to_local(now, tz_name)
    start = local_now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


async def list_notifications(
    session: AsyncSession,
    company_id: int,
    tz_name: str,
    read_status: Optional[bool] = None,
    now: Optional[datetime] = None,
) -> Sequence[Notification]:
    """Current calendar month's notifications (business time), newest first."""
    month_start, month_end = _month_bounds(now or datetime.now(timezone.utc), tz_name)
    stmt = select(Notification).where(
        Notification.company_id == company_id,
        Notification.timestamp >= month_start,
        Notification.timestamp < month_end,
    )
    if read_status is not None:
        stmt = stmt.where(Notification.is_read == read_status)
    result = await session.execute(stmt.order_by(Notification.timestamp.desc(), Notification.id.desc()))
    return result.scalars().all()


async def mark_notifications_read(
    session: AsyncSession,
    company_id: int,
    notification_ids: Sequence[int],
) -> int:
    if not notification_ids:
        raise ApiError(
            "notification_ids must not be empty",
            code=ErrorCodes.MISSING_FIELD,
            status_code=400,
        )

    result = await session.execute(
        update(Notification)
        .where(
            Notification.company_id == company_id,
            Notification.id.in_(list(notification_ids)),
        )
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    updated = result.rowcount
    if updated == 0:
        await session.rollback()
        raise ApiError(
            "No matching notifications found",
            code=ErrorCodes.NOT_FOUND,
            status_code=404,
        )
    await session.commit()
    logger.info("Marked %s notification(s) read for company_id=%s", updated, company_id)
    return updated
