from datetime import datetime

from ..models import AppointmentStatus
from .errors import OnlyUpcomingAppointmentsCanBeCancelled


def classify_status(
    now: datetime,
    start: datetime,
    expiry: datetime,
    current: AppointmentStatus = AppointmentStatus.UPCOMING,
) -> AppointmentStatus:
    """
    Derive an appointment's status from the clock.

    Cancelled is terminal and returned unchanged. Otherwise the window is
    half-open: [start, expiry) is Ongoing, so an appointment is Completed the
    instant it expires. The sweep's bulk predicates use the same boundary.
    """
    if current == AppointmentStatus.CANCELLED:
        return AppointmentStatus.CANCELLED
    if now < start:
        return AppointmentStatus.UPCOMING
    if now < expiry:
        return AppointmentStatus.ONGOING
    return AppointmentStatus.COMPLETED


def ensure_cancellable(current: AppointmentStatus) -> None:
    if current != AppointmentStatus.UPCOMING:
        raise OnlyUpcomingAppointmentsCanBeCancelled(
            f"Only upcoming appointments can be cancelled (current status: {current.value})"
        )
