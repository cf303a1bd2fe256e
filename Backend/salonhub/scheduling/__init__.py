"""
Appointment scheduling core.

Modules:
    timeutils: wall-clock input to UTC
    duration: service duration strings to minutes
    status: status classification and the cancellation rule
    ids: per-company sequential codes
    scheduler: schedule_appointment
    updates: update_appointment, soft_delete_appointment
    followups: payment/notification outbox
    sweep: time-driven status reconciliation
    listing: read-side queries

Only the pure helpers are re-exported here; import the database-facing
modules directly.
"""

from .duration import parse_duration_minutes
from .errors import (
    AppointmentError,
    AppointmentNotFound,
    ClientNotFound,
    InvalidAppointmentDateTime,
    InvalidDurationFormat,
    InvalidExpireTimeCalculation,
    OnlyUpcomingAppointmentsCanBeCancelled,
    ServiceNotFound,
    StylistNotFound,
    UnsupportedDurationUnit,
)
from .status import classify_status, ensure_cancellable
from .timeutils import NormalizedTime, format_local, normalize_appointment_time

__all__ = [
    "parse_duration_minutes",
    "classify_status",
    "ensure_cancellable",
    "NormalizedTime",
    "format_local",
    "normalize_appointment_time",
    # Errors
    "AppointmentError",
    "AppointmentNotFound",
    "ClientNotFound",
    "InvalidAppointmentDateTime",
    "InvalidDurationFormat",
    "InvalidExpireTimeCalculation",
    "OnlyUpcomingAppointmentsCanBeCancelled",
    "ServiceNotFound",
    "StylistNotFound",
    "UnsupportedDurationUnit",
]
