"""
Appointment domain errors.

Each error carries the envelope code and HTTP status the API answers with,
so route handlers can simply let them propagate to the ApiError handler.
"""

from ..core.responses import ApiError, ErrorCodes


class AppointmentError(ApiError):
    """Base class for every failure raised by the scheduling core."""


# Validation (422)

class InvalidAppointmentDateTime(AppointmentError):
    status_code = 422
    code = ErrorCodes.INVALID_APPOINTMENT_DATE_TIME
    message = "Invalid appointment date or time"


class InvalidDurationFormat(AppointmentError):
    status_code = 422
    code = ErrorCodes.INVALID_DURATION_FORMAT
    message = "Invalid duration format"


class UnsupportedDurationUnit(AppointmentError):
    status_code = 422
    code = ErrorCodes.UNSUPPORTED_DURATION_UNIT
    message = "Unsupported duration unit"


class InvalidExpireTimeCalculation(AppointmentError):
    status_code = 422
    code = ErrorCodes.INVALID_EXPIRE_TIME_CALCULATION
    message = "Invalid date or duration for calculating expire time"


# Not found (404)

class StylistNotFound(AppointmentError):
    status_code = 404
    code = ErrorCodes.STYLIST_NOT_FOUND
    message = "Stylist not found"


class ClientNotFound(AppointmentError):
    status_code = 404
    code = ErrorCodes.CLIENT_NOT_FOUND
    message = "Client not found"


class ServiceNotFound(AppointmentError):
    status_code = 404
    code = ErrorCodes.SERVICE_NOT_FOUND
    message = "Service not found"


class AppointmentNotFound(AppointmentError):
    status_code = 404
    code = ErrorCodes.APPOINTMENT_NOT_FOUND
    message = "Appointment not found"


# Conflict (409)

class OnlyUpcomingAppointmentsCanBeCancelled(AppointmentError):
    status_code = 409
    code = ErrorCodes.ONLY_UPCOMING_APPOINTMENTS_CAN_BE_CANCELLED
    message = "Only upcoming appointments can be cancelled"
