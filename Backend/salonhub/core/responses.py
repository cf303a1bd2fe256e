"""
Standardized API Response Module

Provides consistent response formatting across all API endpoints.

RESPONSE FORMAT:
    Success:
        {
            "data": <response data>,
            "status": "success"
        }

    Error:
        {
            "error": {
                "code": "ERROR_CODE",
                "message": "Human-readable message",
                "details": {...}  # Optional extra context
            },
            "status": "error"
        }

Appointment-specific codes mirror the domain exceptions in
salonhub.scheduling.errors so the frontend can branch on them.
"""

from typing import Any, Optional

from fastapi import Request
from fastapi.responses import JSONResponse


# ============================================================================
# COMMON ERROR CODES
# ============================================================================

class ErrorCodes:
    """Standard error codes for API responses."""

    # Not found errors (404)
    NOT_FOUND = "NOT_FOUND"
    STYLIST_NOT_FOUND = "STYLIST_NOT_FOUND"
    CLIENT_NOT_FOUND = "CLIENT_NOT_FOUND"
    SERVICE_NOT_FOUND = "SERVICE_NOT_FOUND"
    APPOINTMENT_NOT_FOUND = "APPOINTMENT_NOT_FOUND"

    # Validation errors (400 / 422)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_APPOINTMENT_DATE_TIME = "INVALID_APPOINTMENT_DATE_TIME"
    INVALID_DURATION_FORMAT = "INVALID_DURATION_FORMAT"
    UNSUPPORTED_DURATION_UNIT = "UNSUPPORTED_DURATION_UNIT"
    INVALID_EXPIRE_TIME_CALCULATION = "INVALID_EXPIRE_TIME_CALCULATION"

    # Conflict errors (409)
    ONLY_UPCOMING_APPOINTMENTS_CAN_BE_CANCELLED = "ONLY_UPCOMING_APPOINTMENTS_CAN_BE_CANCELLED"

    # Server errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def success_response(data: Any) -> dict:
    """Create a standardized success response dict."""
    return {"data": data, "status": "success"}


def error_response(
    code: str,
    message: str,
    details: Optional[dict] = None,
) -> dict:
    """Create a standardized error response dict."""
    response = {
        "error": {
            "code": code,
            "message": message,
        },
        "status": "error",
    }
    if details:
        response["error"]["details"] = details
    return response


class ApiError(Exception):
    """
    Raise from routes or dependencies to answer with the error envelope.

    Domain errors subclass this so a single exception handler covers both.
    """

    status_code: int = 400
    code: str = ErrorCodes.VALIDATION_ERROR
    message: str = "Request could not be processed"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        super().__init__(self.message)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.code, exc.message, exc.details),
    )
