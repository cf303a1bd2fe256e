"""
Core module - configuration, database and response formatting.
"""
from .config import get_settings
from .db import get_session, Base, engine, AsyncSessionLocal, UTCDateTime, utc_now
from .responses import (
    ApiError,
    ErrorCodes,
    api_error_handler,
    success_response,
    error_response,
)

__all__ = [
    # Config
    "get_settings",
    # Database
    "get_session",
    "Base",
    "engine",
    "AsyncSessionLocal",
    "UTCDateTime",
    "utc_now",
    # Responses
    "ApiError",
    "ErrorCodes",
    "api_error_handler",
    "success_response",
    "error_response",
]
