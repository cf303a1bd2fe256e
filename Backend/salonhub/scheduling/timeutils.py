"""
Wall-clock appointment input to UTC.

Clients send either a combined ISO-8601 string ("2025-03-14T10:30") or a
separate date ("2025-03-14") and time ("10:30"). Both are read as local time
in the company's business timezone and converted to a UTC instant.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import InvalidAppointmentDateTime


DISPLAY_DATE_FORMAT = "%Y-%m-%d"
DISPLAY_TIME_FORMAT = "%H:%M"
DISPLAY_DATETIME_FORMAT = "%Y-%m-%d %H:%M"

_DATE_TIME_FORMATS = ("%Y-%m-%d %H:%M", "%Y-%m-%d %H:%M:%S")


@dataclass(frozen=True)
class NormalizedTime:
    start_at_utc: datetime
    local_date: str  # YYYY-MM-DD in the business timezone
    local_time: str  # HH:MM in the business timezone


def _zone(tz_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidAppointmentDateTime(f"Unknown business timezone: {tz_name}") from exc


def _parse_combined(value: str, tz: ZoneInfo) -> datetime:
    raw = value.strip()
    # fromisoformat only learned the Z suffix in 3.11
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed


def _parse_date_and_time(date_str: str, time_str: str, tz: ZoneInfo) -> datetime:
    joined = f"{date_str.strip()} {time_str.strip()}"
    for fmt in _DATE_TIME_FORMATS:
        try:
            return datetime.strptime(joined, fmt).replace(tzinfo=tz)
        except ValueError:
            continue
    raise ValueError(f"unrecognized date/time: {joined!r}")


def normalize_appointment_time(
    tz_name: str,
    *,
    date_time: Optional[str] = None,
    date: Optional[str] = None,
    time: Optional[str] = None,
) -> NormalizedTime:
    """
    Resolve appointment input to a UTC start instant.

    Exactly one shape must be supplied: `date_time`, or both `date` and `time`.
    Naive input is wall-clock time in `tz_name`; input that carries an offset
    keeps it. Raises InvalidAppointmentDateTime on missing, ambiguous or
    unparseable input.
    """
    has_combined = bool(date_time and date_time.strip())
    has_split = bool(date and date.strip()) or bool(time and time.strip())

    if has_combined == has_split:
        raise InvalidAppointmentDateTime(
            "Provide either appointment_date_time or both date and time"
        )
    if has_split and not (date and date.strip() and time and time.strip()):
        raise InvalidAppointmentDateTime("Both date and time are required")

    tz = _zone(tz_name)
    try:
        if has_combined:
            local_dt = _parse_combined(date_time, tz)
        else:
            local_dt = _parse_date_and_time(date, time, tz)
    except ValueError as exc:
        raise InvalidAppointmentDateTime() from exc

    start_at_utc = local_dt.astimezone(timezone.utc)
    in_zone = start_at_utc.astimezone(tz)
    return NormalizedTime(
        start_at_utc=start_at_utc,
        local_date=in_zone.strftime(DISPLAY_DATE_FORMAT),
        local_time=in_zone.strftime(DISPLAY_TIME_FORMAT),
    )


def to_local(dt: datetime, tz_name: str) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(ZoneInfo(tz_name))


def format_local(dt: datetime, tz_name: str, fmt: str = DISPLAY_DATETIME_FORMAT) -> str:
    """Render a UTC instant as business-local text, e.g. "2025-03-14 10:30"."""
    return to_local(dt, tz_name).strftime(fmt)
