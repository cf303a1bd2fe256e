import re

from .errors import InvalidDurationFormat, UnsupportedDurationUnit


_DURATION_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*([a-z]+)$", re.IGNORECASE)

MINUTE_UNITS = frozenset({"min", "mins", "minute", "minutes"})
HOUR_UNITS = frozenset({"hour", "hours", "h"})


def parse_duration_minutes(value: str) -> float:
    """
    Parse an owner-entered service duration into minutes.

        "45 mins"   -> 45.0
        "1.5 hours" -> 90.0
        "2h"        -> 120.0

    A bare "m" is rejected as ambiguous rather than guessed.
    """
    match = _DURATION_RE.match((value or "").strip())
    if not match:
        raise InvalidDurationFormat(f"Invalid duration format: {value!r}")

    amount = float(match.group(1))
    unit = match.group(2).lower()

    if unit in MINUTE_UNITS:
        return amount
    if unit in HOUR_UNITS:
        return amount * 60
    raise UnsupportedDurationUnit(f"Unsupported duration unit: {unit!r}")
