"""
LinkMe Backend - Lenient Parameter Coercion
=============================================

What:  Turns raw query/body values into bounded ints and UTC datetimes.
How:   Invalid input falls back to the default instead of raising; values
       outside the allowed range are clamped.
Who:   Analytics and view services (days, limit, offset, days_to_keep,
       start_date / end_date).

Analytics endpoints are dashboards polled by the frontend with whatever the
user typed into a filter box; a typo yields the default window, not a 4xx.
"""

from datetime import datetime, timezone
from typing import Any, Optional


def coerce_int(
    value: Any,
    default: int,
    minimum: Optional[int] = None,
    maximum: Optional[int] = None,
) -> int:
    """
    Parse value as an int, falling back to default, then clamp to [minimum, maximum].

    Accepts ints, floats and numeric strings ("30", " 7 ", "7.9" → 7).
    Booleans, None and anything unparseable yield the default.
    """
    if value is None or isinstance(value, bool):
        result = default
    elif isinstance(value, int):
        result = value
    else:
        try:
            result = int(float(str(value).strip()))
        except (TypeError, ValueError, OverflowError):
            result = default

    if minimum is not None and result < minimum:
        result = minimum
    if maximum is not None and result > maximum:
        result = maximum
    return result


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO 8601 date or datetime string into an aware UTC datetime.

    Date-only strings mean midnight UTC. Naive datetimes are taken as UTC.
    Returns None for empty, invalid or unrepresentable input (the caller then
    uses its default).
    """
    if not value:
        return None
    text = value.strip()
    # fromisoformat() before Python 3.11 does not accept a trailing "Z"
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError:
        # Offset pushes the instant outside year 1..9999
        return None


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)
