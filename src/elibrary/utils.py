"""Time helpers shared by the lending and notification code."""

import math
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

# Anything that returns "now" as an aware datetime
Clock = Callable[[], datetime]

ONE_DAY = timedelta(days=1)


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """
    Serialize a datetime for storage.

    Naive values are taken to be UTC. Everything is normalized to UTC so
    stored strings sort in time order.

    Example:
        >>> to_iso(datetime(2025, 1, 15, 9, 30))
        '2025-01-15T09:30:00+00:00'
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def from_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp back into an aware datetime."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def ceil_days(delta: timedelta) -> int:
    """
    Count whole days in a time span, rounding any partial day up.

    Args:
        delta: The time span (may be negative)

    Returns:
        ceil(delta / 1 day)

    Example:
        >>> ceil_days(timedelta(days=2, minutes=1))
        3
        >>> ceil_days(timedelta(hours=-5))
        0
    """
    return math.ceil(delta / ONE_DAY)
