"""Late-return fine calculation."""

from datetime import datetime

from ..utils import ceil_days

DEFAULT_FINE_PER_DAY = 5


def days_late(due: datetime, returned: datetime) -> int:
    """Whole days between due and return, any partial day counting as one.

    Example:
        >>> from datetime import datetime
        >>> days_late(datetime(2025, 1, 15), datetime(2025, 1, 18))
        3
        >>> days_late(datetime(2025, 1, 15), datetime(2025, 1, 15, 0, 1))
        1
        >>> days_late(datetime(2025, 1, 15), datetime(2025, 1, 14))
        0
    """
    if returned <= due:
        return 0
    return ceil_days(returned - due)


def calculate_fine(due: datetime, returned: datetime, rate_per_day: int = DEFAULT_FINE_PER_DAY) -> int:
    """Fine owed for returning at ``returned`` a loan due at ``due``."""
    return days_late(due, returned) * rate_per_day
