from datetime import datetime, timedelta

from django.utils import timezone

# Calendar windows used by the leaderboards; "all-time" has no lower bound.
WINDOW_DAY = "day"
WINDOW_MONTH = "month"
WINDOW_YEAR = "year"
WINDOW_ALL_TIME = "all-time"


def window_start(window: str, now: datetime | None = None) -> datetime | None:
    """
    Start of the calendar window containing *now*, in the current time zone.

    Returns None for the all-time window.
    """
    now = timezone.localtime(now or timezone.now())
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if window == WINDOW_DAY:
        return midnight
    if window == WINDOW_MONTH:
        return midnight.replace(day=1)
    if window == WINDOW_YEAR:
        return midnight.replace(month=1, day=1)
    if window == WINDOW_ALL_TIME:
        return None
    msg = f"Unknown window: {window!r}"
    raise ValueError(msg)


def is_older_than(value: datetime | None, delta: timedelta, now: datetime | None = None) -> bool:
    if value is None:
        return True
    return (now or timezone.now()) - value > delta
