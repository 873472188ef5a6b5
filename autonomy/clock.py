"""Wall-clock helpers for the daily spend window."""

from datetime import datetime, UTC
from typing import Callable


Clock = Callable[[], datetime]


def local_now() -> datetime:
    """Current time as an aware datetime in the server's local timezone."""
    return datetime.now().astimezone()


def utc_now() -> datetime:
    return datetime.now(UTC)


def start_of_day(moment: datetime) -> datetime:
    """Truncate ``moment`` to midnight of its own calendar day.

    The timezone of ``moment`` is kept, so a local timestamp yields local
    midnight.
    """
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)
