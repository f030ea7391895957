"""End-of-day reminder timing."""

from datetime import datetime, time, timedelta
from typing import Optional

END_OF_DAY_REMINDER = time(23, 59)


def next_reminder_at(now: Optional[datetime] = None, at: time = END_OF_DAY_REMINDER) -> datetime:
    """Return when the next end-of-day reminder should fire.

    Args:
        now: Current local time. Defaults to now.
        at: Local time of day of the reminder

    Returns:
        Today at ``at``, or tomorrow at ``at`` if that moment has passed
    """
    if now is None:
        now = datetime.now()
    scheduled = datetime.combine(now.date(), at, tzinfo=now.tzinfo)
    if scheduled < now:
        scheduled += timedelta(days=1)
    return scheduled
