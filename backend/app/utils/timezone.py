from datetime import datetime, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]


def now_utc() -> datetime:
    # naive UTC, matching the DateTime columns
    return datetime.now(tz=timezone.utc).replace(tzinfo=None)


def weeks_after(start: datetime, weeks: int, days_per_week: int = 7) -> datetime:
    return start + timedelta(days=days_per_week * weeks)
