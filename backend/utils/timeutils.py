# utils/timeutils.py
from datetime import datetime, timezone
from typing import Optional


# Naive UTC "now"; every timestamp the services compare against is naive UTC
def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
