"""Wall-clock helpers working in epoch milliseconds."""

import time
from datetime import date, datetime, timedelta
from typing import Tuple

from timehogger.core.errors import InvalidRange

MS_PER_SECOND = 1000
MS_PER_DAY = 24 * 60 * 60 * MS_PER_SECOND

# Accepted by parse_timestamp after ISO parsing fails
_FALLBACK_FORMATS = ("%Y-%m-%d %H:%M", "%m/%d/%Y %H:%M", "%m/%d/%Y %H:%M:%S")


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * MS_PER_SECOND)


def to_datetime(timestamp: int) -> datetime:
    """Convert epoch milliseconds to a naive local datetime."""
    return datetime.fromtimestamp(timestamp / MS_PER_SECOND)


def from_datetime(value: datetime) -> int:
    """Convert a datetime (naive = local time) to epoch milliseconds."""
    return int(value.timestamp() * MS_PER_SECOND)


def local_date(timestamp: int) -> date:
    """Local calendar day of a timestamp."""
    return to_datetime(timestamp).date()


def day_bounds(day: date) -> Tuple[int, int]:
    """Return (local midnight, 23:59:59.999) of ``day`` in epoch milliseconds."""
    start = datetime.combine(day, datetime.min.time())
    end = start + timedelta(days=1) - timedelta(milliseconds=1)
    return from_datetime(start), from_datetime(end)


def elapsed_seconds(start: int, end: int) -> int:
    """Whole seconds between two timestamps, floored and never negative."""
    return max(0, (end - start) // MS_PER_SECOND)


def parse_timestamp(text: str) -> int:
    """Parse a user-entered local date/time into epoch milliseconds.

    Accepts ISO 8601 (``2026-03-02T10:30``, ``2026-03-02 10:30:15``) and a few
    US-style variants. Anything else raises ``InvalidRange`` instead of being
    coerced to a default.
    """
    value = (text or "").strip()
    if not value:
        raise InvalidRange("Empty date/time")
    try:
        return from_datetime(datetime.fromisoformat(value))
    except ValueError:
        pass
    for fmt in _FALLBACK_FORMATS:
        try:
            return from_datetime(datetime.strptime(value, fmt))
        except ValueError:
            continue
    raise InvalidRange(f"Unrecognised date/time: {text!r}")
