"""
Time partitioning of flights.

A flight's `date` (its start time) is the only temporal key. Timezone-aware
timestamps are converted to the server's local time before partitioning;
naive timestamps and bare dates are taken as local wall time already.

Two week conventions coexist on purpose:
- week_start_sunday: used by the weekly stats endpoint
- week_start_monday: used by the ROM comparison's weekly rows
"""

from datetime import date, datetime, timedelta
from typing import Any, Optional

MONTH_NAMES = [
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December',
]


def parse_flight_date(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 flight timestamp.

    Accepts compact offsets (+0000) and fractional seconds of any
    length, as datetime.fromisoformat does from Python 3.11. Returns None for missing or unparseable values; such flights are
    left out of every time-bucketed aggregate.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed


def week_start_sunday(day: date) -> date:
    """The Sunday on or before day."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def week_start_monday(day: date) -> date:
    """The Monday on or before day."""
    return day - timedelta(days=day.weekday())


def month_index(moment: datetime) -> int:
    """Zero-based month (January = 0), the convention the UI expects."""
    return moment.month - 1


def day_key(moment: datetime) -> str:
    return moment.date().isoformat()


def month_key(moment: datetime) -> str:
    return f'{moment.year:04d}-{moment.month:02d}'
