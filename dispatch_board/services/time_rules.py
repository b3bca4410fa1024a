"""
Time rules for the board.
Handles local "today" defaults and the same-calendar-day absence view.
"""
from datetime import datetime, date, timezone
from typing import Any, Iterable, List, Optional, Union
import pytz
from ..config import settings


def local_now(timezone_str: Optional[str] = None) -> datetime:
    """
    Current time in the board's local timezone.

    Args:
        timezone_str: IANA timezone name (default from settings)

    Returns:
        Timezone-aware datetime
    """
    tz = pytz.timezone(timezone_str or settings.tz_default)
    return datetime.now(tz)


def calendar_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """
    Calendar date of a stored value, taken as written.

    A stored "2024-03-01" (or "2024-03-01T00:00:00.000Z" as some drivers emit it)
    is March 1st. The value is never shifted through UTC.

    Args:
        value: ISO string, date or datetime

    Returns:
        The date, or None when the value is empty or unparseable
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()[:10]
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def filter_same_day(records: Iterable[dict], now: datetime, field: str = "absence_date") -> List[dict]:
    """
    Keep records whose calendar date equals the local calendar date of ``now``.

    Args:
        records: Serialized records
        now: Reference time; naive values are taken as local wall time
        field: Date field to compare

    Returns:
        Matching records, original order preserved
    """
    today = now.date()
    return [r for r in records if calendar_date(r.get(field)) == today]


def today_local(timezone_str: Optional[str] = None) -> date:
    return local_now(timezone_str).date()


def as_iso(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
