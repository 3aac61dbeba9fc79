"""
Business-time clock and canonical slot strings.

Every "now" in the engine is resolved in the business timezone
(Australian Eastern by default) regardless of where the process runs.
Slots are stored as ``YYYY-MM-DD HH:mm`` strings and compared as plain
strings once created; no timezone arithmetic is applied to them.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo

from dispatch.config import settings

SLOT_FORMAT = "%Y-%m-%d %H:%M"
DATE_FORMAT = "%Y-%m-%d"

# Representative times used by the availability digest
SUMMARY_TIMES: tuple[str, ...] = ("09:00", "11:00", "13:00", "15:00")

_TIME_FORMATS = ("%H:%M", "%H:%M:%S", "%I:%M %p", "%I:%M%p", "%I %p", "%I%p")


def business_tz() -> ZoneInfo:
    return ZoneInfo(settings.business.timezone)


def now() -> datetime:
    """Current instant in the business timezone (timezone-aware)."""
    return datetime.now(business_tz())


def now_iso() -> str:
    return now().isoformat(timespec="seconds")


def _parse_date(value: Union[str, date]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value.strip(), DATE_FORMAT).date()


def _parse_time(value: Union[str, time]) -> time:
    if isinstance(value, time):
        return value
    cleaned = value.strip().upper()
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Unrecognised time of day: {value!r}")


def normalize_slot(day: Union[str, date], tod: Union[str, time]) -> str:
    """Canonical slot string for a (date, time-of-day) pair.

    Raises:
        ValueError: If either part cannot be parsed.

    Examples:
        >>> normalize_slot("2025-05-20", "9:00")
        '2025-05-20 09:00'
    """
    return datetime.combine(_parse_date(day), _parse_time(tod)).strftime(SLOT_FORMAT)


def normalize_slot_string(value: str) -> str:
    """Normalize a combined ``date time`` string, leaving it untouched if unparseable.

    Stored slots are opaque tokens, so a value we cannot read is kept
    verbatim rather than rejected.
    """
    parts = value.strip().split(None, 1)
    if len(parts) != 2:
        return value.strip()
    try:
        return normalize_slot(parts[0], parts[1])
    except ValueError:
        return value.strip()


def next_n_days(n: int, start: Optional[datetime] = None) -> list[str]:
    """Ordered ``YYYY-MM-DD`` strings for ``n`` days starting today (business time)."""
    base = (start or now()).date()
    return [(base + timedelta(days=offset)).strftime(DATE_FORMAT) for offset in range(n)]


def format_business_time(moment: Optional[datetime] = None) -> str:
    """Long human form, e.g. ``Tuesday, 20 May 2025 at 9:05 AM AEST``."""
    moment = moment or now()
    hour = moment.strftime("%I").lstrip("0") or "12"
    return (
        f"{moment.strftime('%A')}, {moment.day} {moment.strftime('%B %Y')} "
        f"at {hour}:{moment.strftime('%M %p')} {moment.tzname() or ''}"
    ).strip()


def format_short_timestamp(moment: Optional[datetime] = None) -> str:
    """Short note timestamp, e.g. ``20/5/25, 9:05 am``."""
    moment = moment or now()
    hour = moment.strftime("%I").lstrip("0") or "12"
    return (
        f"{moment.day}/{moment.month}/{moment.strftime('%y')}, "
        f"{hour}:{moment.strftime('%M')} {moment.strftime('%p').lower()}"
    )
