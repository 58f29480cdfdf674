"""Local-zone time handling for the clinic.

Every "day", "weekend" and "working window" question is answered in the
configured clinic zone; values leaving this module for storage are aware
datetimes, so Tortoise persists the absolute instant.
"""
from datetime import datetime, date, time, timedelta
from typing import Optional, Tuple
import pytz

from helpers.config import LOCAL_TZ
from helpers.errors import InvalidDateTime


# tried in order after ISO-8601
_FALLBACK_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
)


def local_now() -> datetime:
    return datetime.now(pytz.utc).astimezone(LOCAL_TZ)


def to_local(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = pytz.utc.localize(value)
    return value.astimezone(LOCAL_TZ)


def localize(naive: datetime) -> datetime:
    return LOCAL_TZ.normalize(LOCAL_TZ.localize(naive))


def parse_datetime(raw: Optional[str]) -> datetime:
    """Parse a booking date-time into an aware local datetime.

    ISO-8601 is tried first; an ISO value without an offset is read as local
    time. Then ``YYYY-MM-DD HH:MM:SS`` and ``YYYY-MM-DDTHH:MM:SS.SSS``.
    """
    if not raw or not isinstance(raw, str):
        raise InvalidDateTime("Invalid appointment date/time format")

    text = raw.strip()
    parsed = None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        for fmt in _FALLBACK_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        raise InvalidDateTime("Invalid appointment date/time format")

    if parsed.tzinfo is None:
        return localize(parsed)
    return parsed.astimezone(LOCAL_TZ)


def parse_date(raw: Optional[str]) -> date:
    try:
        return datetime.strptime((raw or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise InvalidDateTime("Date must be YYYY-MM-DD")


def parse_clock_time(value) -> Optional[time]:
    """Accept ``HH:MM``/``HH:MM:SS`` strings or ``time`` objects."""
    if value is None:
        return None
    if isinstance(value, time):
        return value.replace(tzinfo=None)
    if isinstance(value, timedelta):
        seconds = int(value.total_seconds())
        return time(seconds // 3600, (seconds % 3600) // 60)
    text = str(value).strip()
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    return None


def at_local(day: date, clock_time: time) -> datetime:
    return localize(datetime.combine(day, clock_time))


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Half-open ``[00:00, next 00:00)`` of a local calendar day."""
    start = at_local(day, time(0, 0))
    return start, at_local(day + timedelta(days=1), time(0, 0))


def week_bounds(day: date) -> Tuple[datetime, datetime]:
    monday = day - timedelta(days=day.weekday())
    return at_local(monday, time(0, 0)), at_local(monday + timedelta(days=7), time(0, 0))


def month_bounds(day: date) -> Tuple[datetime, datetime]:
    first = day.replace(day=1)
    if first.month == 12:
        following = first.replace(year=first.year + 1, month=1)
    else:
        following = first.replace(month=first.month + 1)
    return at_local(first, time(0, 0)), at_local(following, time(0, 0))


def end_of_day(day: date) -> datetime:
    return at_local(day, time(23, 59, 59, 999000))


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def format_date(value: datetime) -> str:
    return to_local(value).strftime("%d %b %Y")


def format_time(value: datetime) -> str:
    return to_local(value).strftime("%I:%M %p")


def format_display(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return to_local(value).strftime("%Y-%m-%d %I:%M %p")


def isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return to_local(value).isoformat()


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Storage form of an instant; every persisted or filtered datetime goes through here."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = localize(value)
    return value.astimezone(pytz.utc)


def floor_to_slot(value: datetime, minutes: int) -> datetime:
    local = to_local(value)
    naive = local.replace(tzinfo=None, minute=(local.minute // minutes) * minutes, second=0, microsecond=0)
    return localize(naive)
