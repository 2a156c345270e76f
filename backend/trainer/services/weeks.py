"""
Week keys - ISO-8601 week identifiers and the storage keys derived from them.

A week key has the form ``YYYY.WW``: the ISO week-numbering year and the
two-digit ISO week (Monday first, week 1 is the first week with four or
more days in the new year). Dates near a year boundary can belong to a
week of the neighbouring year.
"""
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Iterator, List, Tuple, Union

from trainer.core.exceptions import FormatError

STORAGE_KEY_PREFIX = "activities-"

DateLike = Union[date, datetime]


class DurationOption(str, Enum):
    """Reporting windows the goals are measured against."""
    LAST_24_HOURS = "Last24Hours"
    LAST_7_DAYS = "Last7Days"
    WEEK = "Week"
    LAST_4_WEEKS = "Last4Weeks"


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def week_key_of(value: DateLike) -> str:
    """Get the week key (YYYY.WW) a date or timestamp falls in."""
    iso_year, iso_week, _ = _as_date(value).isocalendar()
    return f"{iso_year}.{iso_week:02d}"


def parse_week_key(week_key: str) -> Tuple[int, int]:
    """
    Split a week key into ISO year and week.

    Raises:
        FormatError: If the key is not YYYY.WW or names a week the year lacks
    """
    parts = week_key.split(".") if isinstance(week_key, str) else []
    if len(parts) != 2 or not parts[0].isdigit() or not parts[1].isdigit():
        raise FormatError(f"Invalid week key format: {week_key!r}")

    year, week = int(parts[0]), int(parts[1])
    try:
        date.fromisocalendar(year, week, 1)
    except ValueError as e:
        raise FormatError(f"Invalid week key format: {week_key!r}") from e
    return year, week


def week_start_date(week_key: str) -> date:
    """Get the Monday that begins the week."""
    year, week = parse_week_key(week_key)
    return date.fromisocalendar(year, week, 1)


def week_end_date(week_key: str) -> datetime:
    """Get the last second of the Sunday that ends the week."""
    sunday = week_start_date(week_key) + timedelta(days=6)
    return datetime.combine(sunday, time(23, 59, 59))


def iter_week_keys_in_range(start: DateLike, end: DateLike) -> Iterator[str]:
    """
    Yield every distinct week key touched by a date in [start, end].

    Walks one day at a time: two dates only days apart can sit in
    different weeks across a year boundary, so striding by seven days
    could step over one.
    """
    current = _as_date(start)
    last = _as_date(end)
    seen = set()

    while current <= last:
        key = week_key_of(current)
        if key not in seen:
            seen.add(key)
            yield key
        if current == date.max:
            break
        current += timedelta(days=1)


def week_keys_in_range(start: DateLike, end: DateLike) -> List[str]:
    """Week keys touched by [start, end], in order of first appearance."""
    return list(iter_week_keys_in_range(start, end))


def storage_key_of(week_key: str) -> str:
    """Get the storage key for a week's bucket (activities-YYYY.WW)."""
    return f"{STORAGE_KEY_PREFIX}{week_key}"


def week_key_from_storage_key(storage_key: str) -> str:
    """
    Extract the week key from a storage key.

    Raises:
        FormatError: If the key lacks the activities- prefix
    """
    if not storage_key.startswith(STORAGE_KEY_PREFIX):
        raise FormatError(f"Invalid storage key format: {storage_key!r}")
    return storage_key[len(STORAGE_KEY_PREFIX):]


def date_range_for(duration: DurationOption, now: datetime) -> Tuple[datetime, datetime]:
    """
    Get the (start, end) window for a reporting duration.

    Relative durations end at ``now``. WEEK covers the whole ISO week
    containing ``now``, Monday 00:00 to Sunday 23:59:59.
    """
    if duration == DurationOption.LAST_24_HOURS:
        return now - timedelta(days=1), now
    if duration == DurationOption.LAST_7_DAYS:
        return now - timedelta(days=7), now
    if duration == DurationOption.LAST_4_WEEKS:
        return now - timedelta(days=28), now
    if duration == DurationOption.WEEK:
        key = week_key_of(now)
        start = datetime.combine(week_start_date(key), time.min, tzinfo=now.tzinfo)
        return start, week_end_date(key).replace(tzinfo=now.tzinfo)
    raise ValueError(f"Unknown duration: {duration}")
