# backend/bardeals/timeutil.py
"""Timestamp parsing and local wall-clock normalization.

Events are stored as naive wall-clock times in the listing's time zone.
Anything carrying an offset is converted into that zone before the
offset is dropped; naive values are assumed to be local already.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time
from typing import Optional

from dateutil import parser as dtparse
from dateutil.parser import isoparse as iso_parse
from zoneinfo import ZoneInfo

BARE_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
END_OF_DAY = time(23, 59, 59)


def is_bare_date(value: str) -> bool:
    return bool(BARE_DATE_RE.match(value.strip()))


def parse_timestamp(value: str | datetime | date | None) -> Optional[datetime]:
    """Parse ISO-8601 (or looser, human-written) timestamps.

    Returns ``None`` for empty input and raises ``ValueError`` when the
    text can't be read as a date/time.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    s = str(value).strip()
    if not s:
        return None
    try:
        return iso_parse(s)
    except ValueError:
        pass
    try:
        return dtparse.parse(s)
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Unrecognized timestamp: {s!r}") from e


def parse_until(value: str | datetime | date | None) -> Optional[datetime]:
    """Like ``parse_timestamp``, but a bare ``YYYY-MM-DD`` covers that whole day."""
    if isinstance(value, str) and is_bare_date(value):
        return datetime.combine(date.fromisoformat(value.strip()), END_OF_DAY)
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, END_OF_DAY)
    return parse_timestamp(value)


def to_local(dt: Optional[datetime], tz: ZoneInfo) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(tz).replace(tzinfo=None)


def now_local(tz: ZoneInfo) -> datetime:
    return datetime.now(tz).replace(tzinfo=None, microsecond=0)
