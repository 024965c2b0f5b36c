# backend/bardeals/recurrence.py
"""
Expansion of a repeating event into concrete instances.

A series is never stored: ``expand`` turns (start, end, mode, until)
into the list of start/end pairs that get inserted as independent rows.
Steps are calendar days on naive wall-clock times, so the start-to-end
offset is identical for every instance.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import NamedTuple, Optional

MAX_INSTANCES = 200


class Recurrence(str, Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"

    @classmethod
    def parse(cls, value: "str | Recurrence | None") -> "Recurrence":
        """Case-insensitive; blank or unknown strings mean no recurrence.

        Anything that is not a string raises ``ValueError``.
        """
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE
        if not isinstance(value, str):
            raise ValueError(f"recurrence must be a string, not {type(value).__name__}")
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.NONE


STEP = {
    Recurrence.DAILY: timedelta(days=1),
    Recurrence.WEEKLY: timedelta(weeks=1),
}

DEFAULT_SPAN = {
    Recurrence.DAILY: timedelta(days=30),
    Recurrence.WEEKLY: timedelta(weeks=8),
}


class Instance(NamedTuple):
    start: datetime
    end: Optional[datetime] = None


def default_until(start: datetime, recurrence: Recurrence) -> datetime:
    return start + DEFAULT_SPAN.get(recurrence, timedelta(0))


def expand(
    start: datetime,
    end: Optional[datetime] = None,
    recurrence: "Recurrence | str | None" = Recurrence.NONE,
    until: Optional[datetime] = None,
    limit: int = MAX_INSTANCES,
) -> list[Instance]:
    """Return the instances of a (possibly repeating) event, in order.

    ``until`` is inclusive and defaults to 30 days (daily) or 8 weeks
    (weekly) after ``start``. The result always holds the first
    instance, even when ``until`` is earlier than ``start``, and never
    more than ``limit`` instances.
    """
    mode = Recurrence.parse(recurrence)
    step = STEP.get(mode)
    if step is None:
        return [Instance(start, end)]

    if until is None:
        until = default_until(start, mode)

    instances = [Instance(start, end)]
    current_start = start + step
    current_end = end + step if end is not None else None
    while current_start <= until and len(instances) < limit:
        instances.append(Instance(current_start, current_end))
        current_start += step
        if current_end is not None:
            current_end += step
    return instances
