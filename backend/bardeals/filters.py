# backend/bardeals/filters.py
"""
Public event query filters.

``build_filter`` turns raw query-string values into an ``EventFilter``:
a normalized type set, either a date/time-of-day window or a
"not before now" bound, and an optional search circle. The filter is
rendered as SQLAlchemy clauses for the store (``clauses``) and can also
be evaluated against a response record in process (``matches``).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterable, Optional

from sqlalchemy import cast, func
from sqlalchemy.sql.elements import ColumnElement

from .errors import BadRequest
from .geocode import Coordinates
from .models import WGS84, Event, Geography

METERS_PER_MILE = 1609.34
EARTH_RADIUS_M = 6371008.8

DAY_START = time(0, 0, 0)
DAY_END = time(23, 59, 59)

# bucket -> (first second, last second), inclusive
TIME_OF_DAY = {
    "morning": (time(5, 0, 0), time(11, 59, 59)),
    "afternoon": (time(12, 0, 0), time(16, 59, 59)),
    "evening": (time(17, 0, 0), time(23, 59, 59)),
}


def normalize_types(values: Iterable[object]) -> frozenset[str]:
    """Split on commas, trim, drop blanks, lower-case and de-duplicate.

    Accepts scalars and nested lists, so ``?types=a,b``, ``?type=a&type=b``
    and ``?types[]=a`` can all be passed through as-is.
    """
    out: set[str] = set()
    for item in values:
        if item is None:
            continue
        if isinstance(item, (list, tuple, set, frozenset)):
            out |= normalize_types(item)
            continue
        for part in str(item).split(","):
            part = part.strip()
            if part:
                out.add(part.lower())
    return frozenset(out)


def day_window(day: date, time_of_day: Optional[str] = None) -> tuple[datetime, datetime]:
    first, last = TIME_OF_DAY.get((time_of_day or "").strip().lower(), (DAY_START, DAY_END))
    return datetime.combine(day, first), datetime.combine(day, last)


def _number(value: object) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    return n if math.isfinite(n) else None


def distance_meters(a: Coordinates, b: Coordinates) -> float:
    """Great-circle (haversine) distance on a mean-radius sphere."""
    lat1, lon1, lat2, lon2 = map(math.radians, (a.lat, a.lon, b.lat, b.lon))
    h = math.sin((lat2 - lat1) / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin((lon2 - lon1) / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))


def make_point(lat: float, lon: float) -> ColumnElement:
    """``ST_SetSRID(ST_MakePoint(lon, lat), 4326)::geography``; note the axis order."""
    return cast(func.ST_SetSRID(func.ST_MakePoint(lon, lat), WGS84), Geography())


@dataclass(frozen=True)
class EventFilter:
    types: frozenset[str] = frozenset()
    window: Optional[tuple[datetime, datetime]] = None
    not_before: Optional[datetime] = None
    center: Optional[Coordinates] = None
    radius_meters: Optional[float] = None

    @property
    def has_radius(self) -> bool:
        return self.center is not None and self.radius_meters is not None

    def clauses(self) -> list[ColumnElement]:
        out: list[ColumnElement] = []
        if self.types:
            out.append(func.lower(Event.type).in_(sorted(self.types)))
        if self.window is not None:
            out.append(Event.start_time >= self.window[0])
            out.append(Event.start_time <= self.window[1])
        elif self.not_before is not None:
            out.append(Event.start_time >= self.not_before)
        if self.has_radius:
            out.append(Event.location.is_not(None))
            out.append(
                func.ST_DWithin(
                    Event.location,
                    make_point(self.center.lat, self.center.lon),
                    self.radius_meters,
                )
            )
        return out

    def matches(self, record) -> bool:
        """Evaluate the filter against anything with type/start_time/lat/lon."""
        if self.types and (record.type or "").lower() not in self.types:
            return False
        if self.window is not None:
            if not (self.window[0] <= record.start_time <= self.window[1]):
                return False
        elif self.not_before is not None and record.start_time < self.not_before:
            return False
        if self.has_radius:
            if record.lat is None or record.lon is None:
                return False
            here = Coordinates(record.lat, record.lon)
            if distance_meters(self.center, here) > self.radius_meters:
                return False
        return True


def build_filter(
    types: Iterable[object] = (),
    date_str: Optional[str] = None,
    time_of_day: Optional[str] = None,
    lat: object = None,
    lng: object = None,
    radius: object = None,
    now: Optional[datetime] = None,
) -> EventFilter:
    """Build an ``EventFilter`` from raw query values.

    Supplying ``date_str`` selects a window on that day (narrowed by
    ``time_of_day``); otherwise only events starting at or after ``now``
    are eligible. The radius (miles) only applies when lat, lng and
    radius are all finite numbers. A radius of 0 keeps only events at
    exactly the center; a negative radius is ignored.
    """
    window = None
    not_before = None
    if date_str and date_str.strip():
        try:
            day = date.fromisoformat(date_str.strip())
        except ValueError as e:
            raise BadRequest(f"Invalid date: {date_str!r} (expected YYYY-MM-DD)") from e
        window = day_window(day, time_of_day)
    else:
        not_before = now if now is not None else datetime.now().replace(microsecond=0)

    center = None
    radius_meters = None
    c_lat, c_lng, miles = _number(lat), _number(lng), _number(radius)
    if c_lat is not None and c_lng is not None and miles is not None and miles >= 0:
        center = Coordinates(c_lat, c_lng)
        radius_meters = miles * METERS_PER_MILE

    return EventFilter(
        types=normalize_types(types),
        window=window,
        not_before=not_before,
        center=center,
        radius_meters=radius_meters,
    )
