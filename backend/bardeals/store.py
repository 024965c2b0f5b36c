# backend/bardeals/store.py
"""
Persistence for events.

``EventStore`` translates drafts into INSERT/UPDATE/DELETE statements
and rows back into ``EventOut`` records. Coordinates arrive already
resolved; the store only decides whether a location value is written.
Locations are written as (longitude, latitude) points and read back
through ``ST_X``/``ST_Y`` on the geometry cast.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import cast, delete, func, insert, select, text, update
from sqlalchemy.orm import Session

from .errors import MissingFields
from .filters import EventFilter, make_point
from .geocode import Coordinates
from .models import Event, Geometry
from .schemas import EventOut

logger = logging.getLogger(__name__)

PUBLIC_LIMIT = 200
ADMIN_LIMIT = 500


@dataclass(frozen=True)
class EventDraft:
    """An event ready to be written: timestamps local, coordinates resolved."""
    name: str
    type: str
    start_time: datetime
    end_time: Optional[datetime] = None
    description: Optional[str] = None
    address_name: Optional[str] = None
    address: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None

    @property
    def coordinates(self) -> Coordinates:
        return Coordinates(self.lat, self.lon)

    def at(self, start_time: datetime, end_time: Optional[datetime]) -> "EventDraft":
        return replace(self, start_time=start_time, end_time=end_time)

    @classmethod
    def from_record(cls, record: EventOut) -> "EventDraft":
        return cls(
            name=record.name,
            type=record.type,
            start_time=record.start_time,
            end_time=record.end_time,
            description=record.description,
            address_name=record.address_name,
            address=record.address,
            lat=record.lat,
            lon=record.lon,
        )


def location_value(coords: Coordinates):
    """Geography expression for a full coordinate pair, else ``None``."""
    if not coords.resolved:
        return None
    return make_point(coords.lat, coords.lon)


def _require(draft: EventDraft) -> None:
    if not draft.name or not draft.type or draft.start_time is None:
        raise MissingFields()


LON = func.ST_X(cast(Event.location, Geometry())).label("lon")
LAT = func.ST_Y(cast(Event.location, Geometry())).label("lat")

RECORD_COLUMNS = (
    Event.id,
    Event.name,
    Event.type,
    Event.description,
    Event.address_name,
    Event.address,
    LON,
    LAT,
    Event.start_time,
    Event.end_time,
)


def to_record(row: Any) -> EventOut:
    return EventOut.model_validate(row)


class EventStore:
    def __init__(self, db: Optional[Session]):
        self.db = db

    # ── writes ──────────────────────────────────────────────────────
    def insert(self, draft: EventDraft) -> int:
        _require(draft)
        values = self._values(draft)
        values["location"] = location_value(draft.coordinates)
        event_id = self.db.execute(
            insert(Event).values(**values).returning(Event.id)
        ).scalar_one()
        self.db.commit()
        return event_id

    def update(self, event_id: int, draft: EventDraft) -> None:
        """Rewrite an event's fields.

        The stored location is only replaced when the draft carries a
        full coordinate pair; otherwise the previous value is kept.
        """
        _require(draft)
        values = self._values(draft)
        loc = location_value(draft.coordinates)
        if loc is not None:
            values["location"] = loc
        self.db.execute(update(Event).where(Event.id == event_id).values(**values))
        self.db.commit()

    def delete(self, event_id: int) -> None:
        self.db.execute(delete(Event).where(Event.id == event_id))
        self.db.commit()

    def duplicate(self, event_id: int) -> Optional[int]:
        """Copy an event (coordinates as stored) under a new id; ``None`` if missing."""
        source = self.get(event_id)
        if source is None:
            return None
        return self.insert(EventDraft.from_record(source))

    # ── reads ───────────────────────────────────────────────────────
    def get(self, event_id: int) -> Optional[EventOut]:
        row = self.db.execute(select(*RECORD_COLUMNS).where(Event.id == event_id)).first()
        return to_record(row) if row is not None else None

    def search(self, event_filter: EventFilter, limit: int = PUBLIC_LIMIT) -> list[EventOut]:
        q = (
            select(*RECORD_COLUMNS)
            .where(*event_filter.clauses())
            .order_by(Event.start_time.asc())
            .limit(limit)
        )
        return [to_record(r) for r in self.db.execute(q)]

    def list_recent(self, limit: int = ADMIN_LIMIT) -> list[EventOut]:
        q = select(*RECORD_COLUMNS).order_by(Event.start_time.desc()).limit(limit)
        return [to_record(r) for r in self.db.execute(q)]

    # ── diagnostics ─────────────────────────────────────────────────
    def db_time(self) -> datetime:
        return self.db.execute(select(func.now())).scalar_one()

    def diagnostics(self) -> dict[str, Any]:
        checks: dict[str, Any] = {"now": self.db_time()}
        try:
            checks["postgis"] = self.db.execute(text("SELECT PostGIS_Version()")).scalar_one()
        except Exception:
            logger.warning("PostGIS_Version() unavailable", exc_info=True)
            self.db.rollback()
            checks["postgis"] = None
        has_events = self.db.execute(text("SELECT to_regclass('public.events')")).scalar_one()
        checks["has_events_table"] = has_events is not None
        return checks

    @staticmethod
    def _values(draft: EventDraft) -> dict[str, Any]:
        return {
            "name": draft.name,
            "type": draft.type,
            "description": draft.description,
            "address_name": draft.address_name,
            "address": draft.address,
            "start_time": draft.start_time,
            "end_time": draft.end_time,
        }
