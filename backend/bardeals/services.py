# backend/bardeals/services.py
"""Write-path orchestration: geocode, expand recurrence, persist."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from zoneinfo import ZoneInfo

from .errors import NotFound
from .geocode import Geocoder
from .importer import parse_csv
from .recurrence import expand
from .schemas import EventFields, EventIn, EventUpdateIn
from .store import EventDraft, EventStore
from .timeutil import to_local

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    inserted: int
    skipped: int


class EventService:
    def __init__(self, store: EventStore, geocoder: Geocoder, tz: ZoneInfo):
        self.store = store
        self.geocoder = geocoder
        self.tz = tz

    def _draft(self, fields: EventFields) -> EventDraft:
        coords = self.geocoder.resolve(fields.address, fields.lat, fields.lon)
        return EventDraft(
            name=fields.name,
            type=fields.type,
            start_time=to_local(fields.start_time, self.tz),
            end_time=to_local(fields.end_time, self.tz),
            description=fields.description,
            address_name=fields.address_name,
            address=fields.address,
            lat=coords.lat,
            lon=coords.lon,
        )

    def _insert_series(self, payload: EventIn) -> list[int]:
        draft = self._draft(payload)
        instances = expand(
            draft.start_time,
            draft.end_time,
            payload.recurrence,
            to_local(payload.recurrence_until, self.tz),
        )
        # one insert per instance, in order; earlier rows stay if a later one fails
        return [self.store.insert(draft.at(inst.start, inst.end)) for inst in instances]

    def create(self, payload: EventIn) -> list[int]:
        ids = self._insert_series(payload)
        logger.info(
            "Created %d instance(s) of %r (%s)", len(ids), payload.name, payload.recurrence.value
        )
        return ids

    def update(self, event_id: int, payload: EventUpdateIn) -> None:
        self.store.update(event_id, self._draft(payload))
        logger.info("Updated event %s", event_id)

    def delete(self, event_id: int) -> None:
        self.store.delete(event_id)
        logger.info("Deleted event %s", event_id)

    def duplicate(self, event_id: int) -> int:
        new_id: Optional[int] = self.store.duplicate(event_id)
        if new_id is None:
            raise NotFound("Not found")
        logger.info("Duplicated event %s as %s", event_id, new_id)
        return new_id

    def import_csv(self, text: str) -> ImportResult:
        parsed = parse_csv(text)
        inserted = 0
        for row in parsed.rows:
            inserted += len(self._insert_series(row))
        logger.info("CSV import: %d inserted, %d row(s) skipped", inserted, len(parsed.rejected))
        return ImportResult(inserted=inserted, skipped=len(parsed.rejected))
