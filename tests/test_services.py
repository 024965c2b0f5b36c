"""Tests for write-path orchestration."""

from datetime import datetime

import pytest
from zoneinfo import ZoneInfo

from bardeals.errors import NotFound
from bardeals.schemas import EventIn, EventUpdateIn
from bardeals.services import EventService

TZ = ZoneInfo("America/New_York")
TRYON = "100 N Tryon St, Charlotte, NC"


@pytest.fixture
def service(store, geocoder) -> EventService:
    return EventService(store, geocoder, TZ)


class TestCreate:
    """Tests for EventService.create."""

    def test_single_event_geocoded_once(self, service, store, geocoder):
        ids = service.create(EventIn(name="Wing night", type="Food", address=TRYON, start_time="2024-06-01 18:00"))
        assert len(ids) == 1
        rec = store.get(ids[0])
        assert (rec.lat, rec.lon) == (35.2271, -80.8431)
        assert geocoder.lookups == [TRYON]

    def test_daily_series(self, service, store, geocoder):
        ids = service.create(EventIn(
            name="Happy hour", type="Drink Deals", address=TRYON,
            start_time="2024-01-01T00:00:00", recurrence="daily", recurrence_until="2024-01-03",
        ))
        assert [store.get(i).start_time.day for i in ids] == [1, 2, 3]
        assert geocoder.lookups == [TRYON]

    def test_offset_timestamps_become_local_wall_clock(self, service, store):
        (event_id,) = service.create(EventIn(
            name="Trivia", type="Trivia", start_time="2024-06-01T22:00:00Z", end_time="2024-06-02T00:00:00Z",
        ))
        rec = store.get(event_id)
        assert rec.start_time == datetime(2024, 6, 1, 18, 0)
        assert rec.end_time == datetime(2024, 6, 1, 20, 0)

    def test_unresolved_address_stores_no_location(self, service, store):
        (event_id,) = service.create(EventIn(name="Pop-up", type="Food", address="Nowhere", start_time="2024-06-01 12:00"))
        rec = store.get(event_id)
        assert rec.lat is None and rec.lon is None

    def test_partial_failure_keeps_earlier_rows(self, service, store):
        store.fail_on_insert = 2
        with pytest.raises(RuntimeError):
            service.create(EventIn(name="Series", type="Trivia", start_time="2024-06-01 19:00", recurrence="weekly"))
        assert len(store.rows) == 2


class TestUpdate:
    """Tests for EventService.update."""

    def test_failed_geocode_keeps_location(self, service, store, draft_factory):
        event_id = store.insert(draft_factory())
        service.update(event_id, EventUpdateIn(name="Renamed", type="Trivia", address="Unknown Pl", start_time="2024-06-02 19:00"))
        rec = store.get(event_id)
        assert rec.name == "Renamed"
        assert rec.address == "Unknown Pl"
        assert (rec.lat, rec.lon) == (35.2271, -80.8431)

    def test_explicit_coordinates_replace_location(self, service, store, geocoder, draft_factory):
        event_id = store.insert(draft_factory())
        service.update(event_id, EventUpdateIn(name="Moved", type="Trivia", lat=35.3, lon=-80.7, start_time="2024-06-02 19:00"))
        assert (store.get(event_id).lat, store.get(event_id).lon) == (35.3, -80.7)
        assert geocoder.lookups == []


class TestDuplicateAndDelete:
    """Tests for EventService.duplicate and delete."""

    def test_duplicate_missing(self, service):
        with pytest.raises(NotFound):
            service.duplicate(404)

    def test_duplicate_does_not_geocode(self, service, store, geocoder, draft_factory):
        event_id = store.insert(draft_factory())
        new_id = service.duplicate(event_id)
        assert store.get(new_id).lat == store.get(event_id).lat
        assert geocoder.lookups == []

    def test_delete_twice(self, service, store, draft_factory):
        event_id = store.insert(draft_factory())
        service.delete(event_id)
        service.delete(event_id)
        assert store.get(event_id) is None


class TestImport:
    """Tests for EventService.import_csv."""

    def test_counts_instances_and_skips(self, service, store, geocoder):
        text = "\n".join([
            "name,type,start_time,recurrence,recurrence_until,address,lat,lon",
            "Trivia,Trivia,2024-06-03 19:00,daily,2024-06-05,,35.1,-80.9",
            "Karaoke,Karaoke,2024-06-04 21:00,,,100 N Tryon St,,",
            ",Broken,2024-06-04 21:00,,,,,",
        ])
        result = service.import_csv(text)
        assert result.inserted == 4
        assert result.skipped == 1
        assert len(store.rows) == 4
        assert geocoder.lookups == ["100 N Tryon St"]
