"""Shared pytest fixtures: an in-memory event store, a stub geocoder and an app client."""

from datetime import datetime, timedelta
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient
from zoneinfo import ZoneInfo

from bardeals.config import Settings
from bardeals.filters import EventFilter
from bardeals.geocode import UNRESOLVED, Coordinates, Geocoder
from bardeals.main import create_app, get_geocoder, get_store
from bardeals.schemas import EventOut
from bardeals.store import EventDraft, EventStore, _require

ADMIN_TOKEN = "s3cret"
TZ = ZoneInfo("America/New_York")


class MemoryEventStore(EventStore):
    """EventStore over a dict; filtering goes through ``EventFilter.matches``."""

    def __init__(self):
        super().__init__(db=None)
        self.rows: dict[int, EventOut] = {}
        self.next_id = 1
        self.fail_on_insert: Optional[int] = None
        self.db_down = False

    def insert(self, draft: EventDraft) -> int:
        _require(draft)
        if self.fail_on_insert is not None and len(self.rows) >= self.fail_on_insert:
            raise RuntimeError("connection reset")
        event_id = self.next_id
        self.next_id += 1
        coords = draft.coordinates
        self.rows[event_id] = EventOut(
            id=event_id,
            name=draft.name,
            type=draft.type,
            description=draft.description,
            address_name=draft.address_name,
            address=draft.address,
            lat=coords.lat if coords.resolved else None,
            lon=coords.lon if coords.resolved else None,
            start_time=draft.start_time,
            end_time=draft.end_time,
        )
        return event_id

    def update(self, event_id: int, draft: EventDraft) -> None:
        _require(draft)
        current = self.rows.get(event_id)
        if current is None:
            return
        changes: dict[str, Any] = {
            "name": draft.name,
            "type": draft.type,
            "description": draft.description,
            "address_name": draft.address_name,
            "address": draft.address,
            "start_time": draft.start_time,
            "end_time": draft.end_time,
        }
        if draft.coordinates.resolved:
            changes.update(lat=draft.lat, lon=draft.lon)
        self.rows[event_id] = current.model_copy(update=changes)

    def delete(self, event_id: int) -> None:
        self.rows.pop(event_id, None)

    def get(self, event_id: int) -> Optional[EventOut]:
        return self.rows.get(event_id)

    def search(self, event_filter: EventFilter, limit: int = 200) -> list[EventOut]:
        found = [r for r in self.rows.values() if event_filter.matches(r)]
        return sorted(found, key=lambda r: r.start_time)[:limit]

    def list_recent(self, limit: int = 500) -> list[EventOut]:
        return sorted(self.rows.values(), key=lambda r: r.start_time, reverse=True)[:limit]

    def db_time(self) -> datetime:
        if self.db_down:
            raise RuntimeError("could not connect to server")
        return datetime(2024, 6, 1, 12, 0, 0)

    def diagnostics(self) -> dict[str, Any]:
        return {"now": self.db_time(), "postgis": "3.4 USE_GEOS=1", "has_events_table": True}


class StubGeocoder(Geocoder):
    """Geocoder whose network lookup is a dict; records every address looked up."""

    def __init__(self, known: Optional[dict[str, Coordinates]] = None):
        super().__init__(url="http://geocoder.invalid/search", user_agent="tests")
        self.known = known or {}
        self.lookups: list[str] = []

    def lookup(self, address: str) -> Coordinates:
        self.lookups.append(address)
        return self.known.get(address, UNRESOLVED)


UPTOWN = Coordinates(35.2271, -80.8431)


@pytest.fixture
def store() -> MemoryEventStore:
    return MemoryEventStore()


@pytest.fixture
def geocoder() -> StubGeocoder:
    return StubGeocoder({"100 N Tryon St, Charlotte, NC": UPTOWN})


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url="sqlite://", admin_token=ADMIN_TOKEN)


@pytest.fixture
def app(settings: Settings, store: MemoryEventStore, geocoder: StubGeocoder):
    app = create_app(settings)
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_geocoder] = lambda: geocoder
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"x-admin-token": ADMIN_TOKEN}


@pytest.fixture
def local_now() -> datetime:
    return datetime.now(TZ).replace(tzinfo=None, microsecond=0)


def make_draft(**overrides: Any) -> EventDraft:
    fields: dict[str, Any] = {
        "name": "Half-price wells",
        "type": "Drink Deals",
        "start_time": datetime(2024, 6, 1, 18, 0),
        "end_time": datetime(2024, 6, 1, 20, 0),
        "address": "100 N Tryon St, Charlotte, NC",
        "lat": UPTOWN.lat,
        "lon": UPTOWN.lon,
    }
    fields.update(overrides)
    return EventDraft(**fields)


@pytest.fixture
def seeded(store: MemoryEventStore, local_now: datetime) -> MemoryEventStore:
    """A few upcoming and past events around uptown Charlotte."""
    store.insert(make_draft(name="Trivia Tuesday", type="Trivia", start_time=local_now + timedelta(days=1), end_time=None))
    store.insert(make_draft(name="$3 drafts", type="DRINK DEALS", start_time=local_now + timedelta(days=2), end_time=None))
    store.insert(make_draft(name="Karaoke", type="karaoke", start_time=local_now + timedelta(days=3), end_time=None))
    store.insert(make_draft(name="Old trivia", type="Trivia", start_time=local_now - timedelta(days=2), end_time=None))
    store.insert(make_draft(name="No venue", type="Trivia", start_time=local_now + timedelta(days=4), end_time=None, lat=None, lon=None))
    return store


@pytest.fixture
def draft_factory():
    return make_draft
