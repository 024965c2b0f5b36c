# backend/bardeals/main.py
"""
HTTP surface for the bar deals listing.

``create_app`` wires settings, logging, the database session factory,
the geocoder and the routes together. ``app`` is built at import time
so it can be served directly::

    uvicorn bardeals.main:app
"""

from __future__ import annotations

import hmac
import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from zoneinfo import ZoneInfo

from .config import Settings, load_settings
from .db import get_db, make_engine, make_session_factory, normalize_db_url
from .errors import REQUIRED_FIELDS_MESSAGE, ApiError, ConfigurationError, Unauthorized
from .filters import build_filter
from .geocode import Geocoder
from .logging_config import setup_logging
from .schemas import (
    CreateOut,
    DuplicateOut,
    EventIn,
    EventOut,
    EventUpdateIn,
    HealthOut,
    ImportOut,
    SuccessOut,
)
from .services import EventService
from .store import ADMIN_LIMIT, PUBLIC_LIMIT, EventStore
from .timeutil import now_local

logger = logging.getLogger(__name__)

REQUIRED = {"name", "type", "start_time"}


# ───────────────────────── Dependencies ─────────────────────────────
def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(db: Session = Depends(get_db)) -> EventStore:
    return EventStore(db)


def get_geocoder(request: Request) -> Geocoder:
    return request.app.state.geocoder


def get_service(
    request: Request,
    store: EventStore = Depends(get_store),
    geocoder: Geocoder = Depends(get_geocoder),
) -> EventService:
    return EventService(store, geocoder, request.app.state.tz)


def require_admin(
    settings: Settings = Depends(get_settings),
    x_admin_token: Optional[str] = Header(default=None),
) -> None:
    if not settings.admin_token:
        raise ConfigurationError("ADMIN_TOKEN not set on server")
    if not x_admin_token or not hmac.compare_digest(
        x_admin_token.encode("utf-8"), settings.admin_token.encode("utf-8")
    ):
        raise Unauthorized("Unauthorized")


# ───────────────────────── Public routes ────────────────────────────
router = APIRouter()


@router.get("/events", response_model=list[EventOut])
def list_events(
    request: Request,
    types: list[str] = Query(default=[]),
    type_: list[str] = Query(default=[], alias="type"),
    types_arr: list[str] = Query(default=[], alias="types[]"),
    lat: Optional[str] = Query(default=None),
    lng: Optional[str] = Query(default=None),
    radius: Optional[str] = Query(default=None),
    date: Optional[str] = Query(default=None),
    time_of_day: Optional[str] = Query(default=None, alias="timeOfDay"),
    store: EventStore = Depends(get_store),
):
    event_filter = build_filter(
        types=[*types, *type_, *types_arr],
        date_str=date,
        time_of_day=time_of_day,
        lat=lat,
        lng=lng,
        radius=radius,
        now=now_local(request.app.state.tz),
    )
    return store.search(event_filter, limit=PUBLIC_LIMIT)


@router.get("/healthz", response_model=HealthOut)
def healthz(store: EventStore = Depends(get_store)):
    try:
        return {"ok": True, "db_time": store.db_time()}
    except Exception:
        logger.exception("Health check failed")
        return JSONResponse(status_code=500, content={"ok": False, "error": "DB unreachable"})


@router.get("/debug/db")
def debug_db(store: EventStore = Depends(get_store)):
    try:
        checks = store.diagnostics()
    except Exception:
        logger.exception("DB diagnostics failed")
        return JSONResponse(status_code=500, content={"ok": False, "error": "DB unreachable"})
    checks["now"] = checks["now"].isoformat() if checks.get("now") else None
    return {"ok": True, "checks": checks}


# ───────────────────────── Admin routes ─────────────────────────────
admin = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


@admin.get("/events", response_model=list[EventOut])
def admin_list_events(store: EventStore = Depends(get_store)):
    return store.list_recent(limit=ADMIN_LIMIT)


@admin.post("/events", response_model=CreateOut)
def admin_create_event(payload: EventIn, service: EventService = Depends(get_service)):
    ids = service.create(payload)
    return CreateOut(inserted=len(ids), ids=ids)


@admin.put("/events/{event_id}", response_model=SuccessOut)
def admin_update_event(
    event_id: int, payload: EventUpdateIn, service: EventService = Depends(get_service)
):
    service.update(event_id, payload)
    return SuccessOut()


@admin.delete("/events/{event_id}", response_model=SuccessOut)
def admin_delete_event(event_id: int, service: EventService = Depends(get_service)):
    service.delete(event_id)
    return SuccessOut()


@admin.post("/events/{event_id}/duplicate", response_model=DuplicateOut)
def admin_duplicate_event(event_id: int, service: EventService = Depends(get_service)):
    return DuplicateOut(id=service.duplicate(event_id))


@admin.post("/import", response_model=ImportOut)
async def admin_import(request: Request, service: EventService = Depends(get_service)):
    text = (await request.body()).decode("utf-8-sig", errors="replace")
    result = await run_in_threadpool(service.import_csv, text)
    return ImportOut(inserted=result.inserted, skipped=result.skipped)


# ───────────────────────── Error handling ───────────────────────────
def _validation_message(exc: RequestValidationError) -> str:
    body_fields: set[str] = set()
    other: list[str] = []
    for err in exc.errors():
        loc = tuple(err.get("loc") or ())
        if loc[:1] == ("body",):
            if len(loc) == 1:
                return REQUIRED_FIELDS_MESSAGE
            body_fields.add(str(loc[1]))
        else:
            other.append(str(loc[-1]) if loc else "request")
    if body_fields & REQUIRED:
        return REQUIRED_FIELDS_MESSAGE
    if body_fields:
        return "Invalid value for: " + ", ".join(sorted(body_fields))
    return "Invalid request: " + ", ".join(other)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": _validation_message(exc)})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Server error"})


# ───────────────────────── DB migrations (optional) ─────────────────
def run_migrations(database_url: str) -> None:
    from alembic import command
    from alembic.config import Config

    pkg_dir = Path(__file__).resolve().parent
    cfg = Config(str(pkg_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(pkg_dir / "migrations"))
    cfg.set_main_option("sqlalchemy.url", normalize_db_url(database_url))
    command.upgrade(cfg, "head")


# ───────────────────────── App factory ──────────────────────────────
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings.log_level, settings.log_file)

    app = FastAPI(title=settings.project_name)
    app.state.settings = settings
    app.state.tz = ZoneInfo(settings.timezone)
    app.state.engine = make_engine(settings.database_url)
    app.state.session_factory = make_session_factory(app.state.engine)
    app.state.geocoder = Geocoder(
        settings.geocoder_url,
        settings.geocoder_user_agent,
        timeout=settings.geocoder_timeout,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["Content-Type", "x-admin-token"],
        max_age=86400,
    )

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(router)
    app.include_router(admin)

    @app.on_event("startup")
    def on_startup():
        if settings.auto_migrate:
            run_migrations(settings.database_url)

    return app


app = create_app()
