# backend/bardeals/config.py
"""
Application settings.

``load_settings`` reads the process environment once at startup and
returns a ``Settings`` instance. The app factory keeps it on
``app.state.settings``; request handlers never read ``os.environ``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_ORIGINS = ("http://localhost", "http://localhost:3000", "http://127.0.0.1:3000")
NOMINATIM_SEARCH_URL = "https://nominatim.openstreetmap.org/search"


def _clean(s: str | None) -> str | None:
    return s.strip().rstrip("/") if s and s.strip() else None


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    """Configuration shared by the HTTP surface, the store and the geocoder."""

    database_url: str = "postgresql://localhost:5432/bardeals"
    admin_token: str = ""
    log_level: str = "INFO"
    log_file: Optional[str] = None
    cors_origins: tuple[str, ...] = DEFAULT_ORIGINS
    geocoder_url: str = NOMINATIM_SEARCH_URL
    geocoder_user_agent: str = "CharlotteBarDeals/1.0"
    geocoder_timeout: float = 10.0
    timezone: str = "America/New_York"
    auto_migrate: bool = False
    host: str = "0.0.0.0"
    port: int = 5000
    project_name: str = "Bar Deals API"


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build ``Settings`` from ``env`` (defaults to ``os.environ``)."""
    env = os.environ if env is None else env

    frontend = _clean(env.get("FRONTEND_ORIGIN"))
    extra = [x for x in (_clean(p) for p in env.get("EXTRA_CORS_ORIGINS", "").split(",")) if x]
    if "*" in extra:
        origins: tuple[str, ...] = ("*",)
    elif frontend or extra:
        origins = tuple(dict.fromkeys([o for o in (frontend, *extra) if o]))
    else:
        origins = DEFAULT_ORIGINS

    return Settings(
        database_url=env.get("DATABASE_URL") or Settings.database_url,
        admin_token=env.get("ADMIN_TOKEN", "").strip(),
        log_level=env.get("LOG_LEVEL", "INFO"),
        log_file=env.get("LOG_FILE") or None,
        cors_origins=origins,
        geocoder_url=env.get("GEOCODER_URL") or NOMINATIM_SEARCH_URL,
        geocoder_user_agent=env.get("GEOCODER_USER_AGENT") or Settings.geocoder_user_agent,
        geocoder_timeout=float(env.get("GEOCODER_TIMEOUT", "10")),
        timezone=env.get("EVENTS_TIMEZONE") or Settings.timezone,
        auto_migrate=_flag(env.get("AUTO_MIGRATE")),
        host=env.get("HOST", "0.0.0.0"),
        port=int(env.get("PORT", "5000")),
    )
