from __future__ import annotations
from typing import Any, Optional
from datetime import datetime

from sqlalchemy import Integer, String, Text, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import UserDefinedType

from .db import Base

WGS84 = 4326


class Geography(UserDefinedType):
    """PostGIS ``geography`` column type (distance math on the spheroid)."""

    cache_ok = True

    def __init__(self, geometry_type: Optional[str] = None, srid: int = WGS84):
        self.geometry_type = geometry_type
        self.srid = srid

    def get_col_spec(self, **kw) -> str:
        if self.geometry_type:
            return f"geography({self.geometry_type},{self.srid})"
        return "geography"


class Geometry(UserDefinedType):
    """Planar PostGIS ``geometry``; only used as a cast target for ST_X/ST_Y."""

    cache_ok = True

    def get_col_spec(self, **kw) -> str:
        return "geometry"


class Event(Base):
    __tablename__ = "events"

    id:           Mapped[int]                = mapped_column(Integer, primary_key=True)
    name:         Mapped[str]                = mapped_column(String(200), nullable=False)
    type:         Mapped[str]                = mapped_column(String(100), nullable=False)
    description:  Mapped[Optional[str]]      = mapped_column(Text, nullable=True)
    address_name: Mapped[Optional[str]]      = mapped_column(String(255), nullable=True)
    address:      Mapped[Optional[str]]      = mapped_column(String(500), nullable=True)
    location:     Mapped[Optional[Any]]      = mapped_column(Geography("Point"), nullable=True)
    start_time:   Mapped[datetime]           = mapped_column(DateTime(timezone=False), nullable=False, index=True)
    end_time:     Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at:   Mapped[datetime]           = mapped_column(DateTime(timezone=True), server_default=func.now())
