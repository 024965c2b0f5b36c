# backend/bardeals/schemas.py
from __future__ import annotations
from typing import Any, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .recurrence import Recurrence
from .timeutil import parse_timestamp, parse_until


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


class EventFields(BaseModel):
    """Fields shared by create and update bodies (and CSV rows)."""
    name: str
    type: str
    description:  Optional[str] = None
    address_name: Optional[str] = None
    address:      Optional[str] = None
    lat: Optional[float] = Field(default=None, ge=-90, le=90, allow_inf_nan=False)
    lon: Optional[float] = Field(default=None, ge=-180, le=180, allow_inf_nan=False)
    start_time: datetime
    end_time:   Optional[datetime] = None

    @field_validator("name", "type", mode="before")
    @classmethod
    def _required_text(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("must not be empty")
        return v

    @field_validator("description", "address_name", "address", "lat", "lon", mode="before")
    @classmethod
    def _optional(cls, v: Any) -> Any:
        v = _blank_to_none(v)
        return v.strip() if isinstance(v, str) else v

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _timestamp(cls, v: Any) -> Any:
        return parse_timestamp(v) if isinstance(v, str) else v


class EventIn(EventFields):
    """POST /admin/events body."""
    recurrence: Recurrence = Recurrence.NONE
    recurrence_until: Optional[datetime] = None

    @field_validator("recurrence", mode="before")
    @classmethod
    def _recurrence(cls, v: Any) -> Recurrence:
        return Recurrence.parse(v)

    @field_validator("recurrence_until", mode="before")
    @classmethod
    def _until(cls, v: Any) -> Any:
        return parse_until(v) if isinstance(v, str) else v


class EventUpdateIn(EventFields):
    """PUT /admin/events/{id} body; recurrence isn't editable."""


class EventOut(BaseModel):
    """Response record for an event row, coordinates decoded."""
    id: int
    name: str
    type: str
    description:  Optional[str] = None
    address_name: Optional[str] = None
    address:      Optional[str] = None
    lon: Optional[float] = None
    lat: Optional[float] = None
    start_time: datetime
    end_time:   Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def _paired_coordinates(self) -> "EventOut":
        if self.lon is None or self.lat is None:
            self.lon = None
            self.lat = None
        return self


class SuccessOut(BaseModel):
    success: bool = True


class CreateOut(SuccessOut):
    inserted: int
    ids: list[int]


class DuplicateOut(SuccessOut):
    id: int


class ImportOut(SuccessOut):
    inserted: int
    skipped: int = 0


class HealthOut(BaseModel):
    ok: bool
    db_time: datetime
