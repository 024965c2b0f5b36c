# backend/bardeals/importer.py
"""
CSV bulk import parsing.

The first non-blank line is a header; column order is free and names
are matched case-insensitively. Recognised columns::

    name,type,address_name,description,address,start_time,end_time,
    recurrence,recurrence_until,lat,lon

``name``, ``type`` and ``start_time`` must be present. Rows that don't
validate are reported back rather than aborting the whole import.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field

from pydantic import ValidationError

from .errors import BadRequest
from .schemas import EventIn

logger = logging.getLogger(__name__)

COLUMNS = (
    "name", "type", "address_name", "description", "address",
    "start_time", "end_time", "recurrence", "recurrence_until", "lat", "lon",
)
REQUIRED_COLUMNS = ("name", "type", "start_time")


@dataclass
class ParsedCsv:
    rows: list[EventIn] = field(default_factory=list)
    # (line number, reason)
    rejected: list[tuple[int, str]] = field(default_factory=list)


def _describe(e: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
    )


def parse_csv(text: str) -> ParsedCsv:
    lines = [(n, line) for n, line in enumerate((text or "").splitlines(), start=1) if line.strip()]
    if not lines:
        raise BadRequest("Empty CSV")

    reader = csv.reader(io.StringIO("\n".join(line for _, line in lines)))
    header = [h.strip().lower() for h in next(reader)]
    for col in REQUIRED_COLUMNS:
        if col not in header:
            raise BadRequest(f"Missing column: {col}")

    parsed = ParsedCsv()
    for (lineno, _), parts in zip(lines[1:], reader):
        rec = {
            h: (parts[i].strip() if i < len(parts) else "")
            for i, h in enumerate(header)
            if h in COLUMNS
        }
        try:
            parsed.rows.append(EventIn.model_validate(rec))
        except ValidationError as e:
            reason = _describe(e)
            logger.warning("Skipping CSV line %d: %s", lineno, reason)
            parsed.rejected.append((lineno, reason))
    return parsed
