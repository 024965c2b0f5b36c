# backend/bardeals/geocode.py
"""
Forward geocoding of free-text addresses.

Explicit coordinates always win; otherwise the address is looked up
once against a Nominatim-compatible ``/search`` endpoint and the first
candidate is used. Each lookup is a standalone ``requests.get`` unless a
session is injected. A miss is a normal outcome and yields
``Coordinates(None, None)``; transport and HTTP errors propagate.
"""

from __future__ import annotations

import logging
from typing import NamedTuple, Optional

import requests

logger = logging.getLogger(__name__)


class Coordinates(NamedTuple):
    lat: Optional[float] = None
    lon: Optional[float] = None

    @property
    def resolved(self) -> bool:
        return self.lat is not None and self.lon is not None


UNRESOLVED = Coordinates(None, None)


class Geocoder:
    def __init__(
        self,
        url: str,
        user_agent: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.user_agent = user_agent
        self.timeout = timeout
        self.session = session

    def resolve(
        self,
        address: Optional[str] = None,
        lat: Optional[float] = None,
        lon: Optional[float] = None,
    ) -> Coordinates:
        if lat is not None and lon is not None:
            return Coordinates(lat, lon)
        if not address or not address.strip():
            return UNRESOLVED
        return self.lookup(address.strip())

    def lookup(self, address: str) -> Coordinates:
        logger.debug("Geocoding %r", address)
        get = self.session.get if self.session is not None else requests.get
        r = get(
            self.url,
            params={"format": "json", "q": address},
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout,
        )
        r.raise_for_status()
        data = r.json()
        if not isinstance(data, list) or not data:
            logger.info("No geocoding match for %r", address)
            return UNRESOLVED
        first = data[0]
        try:
            return Coordinates(float(first["lat"]), float(first["lon"]))
        except (KeyError, TypeError, ValueError):
            logger.info("Unusable geocoding candidate for %r: %r", address, first)
            return UNRESOLVED
