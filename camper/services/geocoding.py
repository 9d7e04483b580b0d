from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import quote

from camper.core.config import settings
from camper.services.http_client import UpstreamHttpClient

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeoPoint:
    longitude: float
    latitude: float


class NoMatch(Exception):
    pass


class GeocodingError(Exception):
    pass


class Geocoder(Protocol):
    async def forward_geocode(self, query: str) -> GeoPoint: ...


class MapboxGeocoder:
    """Mapbox forward geocoding (v5 places), best single match."""

    def __init__(self, *, access_token: str, base_url: str, http: UpstreamHttpClient):
        self._token = access_token
        self._base_url = base_url.rstrip("/")
        self._http = http

    async def forward_geocode(self, query: str) -> GeoPoint:
        if not self._token:
            raise GeocodingError("Geocoding is not configured")

        res = await self._http.get(
            url=f"{self._base_url}/{quote(query, safe='')}.json",
            params={"access_token": self._token, "limit": "1"},
        )
        if not res.ok:
            log.warning("geocode failed query=%r code=%s msg=%s", query, res.error_code, res.error_message)
            raise GeocodingError(res.error_code or "geocoding failed")

        features = res.detail.get("features") or []
        if not features:
            raise NoMatch(query)

        try:
            lng, lat = features[0]["geometry"]["coordinates"][:2]
            return GeoPoint(longitude=float(lng), latitude=float(lat))
        except (KeyError, TypeError, ValueError) as e:
            log.warning("geocode returned malformed feature for %r: %s", query, e)
            raise GeocodingError("malformed geocoding response") from e


_geocoder: Geocoder | None = None


def get_geocoder() -> Geocoder:
    global _geocoder
    if _geocoder is None:
        _geocoder = MapboxGeocoder(
            access_token=settings.mapbox_token.get_secret_value(),
            base_url=settings.geocoding_base_url,
            http=UpstreamHttpClient(),
        )
    return _geocoder
