"""
Geocoding proxy (Mapbox)

Keeps MAPBOX_ACCESS_TOKEN server-side. Errors:
- no token → GeocodingNotConfiguredError (503)
- transport error / non-2xx → GeocodingUpstreamError (502)
- no match on geocode → GeocodeNotFoundError (404)
"""
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from app.core.config import settings
from app.core.exceptions import (
    GeocodingNotConfiguredError,
    GeocodingUpstreamError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

MAPBOX_GEOCODING_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"

AUTOCOMPLETE_PARAMS = {
    "autocomplete": "true",
    "limit": "8",
    "types": "address,place,locality,region,country",
    "fuzzyMatch": "true",
    "language": "en",
}

GEOCODE_PARAMS = {
    "limit": "1",
    "types": "country,region,district,place,locality,neighborhood,address,postcode",
}


class GeocodeNotFoundError(NotFoundError):
    def __init__(self, **kwargs):
        super().__init__("Address not found", **kwargs)


class MapboxGeocoder:
    """Thin async client over the Mapbox places endpoint."""

    def __init__(self, access_token: Optional[str] = None, timeout: Optional[float] = None):
        self.access_token = settings.MAPBOX_ACCESS_TOKEN if access_token is None else access_token
        self.timeout = timeout or settings.MAPBOX_TIMEOUT_SECONDS
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def close(self):
        """Explicit cleanup method."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    def is_configured(self) -> bool:
        return bool(self.access_token)

    async def _search(self, query: str, params: Dict[str, str]) -> Dict[str, Any]:
        if not self.is_configured():
            raise GeocodingNotConfiguredError()

        url = f"{MAPBOX_GEOCODING_URL}/{quote(query, safe='')}.json"
        http = await self._get_http_client()
        try:
            resp = await http.get(url, params={**params, "access_token": self.access_token})
        except httpx.HTTPError as e:
            logger.error(f"Mapbox request failed: {type(e).__name__}: {e}")
            raise GeocodingUpstreamError("Address lookup failed") from e

        if resp.status_code != 200:
            logger.error(f"Mapbox API error: {resp.status_code} - {resp.text[:200]}")
            raise GeocodingUpstreamError(
                "Address lookup failed",
                details={"status_code": resp.status_code},
            )

        try:
            return resp.json()
        except ValueError as e:
            logger.error("Mapbox returned a non-JSON body")
            raise GeocodingUpstreamError("Address lookup failed") from e

    async def autocomplete(self, query: str) -> Dict[str, Any]:
        """Up to 8 suggestions, passed through as Mapbox features."""
        data = await self._search(query, AUTOCOMPLETE_PARAMS)
        return {"features": data.get("features") or []}

    async def geocode(self, query: str) -> Dict[str, Any]:
        """Best single match as {placeName, coordinates{lng,lat}, relevance}."""
        data = await self._search(query, GEOCODE_PARAMS)
        features = data.get("features") or []
        if not features:
            raise GeocodeNotFoundError()

        feature = features[0]
        lng, lat = feature["center"][:2]
        return {
            "placeName": feature.get("place_name"),
            "coordinates": {"lng": lng, "lat": lat},
            "relevance": feature.get("relevance"),
        }


geocoder = MapboxGeocoder()


def get_geocoder() -> MapboxGeocoder:
    return geocoder
