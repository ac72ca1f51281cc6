"""
Geocoder proxy routes

Keeps the Mapbox access token on the server. Responses are cacheable by
the browser/CDN.
"""
from fastapi import APIRouter, Depends, Query, Response

from app.core.rate_limit import rate_limit
from app.schemas.common import envelope
from app.services.geocoding import MapboxGeocoder, get_geocoder

router = APIRouter(
    prefix="/mapbox",
    tags=["mapbox"],
    dependencies=[Depends(rate_limit("mapbox"))],
)


@router.get("/autocomplete")
async def autocomplete(
    response: Response,
    q: str = Query(..., min_length=2, max_length=200),
    geocoder: MapboxGeocoder = Depends(get_geocoder),
):
    """Address suggestions for the shipment and quote forms."""
    data = await geocoder.autocomplete(q)
    response.headers["Cache-Control"] = "public, max-age=300"
    return envelope(data)


@router.get("/geocode")
async def geocode(
    response: Response,
    q: str = Query(..., min_length=2, max_length=200),
    geocoder: MapboxGeocoder = Depends(get_geocoder),
):
    """Best match for an address as coordinates."""
    data = await geocoder.geocode(q)
    response.headers["Cache-Control"] = "public, max-age=3600"
    return envelope(data)
