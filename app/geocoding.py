"""Destination lookup against the Mapbox Places API."""
from __future__ import annotations

import asyncio
from typing import Optional, Tuple
from urllib.parse import quote

import httpx

from app.config import Settings, get_settings
from app.errors import GeocodingError
from app.logs import get_logger

logger = get_logger(__name__)

MAPBOX_GEOCODING_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places/{query}.json"

# (longitude, latitude) of New Delhi, used whenever a lookup fails.
DEFAULT_COORDINATES: Tuple[float, float] = (77.209, 28.6139)


async def geocode(destination: str, *, token: str, timeout: float = 10.0) -> Tuple[float, float]:
    """Return the first match for ``destination`` as (longitude, latitude)."""
    if not token:
        raise GeocodingError("MAPBOX_ACCESS_TOKEN environment variable not configured")
    if not destination.strip():
        raise GeocodingError("Cannot geocode an empty destination")

    url = MAPBOX_GEOCODING_URL.format(query=quote(destination.strip(), safe=""))
    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.get(url, params={"access_token": token, "limit": 1})
        response.raise_for_status()
        data = response.json()

    features = data.get("features") if isinstance(data, dict) else None
    if not features:
        raise GeocodingError(f"No geocoding match for {destination!r}")
    center = features[0].get("center") if isinstance(features[0], dict) else None
    if not isinstance(center, (list, tuple)) or len(center) < 2:
        raise GeocodingError(f"Geocoding match for {destination!r} has no center")
    return float(center[0]), float(center[1])


async def resolve_coordinates(destination: str, settings: Optional[Settings] = None) -> Tuple[float, float]:
    """Geocode ``destination``, falling back to ``DEFAULT_COORDINATES`` on any failure."""
    settings = settings or get_settings()
    try:
        coords = await asyncio.wait_for(
            geocode(destination, token=settings.mapbox_token, timeout=settings.geocode_timeout),
            timeout=settings.geocode_timeout,
        )
    except Exception:
        logger.warning("Geocoding failed for %r; using default coordinates", destination, exc_info=True)
        return DEFAULT_COORDINATES
    logger.info("Geocoded %r to %s", destination, coords)
    return coords
