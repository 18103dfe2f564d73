# trip_composer/api/geocoding.py
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Dict, Optional

import googlemaps
from googlemaps import exceptions as gmaps_exceptions
from trip_composer.api.config import get_google_maps_config, get_routing_config
from trip_composer.api.errors import GeocodingBoundaryError

logger = logging.getLogger(__name__)

_gmaps: googlemaps.Client | None = None


def get_maps_client() -> googlemaps.Client | None:
    """Return a cached googlemaps.Client instance, or None without a key."""
    global _gmaps
    if _gmaps is None:
        cfg = get_google_maps_config()
        api_key = cfg.get("api_key", "")
        if not api_key:
            logger.error("No Google Maps API key found in config")
            return None
        try:
            logger.info(f"Initializing Google Maps client with key: {api_key[:6]}...")
            _gmaps = googlemaps.Client(key=api_key, timeout=get_routing_config()["timeout_seconds"])
        except ValueError as e:
            logger.error(f"Failed to initialize Google Maps client: {e}")
            return None
    return _gmaps


def geocode(place: str) -> tuple[float, float]:
    """Resolve a free-text place name to (lat, lng).

    Raises GeocodingBoundaryError when the lookup fails or finds nothing.
    """
    client = get_maps_client()
    if client is None:
        raise GeocodingBoundaryError("No Google Maps client available")

    try:
        results = client.geocode(place, language="en")
    except (gmaps_exceptions.ApiError,
            gmaps_exceptions.TransportError,
            gmaps_exceptions.Timeout) as e:
        raise GeocodingBoundaryError(f"Geocoding error for '{place}': {e}") from e

    if not results:
        raise GeocodingBoundaryError(f"No results found for place: {place}")

    loc = results[0]["geometry"]["location"]
    logger.debug(f"Geocoded {place} to {loc['lat']}, {loc['lng']}")
    return loc["lat"], loc["lng"]


@lru_cache(maxsize=1000)
def get_coordinates_for_place(place: str) -> tuple[float, float] | None:
    """Like ``geocode`` but maps every failure to None.

    Uses LRU cache so repeated re-centering on the same stop is free.
    """
    try:
        return geocode(place)
    except GeocodingBoundaryError as e:
        logger.warning(str(e))
        return None


def center_for_stop(place: str) -> Optional[Dict[str, float]]:
    """Map center for a stop as a ``{"lat", "lng"}`` dict, or None."""
    coords = get_coordinates_for_place(place)
    if coords is None:
        return None
    return {"lat": coords[0], "lng": coords[1]}


# Re-export for clean imports elsewhere
__all__ = [
    "geocode",
    "get_coordinates_for_place",
    "center_for_stop",
    "get_maps_client",
]
