import logging
from typing import Optional

from geocivic.core.settings import settings
from geocivic.utils.geo import Coordinate
from .base import GeocodingProvider
from .google_provider import GoogleMapsProvider
from .nominatim_provider import NominatimProvider

logger = logging.getLogger(__name__)

_provider_instance: Optional[GeocodingProvider] = None


def get_geocoding_provider() -> GeocodingProvider:
    """
    Resolve the active geocoding provider based on settings.

    Rules:
    - Default: Nominatim (no API key required).
    - Google only when GEOCODING_PROVIDER='google' AND GOOGLE_MAPS_API_KEY is set.
    """
    global _provider_instance
    if _provider_instance is not None:
        return _provider_instance

    provider_name = (settings.GEOCODING_PROVIDER or "nominatim").lower()
    if provider_name == "google" and settings.GOOGLE_MAPS_API_KEY:
        _provider_instance = GoogleMapsProvider(api_key=settings.GOOGLE_MAPS_API_KEY)
    else:
        _provider_instance = NominatimProvider()

    logger.info(f"Geocoding provider initialized: {_provider_instance.name}")
    return _provider_instance


def lookup_address(coord: Coordinate) -> Optional[str]:
    """Best-effort address for a coordinate; None when disabled or not found."""
    if not settings.GEOCODING_ENABLED:
        return None
    return get_geocoding_provider().reverse_geocode(coord.latitude, coord.longitude)
