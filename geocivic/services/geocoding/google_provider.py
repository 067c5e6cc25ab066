import logging
from typing import Any, Dict, Optional

import requests

from .base import GeocodingProvider

logger = logging.getLogger(__name__)


class GoogleMapsProvider(GeocodingProvider):
    """
    Google Maps reverse-geocoding provider.

    Used only when GEOCODING_PROVIDER=google AND GOOGLE_MAPS_API_KEY is set.
    """

    name = "google"
    BASE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

    def __init__(self, api_key: str, timeout: float = 3.0):
        self.api_key = api_key
        self.timeout = timeout

    def reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        try:
            resp = requests.get(
                self.BASE_URL,
                params={"latlng": f"{latitude},{longitude}", "key": self.api_key},
                timeout=self.timeout,
            )
            if resp.status_code != 200:
                logger.warning(f"Google Maps reverse-geocode failed with status {resp.status_code}")
                return None

            data: Dict[str, Any] = resp.json()
            results = data.get("results") or []
            if not results:
                return None
            return results[0].get("formatted_address") or None
        except Exception as e:
            logger.warning(f"Google Maps reverse-geocode error: {e}")
            return None
