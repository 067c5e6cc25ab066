import logging
from typing import Any, Dict, Optional

import requests

from .base import GeocodingProvider

logger = logging.getLogger(__name__)


class NominatimProvider(GeocodingProvider):
    """
    OpenStreetMap Nominatim reverse-geocoding provider.

    - No API key required.
    - Includes a User-Agent header as required by Nominatim usage policy.
    """

    name = "nominatim"
    BASE_URL = "https://nominatim.openstreetmap.org/reverse"

    def __init__(self, user_agent: str = "geocivic/0.1", timeout: float = 3.0):
        self.user_agent = user_agent
        self.timeout = timeout

    def reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        try:
            resp = requests.get(
                self.BASE_URL,
                params={"lat": latitude, "lon": longitude, "format": "json"},
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
            if resp.status_code != 200:
                logger.warning(f"Nominatim reverse-geocode failed with status {resp.status_code}")
                return None

            data: Dict[str, Any] = resp.json()
            return data.get("display_name") or None
        except Exception as e:
            logger.warning(f"Nominatim reverse-geocode error: {e}")
            return None
