from abc import ABC, abstractmethod
from typing import Optional


class GeocodingProvider(ABC):
    """
    Abstract reverse-geocoding provider.

    Contract:
    - Input: latitude, longitude (floats)
    - Output: a human-readable address, or None when nothing was found
    - MUST NEVER raise upstream exceptions.
    - Implementations should enforce a network timeout <= 3 seconds.
    """

    name = "base"

    @abstractmethod
    def reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        raise NotImplementedError
