"""
Reverse geocoding used to back-fill a report's free-text location.
"""

from .resolver import get_geocoding_provider, lookup_address

__all__ = ["get_geocoding_provider", "lookup_address"]
