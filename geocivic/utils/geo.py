"""
Great-circle distance for geofence checks.

Spherical-earth haversine. Pure and stateless, safe to call from any thread.
"""

import math
from typing import NamedTuple, Optional

from geocivic.core.settings import settings
from geocivic.services.errors import InvalidCoordinate


class Coordinate(NamedTuple):
    latitude: float
    longitude: float


def validate_coordinate(coord: Coordinate) -> Coordinate:
    """Reject NaN/infinite values and out-of-range latitude or longitude."""
    try:
        lat = float(coord.latitude)
        lon = float(coord.longitude)
    except (TypeError, ValueError):
        raise InvalidCoordinate(f"Coordinates must be numeric: {coord!r}")

    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise InvalidCoordinate(f"Coordinates must be finite: ({lat}, {lon})")
    if not -90.0 <= lat <= 90.0:
        raise InvalidCoordinate(f"Latitude out of range: {lat}")
    if not -180.0 <= lon <= 180.0:
        raise InvalidCoordinate(f"Longitude out of range: {lon}")
    return Coordinate(lat, lon)


def coordinate_or_none(latitude: Optional[float], longitude: Optional[float]) -> Optional[Coordinate]:
    """
    Build a validated Coordinate from optional parts.

    Both absent -> None. Exactly one absent -> InvalidCoordinate.
    """
    if latitude is None and longitude is None:
        return None
    if latitude is None or longitude is None:
        raise InvalidCoordinate("Latitude and longitude must be supplied together")
    return validate_coordinate(Coordinate(latitude, longitude))


def distance_meters(a: Coordinate, b: Coordinate, radius: Optional[float] = None) -> float:
    """
    Haversine distance in meters between two coordinates.

    Args:
        a: First coordinate
        b: Second coordinate
        radius: Sphere radius in meters (defaults to EARTH_RADIUS_METERS)

    Raises:
        InvalidCoordinate: If either coordinate is NaN or out of range
    """
    a = validate_coordinate(a)
    b = validate_coordinate(b)
    R = radius if radius is not None else settings.EARTH_RADIUS_METERS

    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    delta_phi = math.radians(b.latitude - a.latitude)
    delta_lambda = math.radians(b.longitude - a.longitude)

    h = math.sin(delta_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    # Clamp rounding noise so antipodal points stay in asin's domain.
    h = min(1.0, max(0.0, h))
    return 2 * R * math.asin(math.sqrt(h))
