"""
Great-circle distance helpers

Coordinates are (lon, lat) pairs in degrees, GeoJSON order.
"""

import math
from typing import Optional, Sequence, Tuple

from .config import EARTH_RADIUS_MILES, METERS_PER_MILE

Coordinates = Tuple[float, float]


def distance_miles(a: Coordinates, b: Coordinates) -> float:
    """Haversine distance between two (lon, lat) points in miles"""
    lon1, lat1 = a
    lon2, lat2 = b

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    h = (math.sin(delta_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_MILES * c


def distance_meters(a: Coordinates, b: Coordinates) -> float:
    """Haversine distance in meters"""
    return distance_miles(a, b) * METERS_PER_MILE


def is_valid_coordinates(
    coords: object,
    bounds: Optional[Tuple[float, float, float, float]] = None
) -> bool:
    """
    Check for a finite (lon, lat) pair

    Args:
        coords: candidate value
        bounds: optional (lon_min, lat_min, lon_max, lat_max) box

    Returns:
        True if usable as coordinates
    """
    if not isinstance(coords, Sequence) or isinstance(coords, str) or len(coords) != 2:
        return False

    lon, lat = coords
    if isinstance(lon, bool) or isinstance(lat, bool):
        return False
    if not isinstance(lon, (int, float)) or not isinstance(lat, (int, float)):
        return False
    if not (math.isfinite(lon) and math.isfinite(lat)):
        return False
    if not (-180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0):
        return False

    if bounds is not None:
        lon_min, lat_min, lon_max, lat_max = bounds
        return lon_min <= lon <= lon_max and lat_min <= lat <= lat_max

    return True
