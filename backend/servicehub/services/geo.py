from __future__ import annotations

import math
from typing import Optional

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres between two points given in degrees."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_or_none(
    origin_lat: float,
    origin_lon: float,
    lat: Optional[float],
    lon: Optional[float],
) -> Optional[float]:
    """Distance from the origin, or None when the target has no coordinates."""
    if lat is None or lon is None:
        return None
    return haversine_km(origin_lat, origin_lon, lat, lon)
