"""
ChargeSphere - Geographic Utilities
Distance helpers for stations and user locations.
"""

from math import radians, sin, cos, atan2, sqrt
from typing import Any, Dict, List, Optional

from utils.helpers import round_half_up

EARTH_RADIUS_KM = 6371.0


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points using the Haversine formula.

    Args:
        lat1, lon1: First point coordinates
        lat2, lon2: Second point coordinates

    Returns:
        float: Distance in kilometers, rounded to 1 decimal place
    """
    dlat = radians(lat2 - lat1)
    dlon = radians(lon2 - lon1)

    a = (
        sin(dlat / 2) * sin(dlat / 2)
        + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlon / 2) * sin(dlon / 2)
    )
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return round_half_up(EARTH_RADIUS_KM * c, 1)


def format_distance(distance_km: float) -> str:
    """Format a distance for display: meters below 1 km, kilometers above."""
    if distance_km < 1:
        return f"{round(distance_km * 1000)} m"
    return f"{distance_km} km"


def _coordinates(location: Any) -> Optional[tuple]:
    if not isinstance(location, dict):
        return None
    lat, lng = location.get("lat"), location.get("lng")
    if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
        return None
    return float(lat), float(lng)


def add_distance_to_stations(
    stations: List[Dict[str, Any]],
    user_location: Optional[Dict[str, float]]
) -> List[Dict[str, Any]]:
    """
    Return copies of the stations with a `distance` (km) from the user.
    Stations without usable coordinates are returned unchanged.
    """
    origin = _coordinates(user_location)
    if origin is None:
        return stations

    result = []
    for station in stations:
        target = _coordinates(station.get("location"))
        if target is None:
            result.append(dict(station))
            continue
        result.append({**station, "distance": calculate_distance(*origin, *target)})
    return result


def sort_stations_by_distance(stations: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Sort stations nearest first; unknown distances count as 0."""
    return sorted(stations, key=lambda station: station.get("distance") or 0)
