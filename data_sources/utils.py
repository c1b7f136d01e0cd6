"""
Shared geographic helpers for MediGuardia data sources
One distance implementation serves the live and fallback paths
"""

import math
from typing import Tuple

EARTH_RADIUS_KM = 6371.0
GOOGLE_MAPS_DIRECTIONS_URL = "https://www.google.com/maps/dir/?api=1&destination={lat},{lon}"

Coordinates = Tuple[float, float]


def haversine_distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate great-circle distance between two points in kilometres.

    Args:
        lat1, lon1: First point coordinates
        lat2, lon2: Second point coordinates

    Returns:
        Unrounded distance in kilometres
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = math.sin(delta_phi/2)**2 + math.cos(phi1) * \
        math.cos(phi2) * math.sin(delta_lambda/2)**2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1-a))

    return EARTH_RADIUS_KM * c


def compute_distance_km(origin: Coordinates, point: Coordinates) -> float:
    """Haversine distance from origin to point, rounded to one decimal place."""
    return round(haversine_distance_km(origin[0], origin[1], point[0], point[1]), 1)


def validate_coordinates(lat: float, lon: float) -> bool:
    """
    Validate that coordinates are within valid ranges.

    Args:
        lat, lon: Coordinates to validate

    Returns:
        True if coordinates are valid
    """
    return -90 <= lat <= 90 and -180 <= lon <= 180


def build_maps_url(lat: float, lon: float) -> str:
    """Google Maps directions link for a destination."""
    return GOOGLE_MAPS_DIRECTIONS_URL.format(lat=lat, lon=lon)
