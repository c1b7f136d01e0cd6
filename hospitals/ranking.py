"""
Distance attachment, radius filtering and ranking of hospital records
"""

from typing import Iterable, List

from data_sources.utils import Coordinates, compute_distance_km
from .models import HospitalRecord


def attach_distances(records: Iterable[HospitalRecord], origin: Coordinates) -> List[HospitalRecord]:
    return [r.with_distance(compute_distance_km(origin, r.coordinates)) for r in records]


def filter_within_radius(records: Iterable[HospitalRecord], radius_m: float) -> List[HospitalRecord]:
    radius_km = radius_m / 1000.0
    return [r for r in records if r.distance_km <= radius_km]


def rank_by_distance(records: Iterable[HospitalRecord]) -> List[HospitalRecord]:
    """Ascending by distance; ties keep discovery order (sorted() is stable)."""
    return sorted(records, key=lambda r: r.distance_km)
