"""
Static hospital catalogue used when no live source is available

The entries are hand-authored, so ratings, opening hours and specialties are
already filled in. Distances are computed with the same function as the live
path, so both paths return identically shaped, identically ordered lists.
"""

from functools import cmp_to_key
from typing import List, Optional

from data_sources.utils import Coordinates
from .models import HospitalRecord
from .ranking import attach_distances, filter_within_radius, rank_by_distance

# Within this distance (km) of each other, nearby recommendations prefer rating
SIMILAR_DISTANCE_KM = 2.0

FALLBACK_HOSPITALS = (
    HospitalRecord(
        hospital_id="1",
        name="City General Hospital",
        address="123 Main Street, Downtown",
        phone="+1-555-0101",
        latitude=40.7128,
        longitude=-74.0060,
        open_hours="24 Hours",
        emergency_services=True,
        specialty_fields=("Emergency", "Cardiology", "Surgery"),
        rating=4.5,
        review_count=1247,
    ),
    HospitalRecord(
        hospital_id="2",
        name="Oak Valley Medical Center",
        address="456 Oak Avenue, Suburbia",
        phone="+1-555-0102",
        latitude=40.7580,
        longitude=-73.9855,
        open_hours="6:00 AM - 10:00 PM",
        emergency_services=True,
        specialty_fields=("Emergency", "Pediatrics", "Orthopedics"),
        rating=4.8,
        review_count=892,
    ),
    HospitalRecord(
        hospital_id="3",
        name="Riverside Clinic",
        address="789 River Road, Riverside",
        phone="+1-555-0103",
        latitude=40.7282,
        longitude=-74.0776,
        open_hours="8:00 AM - 6:00 PM",
        emergency_services=False,
        specialty_fields=("General Practice", "Dermatology"),
        rating=4.2,
        review_count=456,
    ),
    HospitalRecord(
        hospital_id="4",
        name="Metro Emergency Hospital",
        address="321 Metro Boulevard, City Center",
        phone="+1-555-0104",
        latitude=40.7505,
        longitude=-73.9934,
        open_hours="24 Hours",
        emergency_services=True,
        specialty_fields=("Emergency", "Trauma", "ICU"),
        rating=4.7,
        review_count=1834,
    ),
    HospitalRecord(
        hospital_id="5",
        name="Community Health Center",
        address="654 Community Lane, Westside",
        phone="+1-555-0105",
        latitude=40.7489,
        longitude=-74.0040,
        open_hours="7:00 AM - 9:00 PM",
        emergency_services=True,
        specialty_fields=("Emergency", "Family Medicine"),
        rating=4.3,
        review_count=623,
    ),
)


def get_fallback_hospitals(origin: Coordinates, radius_m: float) -> List[HospitalRecord]:
    """Static catalogue within radius_m of origin, nearest first. Never raises."""
    with_distance = attach_distances(FALLBACK_HOSPITALS, origin)
    return rank_by_distance(filter_within_radius(with_distance, radius_m))


def get_all_hospitals() -> List[HospitalRecord]:
    return list(FALLBACK_HOSPITALS)


def get_hospital_by_id(hospital_id: str) -> Optional[HospitalRecord]:
    for hospital in FALLBACK_HOSPITALS:
        if hospital.hospital_id == hospital_id:
            return hospital
    return None


def search_hospitals(query: str) -> List[HospitalRecord]:
    """Case-insensitive substring search over name and address."""
    needle = query.lower()
    return [h for h in FALLBACK_HOSPITALS
            if needle in h.name.lower() or needle in h.address.lower()]


def get_nearest_hospitals(hospital_id: str, origin: Coordinates, limit: int = 5) -> List[HospitalRecord]:
    """
    Alternatives to a selected hospital, as seen from the user's position.

    Ordered by distance, except that hospitals whose distances differ by
    less than SIMILAR_DISTANCE_KM are ordered by rating (highest first).

    Returns:
        Up to `limit` records, excluding hospital_id; empty if it is unknown
    """
    if get_hospital_by_id(hospital_id) is None:
        return []

    others = attach_distances(
        (h for h in FALLBACK_HOSPITALS if h.hospital_id != hospital_id), origin
    )
    return sorted(others, key=cmp_to_key(_compare_for_recommendation))[:limit]


def _compare_for_recommendation(a: HospitalRecord, b: HospitalRecord) -> float:
    distance_diff = a.distance_km - b.distance_km
    if abs(distance_diff) < SIMILAR_DISTANCE_KM:
        return (b.rating or 0) - (a.rating or 0)
    return distance_diff
