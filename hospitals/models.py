"""
Canonical hospital record returned to callers
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, Optional, Tuple

from data_sources.utils import build_maps_url

GENERAL_SPECIALTY = "General"
EMERGENCY_SPECIALTY = "Emergency"


def normalize_specialties(specialties: Iterable[str]) -> Tuple[str, ...]:
    """Deduplicate and sort; never empty."""
    cleaned = sorted({s for s in specialties if s})
    return tuple(cleaned) if cleaned else (GENERAL_SPECIALTY,)


@dataclass(frozen=True)
class HospitalRecord:
    name: str
    address: str
    latitude: float
    longitude: float
    distance_km: float = 0.0
    specialty_fields: Tuple[str, ...] = (GENERAL_SPECIALTY,)
    hospital_id: Optional[str] = None
    phone: Optional[str] = None
    open_hours: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    emergency_services: Optional[bool] = None
    maps_url: str = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "specialty_fields", normalize_specialties(self.specialty_fields))
        if self.hospital_id is None:
            object.__setattr__(self, "hospital_id", f"{self.latitude}-{self.longitude}")
        if self.emergency_services is None:
            object.__setattr__(self, "emergency_services", EMERGENCY_SPECIALTY in self.specialty_fields)
        object.__setattr__(self, "maps_url", build_maps_url(self.latitude, self.longitude))

    @property
    def coordinates(self) -> Tuple[float, float]:
        return self.latitude, self.longitude

    def with_distance(self, distance_km: float) -> "HospitalRecord":
        """Copy of this record at a new distance; records are never mutated."""
        return replace(self, distance_km=distance_km)

    def to_api_dict(self) -> Dict[str, Any]:
        """Wire shape of GET /api/hospitals."""
        return {
            "name": self.name,
            "distance_km": self.distance_km,
            "address": self.address,
            "lat": self.latitude,
            "lng": self.longitude,
            "fields": list(self.specialty_fields),
            "google_maps_url": self.maps_url,
        }

    @classmethod
    def from_api_dict(cls, payload: Dict[str, Any]) -> "HospitalRecord":
        """Inverse of to_api_dict, used when a remote backend serves the list."""
        return cls(
            name=str(payload["name"]),
            address=str(payload.get("address") or ""),
            latitude=float(payload["lat"]),
            longitude=float(payload["lng"]),
            distance_km=float(payload.get("distance_km") or 0.0),
            specialty_fields=tuple(payload.get("fields") or ()),
        )
