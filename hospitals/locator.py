"""
Client-side convenience path for nearby hospitals

Unlike the HTTP endpoint, this path never surfaces upstream failures: an
unconfigured or failing source degrades to the static catalogue, so screens
always receive a well-formed list.
"""

from typing import List, Optional, Protocol

from config import Settings
from data_sources.error_handling import APIError
from data_sources.utils import Coordinates
from logging_config import get_logger
from .fallback import get_fallback_hospitals
from .models import HospitalRecord
from .remote import HospitalApiClient

logger = get_logger(__name__)

DEFAULT_RADIUS_M = 5000


class HospitalSource(Protocol):
    def get_nearby_hospitals(self, origin: Coordinates, radius_m: int) -> List[HospitalRecord]:
        ...


class HospitalLocator:
    def __init__(self, source: Optional[HospitalSource] = None):
        self.source = source

    @classmethod
    def from_settings(cls, settings: Settings, access_token: Optional[str] = None) -> "HospitalLocator":
        """Use the remote API when both a base URL and a signed-in session exist."""
        if settings.hospital_api_base_url and access_token:
            return cls(HospitalApiClient(settings.hospital_api_base_url, access_token))
        return cls()

    def find_nearby(self, lat: float, lon: float, radius_m: int = DEFAULT_RADIUS_M) -> List[HospitalRecord]:
        origin = (lat, lon)
        if self.source is None:
            logger.debug("No hospital source configured, using fallback")
            return get_fallback_hospitals(origin, radius_m)

        try:
            return self.source.get_nearby_hospitals(origin, radius_m)
        except APIError as e:
            logger.warning(f"Hospital source unavailable, using fallback: {e}",
                           extra={"api_name": e.api_name, "status_code": e.status_code,
                                  "lat": lat, "lon": lon, "radius_m": radius_m})
        except Exception:
            logger.exception("Unexpected error from hospital source, using fallback")

        return get_fallback_hospitals(origin, radius_m)
