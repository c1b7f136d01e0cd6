"""
Client for a deployed GET /api/hospitals endpoint
"""

from typing import List, Optional

import requests

from data_sources.error_handling import BackendUnavailableError
from data_sources.utils import Coordinates
from logging_config import get_logger, log_api_call
from .models import HospitalRecord

logger = get_logger(__name__)


class HospitalApiClient:
    """Fetches ranked hospitals from a remote deployment of this service."""

    def __init__(self, base_url: str, access_token: str,
                 session: Optional[requests.Session] = None, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.session = session or requests.Session()
        self.timeout = timeout

    def get_nearby_hospitals(self, origin: Coordinates, radius_m: int) -> List[HospitalRecord]:
        """
        Raises:
            BackendUnavailableError: transport error, non-200 status or a
                malformed payload
        """
        endpoint = f"{self.base_url}/api/hospitals"
        log_api_call(logger, "hospital_api", endpoint, lat=origin[0], lon=origin[1], radius_m=radius_m)
        try:
            resp = self.session.get(
                endpoint,
                params={"lat": origin[0], "lng": origin[1], "radius": int(radius_m)},
                headers={
                    "Authorization": f"Bearer {self.access_token}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise BackendUnavailableError(f"Hospital API request failed: {e}") from e

        if resp.status_code != 200:
            raise BackendUnavailableError(
                f"Hospital API returned HTTP {resp.status_code}", status_code=resp.status_code
            )

        try:
            payload = resp.json()
            return [HospitalRecord.from_api_dict(item) for item in payload]
        except (ValueError, TypeError, KeyError) as e:
            raise BackendUnavailableError(f"Hospital API returned a malformed payload: {e}") from e
