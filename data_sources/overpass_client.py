"""
OpenStreetMap Overpass API Client
Queries Overpass for hospitals around a point
"""

import random
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import requests

from config import Settings, DEFAULT_OVERPASS_URL
from logging_config import get_logger, log_api_call
from .error_handling import FacilityQueryFailed

logger = get_logger(__name__)

USER_AGENT = "MediGuardia/1.0"
DEFAULT_TIMEOUT_S = 30.0
ELEMENT_KINDS = ("node", "way", "relation")


@dataclass(frozen=True)
class RawFacilityElement:
    """One tagged OSM feature as returned by Overpass."""
    kind: str
    tags: Dict[str, str] = field(default_factory=dict)
    lat: Optional[float] = None
    lon: Optional[float] = None
    center: Optional[Tuple[float, float]] = None
    osm_id: Optional[int] = None

    @classmethod
    def from_overpass(cls, elem: Dict[str, Any]) -> "RawFacilityElement":
        """Build from a decoded Overpass JSON element, tolerating missing fields."""
        tags = elem.get("tags") or {}
        if not isinstance(tags, dict):
            tags = {}
        center = None
        center_raw = elem.get("center")
        if isinstance(center_raw, dict):
            c_lat, c_lon = _as_float(center_raw.get("lat")), _as_float(center_raw.get("lon"))
            if c_lat is not None and c_lon is not None:
                center = (c_lat, c_lon)

        return cls(
            kind=str(elem.get("type", "")),
            tags={str(k): str(v) for k, v in tags.items() if v is not None},
            lat=_as_float(elem.get("lat")),
            lon=_as_float(elem.get("lon")),
            center=center,
            osm_id=elem.get("id"),
        )


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def build_hospital_query(lat: float, lon: float, radius_m: int) -> str:
    """Overpass QL selecting amenity=hospital nodes, ways and relations, with centroids."""
    selectors = "\n".join(
        f'  {kind}["amenity"="hospital"](around:{radius_m},{lat},{lon});'
        for kind in ELEMENT_KINDS
    )
    return f"[out:json][timeout:25];\n(\n{selectors}\n);\nout center;"


class QueryThrottle:
    """
    Minimum spacing between outbound Overpass queries.

    The public endpoint enforces fair-use limits, so the interval widens after
    an HTTP 429 and relaxes back toward the base after successful responses.
    """

    def __init__(self, min_interval: float = 0.5, max_multiplier: float = 6.0,
                 jitter: float = 0.25, clock=time.monotonic, sleep=time.sleep):
        self.base_interval = min_interval
        self.max_interval = min_interval * max_multiplier
        self.current_interval = min_interval
        self.jitter = jitter
        self._clock = clock
        self._sleep = sleep
        self._last_query_time: Optional[float] = None
        self._lock = threading.Lock()

    def wait(self) -> float:
        """Block until the next query may go out. Returns the time slept."""
        with self._lock:
            slept = 0.0
            now = self._clock()
            if self._last_query_time is not None:
                elapsed = now - self._last_query_time
                if elapsed < self.current_interval:
                    remaining = self.current_interval - elapsed
                    slept = remaining + random.uniform(0, self.jitter * self.current_interval)
                    logger.debug(f"Throttling Overpass query: waiting {slept:.2f}s "
                                 f"(interval={self.current_interval:.2f}s)")
                    self._sleep(slept)
            self._last_query_time = self._clock()
            return slept

    def penalize(self) -> None:
        """Widen the interval after the upstream rate-limited us."""
        with self._lock:
            new_interval = min(self.current_interval * 1.5, self.max_interval)
            if new_interval != self.current_interval:
                logger.debug(f"Increasing Overpass min query interval to {new_interval:.2f}s due to 429")
            self.current_interval = new_interval

    def relax(self) -> None:
        """Ease the interval back toward the base after a success."""
        with self._lock:
            if self.current_interval > self.base_interval:
                self.current_interval = max(self.base_interval, self.current_interval * 0.85)


class OverpassClient:
    """Synchronous Overpass client. One POST per search, no retries."""

    def __init__(self, base_url: str = DEFAULT_OVERPASS_URL, timeout: float = DEFAULT_TIMEOUT_S,
                 session: Optional[requests.Session] = None,
                 throttle: Optional[QueryThrottle] = None,
                 user_agent: str = USER_AGENT):
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.throttle = throttle or QueryThrottle()
        self.headers = {
            "User-Agent": user_agent,
            "Content-Type": "application/x-www-form-urlencoded",
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "OverpassClient":
        return cls(
            base_url=settings.overpass_url,
            timeout=settings.overpass_timeout,
            throttle=QueryThrottle(min_interval=settings.overpass_min_interval),
        )

    def fetch_nearby_facilities(self, lat: float, lon: float, radius_m: int) -> List[RawFacilityElement]:
        """
        Fetch hospitals within radius_m of (lat, lon).

        Raises:
            FacilityQueryFailed: on transport errors, timeouts, non-2xx
                responses or an undecodable body
        """
        query = build_hospital_query(lat, lon, radius_m)
        self.throttle.wait()
        log_api_call(logger, "overpass", self.base_url, lat=lat, lon=lon, radius_m=radius_m)

        try:
            resp = self.session.post(
                self.base_url,
                data={"data": query},
                headers=self.headers,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.warning(f"Overpass request timed out after {self.timeout:.0f}s")
            raise FacilityQueryFailed(f"Overpass request timed out: {e}") from e
        except requests.exceptions.RequestException as e:
            logger.warning(f"Overpass network error: {e}")
            raise FacilityQueryFailed(f"Overpass request failed: {e}") from e

        return _elements_from_response(resp, self.throttle)

    def close(self) -> None:
        self.session.close()


def _elements_from_response(resp: requests.Response, throttle: QueryThrottle) -> List[RawFacilityElement]:
    if resp.status_code == 429:
        throttle.penalize()
        logger.warning("Overpass rate limited (429)")
        raise FacilityQueryFailed("Overpass rate limit exceeded", status_code=429)
    if not 200 <= resp.status_code < 300:
        logger.warning(f"Overpass query failed with status {resp.status_code}")
        raise FacilityQueryFailed(
            f"Overpass returned HTTP {resp.status_code}: {resp.text[:200]}",
            status_code=resp.status_code,
        )

    try:
        data = resp.json()
    except ValueError as e:
        raise FacilityQueryFailed(f"Overpass returned invalid JSON: {e}", status_code=resp.status_code) from e

    throttle.relax()
    return parse_elements(data)


def parse_elements(data: Any) -> List[RawFacilityElement]:
    """Turn a decoded Overpass payload into elements; a missing `elements` key means none."""
    if not isinstance(data, dict):
        return []
    elements = data.get("elements")
    if elements is None:
        elements = []
    elif not isinstance(elements, list):
        raise FacilityQueryFailed(
            f"Overpass returned malformed elements of type {type(elements).__name__}"
        )
    parsed = [RawFacilityElement.from_overpass(e) for e in elements if isinstance(e, dict)]
    logger.debug(f"Overpass query returned {len(parsed)} elements")
    return parsed
