"""
Async OpenStreetMap Overpass API Client
Cancelling the awaiting task aborts the in-flight request
"""

import asyncio
from typing import List, Optional

import aiohttp

from config import Settings, DEFAULT_OVERPASS_URL
from logging_config import get_logger, log_api_call
from .error_handling import FacilityQueryFailed
from .overpass_client import (
    DEFAULT_TIMEOUT_S,
    USER_AGENT,
    QueryThrottle,
    RawFacilityElement,
    build_hospital_query,
    parse_elements,
)

logger = get_logger(__name__)


class AsyncOverpassClient:
    """aiohttp-based Overpass client sharing the sync client's query and error contract."""

    def __init__(self, base_url: str = DEFAULT_OVERPASS_URL, timeout: float = DEFAULT_TIMEOUT_S,
                 session: Optional[aiohttp.ClientSession] = None,
                 throttle: Optional[QueryThrottle] = None,
                 user_agent: str = USER_AGENT):
        self.base_url = base_url
        self.timeout = timeout
        self.throttle = throttle or QueryThrottle()
        self.user_agent = user_agent
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_settings(cls, settings: Settings) -> "AsyncOverpassClient":
        return cls(
            base_url=settings.overpass_url,
            timeout=settings.overpass_timeout,
            throttle=QueryThrottle(min_interval=settings.overpass_min_interval),
        )

    def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session for connection reuse."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers={"User-Agent": self.user_agent})
            self._owns_session = True
        return self._session

    async def fetch_nearby_facilities(self, lat: float, lon: float, radius_m: int) -> List[RawFacilityElement]:
        """
        Fetch hospitals within radius_m of (lat, lon).

        Raises:
            FacilityQueryFailed: on transport errors, timeouts, non-2xx
                responses or an undecodable body
            asyncio.CancelledError: when the caller cancels the search
        """
        query = build_hospital_query(lat, lon, radius_m)
        # Throttle sleeps are short; keep them off the event loop thread
        await asyncio.to_thread(self.throttle.wait)
        log_api_call(logger, "overpass", self.base_url, lat=lat, lon=lon, radius_m=radius_m)

        session = self._get_session()
        try:
            async with session.post(
                self.base_url,
                data={"data": query},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                if resp.status == 429:
                    self.throttle.penalize()
                    logger.warning("Overpass rate limited (429)")
                    raise FacilityQueryFailed("Overpass rate limit exceeded", status_code=429)
                if not 200 <= resp.status < 300:
                    body = await resp.text()
                    logger.warning(f"Overpass query failed with status {resp.status}")
                    raise FacilityQueryFailed(
                        f"Overpass returned HTTP {resp.status}: {body[:200]}",
                        status_code=resp.status,
                    )
                try:
                    data = await resp.json(content_type=None)
                except ValueError as e:
                    raise FacilityQueryFailed(
                        f"Overpass returned invalid JSON: {e}", status_code=resp.status
                    ) from e
        except asyncio.TimeoutError as e:
            logger.warning(f"Overpass request timed out after {self.timeout:.0f}s")
            raise FacilityQueryFailed("Overpass request timed out") from e
        except aiohttp.ClientError as e:
            logger.warning(f"Overpass network error: {e}")
            raise FacilityQueryFailed(f"Overpass request failed: {e}") from e

        self.throttle.relax()
        return parse_elements(data)

    async def close(self) -> None:
        """Close the session if this client created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
