"""
Hospital discovery pipeline: Overpass fetch, normalization, ranking

This is the server path. Upstream failures propagate as FacilityQueryFailed;
degrading to the static catalogue is the locator's decision, not this one's.
"""

import time
from typing import List, Optional

from data_sources.async_overpass_client import AsyncOverpassClient
from data_sources.overpass_client import OverpassClient, RawFacilityElement
from data_sources.utils import Coordinates
from logging_config import get_logger, log_performance
from .models import HospitalRecord
from .normalizer import normalize_elements
from .ranking import rank_by_distance

logger = get_logger(__name__)


class HospitalService:
    def __init__(self, client: Optional[OverpassClient] = None,
                 async_client: Optional[AsyncOverpassClient] = None):
        self.client = client or OverpassClient()
        self.async_client = async_client

    def get_nearby_hospitals(self, origin: Coordinates, radius_m: int) -> List[HospitalRecord]:
        """
        Hospitals within radius_m of origin, nearest first.

        Raises:
            FacilityQueryFailed: the Overpass query could not be completed
        """
        start_time = time.time()
        elements = self.client.fetch_nearby_facilities(origin[0], origin[1], radius_m)
        hospitals = self._build_results(elements, origin)
        log_performance(logger, "get_nearby_hospitals", time.time() - start_time,
                        lat=origin[0], lon=origin[1], radius_m=radius_m,
                        result_count=len(hospitals))
        return hospitals

    async def get_nearby_hospitals_async(self, origin: Coordinates, radius_m: int) -> List[HospitalRecord]:
        """
        Async variant; cancelling the awaiting task cancels the upstream request.

        Without an injected async client, each call opens its own client and
        closes it before returning, so no session outlives the running loop.
        """
        start_time = time.time()
        if self.async_client is not None:
            elements = await self.async_client.fetch_nearby_facilities(origin[0], origin[1], radius_m)
        else:
            async_client = AsyncOverpassClient(
                base_url=self.client.base_url,
                timeout=self.client.timeout,
                throttle=self.client.throttle,
            )
            try:
                elements = await async_client.fetch_nearby_facilities(origin[0], origin[1], radius_m)
            finally:
                await async_client.close()
        hospitals = self._build_results(elements, origin)
        log_performance(logger, "get_nearby_hospitals_async", time.time() - start_time,
                        lat=origin[0], lon=origin[1], radius_m=radius_m,
                        result_count=len(hospitals))
        return hospitals

    def _build_results(self, elements: List[RawFacilityElement], origin: Coordinates) -> List[HospitalRecord]:
        records, skipped = normalize_elements(elements, origin)
        if skipped:
            logger.debug(f"Skipped {skipped} of {len(elements)} elements without name or coordinates",
                         extra={"skipped_count": skipped})
        return rank_by_distance(records)
