"""
Normalization of raw Overpass elements into hospital records
Elements without a name or usable coordinates are skipped, not raised
"""

from typing import Iterable, List, Optional, Tuple

from data_sources.overpass_client import RawFacilityElement
from data_sources.utils import Coordinates, compute_distance_km, validate_coordinates
from logging_config import get_logger
from .classifier import classify
from .models import HospitalRecord

logger = get_logger(__name__)

NAME_TAG_PRIORITY = ("name", "name:en", "name:local", "official_name")
ADDRESS_TAG_ORDER = ("addr:street", "addr:housenumber", "addr:city", "addr:postcode", "addr:country")
ADDRESS_NOT_AVAILABLE = "Address not available"


def extract_name(element: RawFacilityElement) -> Optional[str]:
    for key in NAME_TAG_PRIORITY:
        value = (element.tags.get(key) or "").strip()
        if value:
            return value
    return None


def extract_coordinates(element: RawFacilityElement) -> Optional[Coordinates]:
    """Nodes carry their own position; ways and relations use the query's center."""
    if element.kind == "node" and element.lat is not None and element.lon is not None:
        coords = (element.lat, element.lon)
    elif element.center is not None:
        coords = element.center
    else:
        return None

    if not validate_coordinates(*coords):
        return None
    return coords


def extract_address(element: RawFacilityElement) -> str:
    parts = [element.tags[key].strip() for key in ADDRESS_TAG_ORDER
             if (element.tags.get(key) or "").strip()]
    return ", ".join(parts) if parts else ADDRESS_NOT_AVAILABLE


def normalize_element(element: RawFacilityElement, origin: Coordinates) -> Optional[HospitalRecord]:
    """One element to at most one record, with distance from origin attached."""
    name = extract_name(element)
    if name is None:
        logger.debug(f"Skipping unnamed {element.kind} {element.osm_id}")
        return None

    coords = extract_coordinates(element)
    if coords is None:
        logger.debug(f"Skipping {element.kind} {element.osm_id} ({name}): no usable coordinates")
        return None

    return HospitalRecord(
        name=name,
        address=extract_address(element),
        latitude=coords[0],
        longitude=coords[1],
        distance_km=compute_distance_km(origin, coords),
        specialty_fields=classify(element.tags, name),
    )


def normalize_elements(elements: Iterable[RawFacilityElement],
                       origin: Coordinates) -> Tuple[List[HospitalRecord], int]:
    """
    Normalize a batch in discovery order.

    Returns:
        (records, skipped_count)
    """
    records = []
    skipped = 0
    for element in elements:
        record = normalize_element(element, origin)
        if record is None:
            skipped += 1
            continue
        records.append(record)
    return records, skipped
