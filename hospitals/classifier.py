"""
Rule-based specialty tagging for hospitals

Each rule is independent: a facility collects the labels of every rule whose
trigger substrings appear in its lower-cased name or serialized tags. This is
plain substring matching, so "bone" inside an unrelated word still counts.
"""

import json
from typing import Mapping, Optional, Tuple

from .models import GENERAL_SPECIALTY, normalize_specialties

UNKNOWN_HOSPITAL_NAME = "Unknown Hospital"

# (labels added together, trigger substrings)
SPECIALTY_RULES: Tuple[Tuple[Tuple[str, ...], Tuple[str, ...]], ...] = (
    (("Pediatrics",), ("children", "pediatric", "paediatric", "kids")),
    (("Emergency", "Surgery"), ("emergency", "trauma", "surgery", "surgical")),
    (("Cardiology",), ("cardiac", "cardiology", "heart")),
    (("Orthopedics",), ("orthopedic", "orthopaedic", "bone")),
    (("Maternity",), ("maternity", "obstetric", "women")),
    (("Mental Health",), ("mental", "psychiatric", "psychology")),
    (("Oncology",), ("cancer", "oncology", "tumor")),
    (("Ophthalmology",), ("eye", "ophthalmic", "vision")),
)


def serialize_tags(tags: Optional[Mapping[str, str]]) -> str:
    """Lower-cased JSON text of all tags, the haystack for tag matching."""
    return json.dumps(dict(tags or {}), ensure_ascii=False).lower()


def classify(tags: Optional[Mapping[str, str]], name: Optional[str]) -> Tuple[str, ...]:
    """
    Specialty labels for a facility, sorted, never empty.

    Args:
        tags: The element's OSM tags (may be empty)
        name: Resolved display name; blank falls back to "Unknown Hospital"

    Returns:
        Sorted tuple of labels, ("General",) when no rule matches
    """
    name_lower = (name or UNKNOWN_HOSPITAL_NAME).lower()
    tags_text = serialize_tags(tags)

    labels = set()
    for rule_labels, triggers in SPECIALTY_RULES:
        if any(t in name_lower or t in tags_text for t in triggers):
            labels.update(rule_labels)

    if not labels:
        return (GENERAL_SPECIALTY,)
    return normalize_specialties(labels)
