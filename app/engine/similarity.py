"""
Title-based similarity groups used for diversity filtering.

Items whose titles share a group (two numbered battalions, two train
stations, ...) are likely near-duplicates from a voter's point of view. The
rules only fire on specific keywords, so a missed group is far more common
than a wrong one.
"""
import re
from typing import Any, Dict, Iterable, Optional

MILITARY_UNITS = (
    "Battalion|Division|Regiment|Infantry|Brigade|Corps|Army|Squadron|Company|Platoon"
)
MILITARY_PATTERN = re.compile(rf"\d+(?:st|nd|rd|th)?\s+({MILITARY_UNITS})\b", re.I)

TRANSPORT_PATTERN = re.compile(
    r"\b(Railway Station|Train Station|Metro Station|Bus Station|Rail Station"
    r"|Subway Station|Station|Airport|Terminal|Depot)\b",
    re.I,
)

BUILDING_PATTERN = re.compile(
    r"\b(Building|Tower|Center|Centre|Plaza|Complex|Hall|House|Mansion|Palace"
    r"|Castle|Monument|Memorial)\b",
    re.I,
)

GEO_SUFFIX_PATTERN = re.compile(
    r",\s*([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)$|\(([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)\)$"
)

# Locations with many items in the catalogue
COMMON_LOCATIONS = (
    "New York",
    "New York City",
    "NYC",
    "London",
    "Paris",
    "Tokyo",
    "Berlin",
    "Moscow",
    "Sydney",
    "Melbourne",
    "Toronto",
    "Vancouver",
)


def _military_group(title: str) -> Optional[str]:
    match = MILITARY_PATTERN.search(title)
    if match:
        return f"military_{match.group(1).lower()}"
    return None


def _transportation_group(title: str) -> Optional[str]:
    match = TRANSPORT_PATTERN.search(title)
    if not match:
        return None
    keyword = match.group(1).lower()
    if "station" in keyword:
        return "transportation_station"
    if "airport" in keyword:
        return "transportation_airport"
    return "transportation_terminal"


def _building_group(title: str) -> Optional[str]:
    match = BUILDING_PATTERN.search(title)
    if match:
        return f"building_{match.group(1).lower()}"
    return None


def _geographic_group(title: str) -> Optional[str]:
    match = GEO_SUFFIX_PATTERN.search(title)
    if not match:
        return None
    location = (match.group(1) or match.group(2) or "").strip()
    location_lower = location.lower()
    if any(loc.lower() in location_lower for loc in COMMON_LOCATIONS):
        return "geographic_" + re.sub(r"\s+", "_", location_lower)
    return None


# Evaluated in order, first match wins
RULES = (_military_group, _transportation_group, _building_group, _geographic_group)


def classify_similarity(title: Optional[str]) -> Optional[str]:
    """
    Return the similarity group for a title, or None if no rule matches.

    >>> classify_similarity("5th Battalion")
    'military_battalion'
    >>> classify_similarity("Pizza") is None
    True
    """
    if not title or not isinstance(title, str):
        return None

    normalized = title.strip()
    for rule in RULES:
        group = rule(normalized)
        if group:
            return group
    return None


def similarity_groups_for_items(items: Iterable[Any]) -> Dict[str, Optional[str]]:
    """Map item id -> similarity group for every item that has a title."""
    groups: Dict[str, Optional[str]] = {}
    for item in items:
        item_id = getattr(item, "id", None)
        title = getattr(item, "title", None)
        if item_id is not None and title:
            groups[str(item_id)] = classify_similarity(title)
    return groups
