from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Set

from .models import unwrap_summary


logger = logging.getLogger(__name__)


def extract_unique_names(people: str) -> List[str]:
    """Distinct, trimmed names from a comma-separated list, sorted."""

    if not people:
        return []
    return sorted({name.strip() for name in people.split(",") if name.strip()})


def normalize_name(name: str) -> str:
    return " ".join(part[:1].upper() + part[1:] for part in name.lower().split(" "))


def normalize_names(names: Iterable[str]) -> List[str]:
    return [normalize_name(n) for n in names]


def extract_meeting_participants(records: Iterable[Dict[str, Any]]) -> List[str]:
    """Roster of everyone listed as present across canonical records.

    Names are title-cased per word and the result is deduplicated after
    normalization, then sorted.
    """

    seen: Set[str] = set()
    for record in records:
        if not isinstance(record, dict):
            continue
        info = unwrap_summary(record).get("meetingInfo")
        people = info.get("peoplePresent") if isinstance(info, dict) else None
        if isinstance(people, list):
            people = ", ".join(str(p) for p in people)
        if not isinstance(people, str) or not people:
            continue
        seen.update(extract_unique_names(people))

    roster = sorted(set(normalize_names(seen)))
    logger.info("found %d unique participant(s)", len(roster))
    return roster
