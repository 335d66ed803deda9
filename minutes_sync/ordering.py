from __future__ import annotations

import copy
from typing import Any, Dict, List, Tuple

from .models import AGENDA_ITEM_KEYS, unwrap_summary


# Per-workgroup order of agenda item sections. Sections not listed are dropped.
ORDER_MAPPING: Dict[str, Tuple[str, ...]] = {
    "Gamers Guild": ("narrative", "discussionPoints", "decisionItems", "actionItems", "gameRules", "leaderboard"),
    "Writers Workgroup": ("narrative", "decisionItems", "actionItems", "learningPoints"),
    "Video Workgroup": ("discussionPoints", "decisionItems", "actionItems"),
    "Archives Workgroup": ("decisionItems", "actionItems", "learningPoints"),
    "Treasury Guild": ("discussionPoints", "decisionItems", "actionItems"),
    "Treasury Policy WG": ("discussionPoints", "decisionItems", "actionItems"),
    "Treasury Automation WG": ("discussionPoints", "decisionItems", "actionItems"),
    "Dework PBL": ("discussionPoints", "decisionItems", "actionItems"),
    "Knowledge Base Workgroup": ("discussionPoints", "decisionItems", "actionItems"),
    "Onboarding Workgroup": (
        "townHallUpdates",
        "discussionPoints",
        "decisionItems",
        "actionItems",
        "learningPoints",
        "issues",
    ),
    "Research and Development Guild": ("meetingTopics", "discussionPoints", "decisionItems", "actionItems"),
    "Governance Workgroup": ("narrative", "discussionPoints", "decisionItems", "actionItems"),
    "Education Workgroup": ("meetingTopics", "discussionPoints", "decisionItems", "actionItems"),
    "Marketing Guild": ("discussionPoints", "decisionItems", "actionItems"),
    "Ambassador Town Hall": ("townHallSummary",),
    "Deep Funding Town Hall": ("townHallSummary",),
    "One-off Event": ("narrative",),
    "AI Ethics WG": ("narrative", "decisionItems", "actionItems"),
    "African Guild": ("narrative", "decisionItems", "actionItems"),
    "Strategy Guild": ("narrative", "decisionItems", "actionItems"),
    "LatAm Guild": ("narrative", "decisionItems", "actionItems"),
    "WG Sync Call": ("meetingTopics", "discussion", "decisionItems", "actionItems", "issues"),
    "AI Sandbox/Think-tank": (
        "townHallUpdates",
        "discussionPoints",
        "decisionItems",
        "actionItems",
        "learningPoints",
        "issues",
    ),
    "GitHub PBL WG": ("discussionPoints", "decisionItems", "actionItems"),
}

DEFAULT_ORDER: Tuple[str, ...] = (
    "narrative",
    "meetingTopics",
    "discussionPoints",
    "decisionItems",
    "actionItems",
    "learningPoints",
    "issues",
    "townHallUpdates",
    "townHallSummary",
    "gameRules",
    "leaderboard",
    "discussion",
)

LEADING_KEYS: Tuple[str, ...] = ("agenda", "status", "peoplePresent", "facilitator", "documenter")

# Always present after ordering so both sides of a diff share a shape.
REQUIRED_LISTS: Tuple[str, ...] = (
    "discussionPoints",
    "actionItems",
    "decisionItems",
    "meetingTopics",
    "issues",
    "learningPoints",
)


class AgendaItemBuilder:
    """Ordered agenda item dict that only accepts declared agenda item keys."""

    def __init__(self) -> None:
        self._fields: Dict[str, Any] = {}

    def set(self, key: str, value: Any) -> "AgendaItemBuilder":
        if key not in AGENDA_ITEM_KEYS:
            raise KeyError(f"not an agenda item field: {key!r}")
        self._fields[key] = value
        return self

    def has(self, key: str) -> bool:
        return key in self._fields

    def build(self) -> Dict[str, Any]:
        return dict(self._fields)


def _non_empty(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, dict)):
        return len(value) > 0
    return bool(value)


def order_for(workgroup: Any) -> Tuple[str, ...]:
    if isinstance(workgroup, str) and workgroup in ORDER_MAPPING:
        return ORDER_MAPPING[workgroup]
    return DEFAULT_ORDER


def order_agenda_item(item: Dict[str, Any], order: Tuple[str, ...]) -> Dict[str, Any]:
    builder = AgendaItemBuilder()
    for key in LEADING_KEYS:
        if key in item and item[key] is not None:
            builder.set(key, item[key])
    for key in order:
        value = item.get(key)
        if _non_empty(value):
            builder.set(key, value)
    for key in REQUIRED_LISTS:
        if not builder.has(key):
            builder.set(key, [])
    return builder.build()


def apply_workgroup_order(record: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of `record` with agenda item sections in workgroup order.

    Records wrapped in a `summary` envelope are unwrapped first. The input is
    never modified.
    """

    ordered = copy.deepcopy(unwrap_summary(record))
    order = order_for(ordered.get("workgroup"))
    items = ordered.get("agendaItems")
    if isinstance(items, list) and items:
        ordered["agendaItems"] = [
            order_agenda_item(item, order) if isinstance(item, dict) else item for item in items
        ]
    return ordered


def _is_empty(value: Any) -> bool:
    if value is None or value == "":
        return True
    return isinstance(value, (list, dict)) and len(value) == 0


def remove_empty_values(obj: Any) -> Any:
    """Recursively drop None, empty strings, empty lists and empty dicts."""

    if isinstance(obj, list):
        cleaned: List[Any] = [remove_empty_values(v) for v in obj]
        return [v for v in cleaned if not _is_empty(v)]
    if isinstance(obj, dict):
        out: Dict[str, Any] = {}
        for key, value in obj.items():
            if _is_empty(value):
                continue
            value = remove_empty_values(value)
            if _is_empty(value):
                continue
            out[key] = value
        return out
    return obj
