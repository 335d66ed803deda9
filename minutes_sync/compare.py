from __future__ import annotations

import copy
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .models import unwrap_summary
from .text import collapse_ws


@dataclass(frozen=True)
class Difference:
    field: str
    candidate_value: Any
    canonical_value: Any

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "candidateValue": self.candidate_value,
            "canonicalValue": self.canonical_value,
        }


# A tag followed by its value, up to the next bracket or end of text.
_VALUE_TAG_RE = re.compile(r"\[\*\*(?:assignee|status|due)\*\*\]\s*[^\[\]]*")
_BARE_TAG_RE = re.compile(r"\[\*\*(?:action|effect|rationale|opposing)\*\*\]")
_Q_YEAR_RE = re.compile(r"\b(q[1-4])\s+2025\b", re.IGNORECASE)
_QUARTER_YEAR_RE = re.compile(r"\bquarter\s+([1-4])\s+2025\b", re.IGNORECASE)

# Element-wise (by index) comparison applies to these lists.
_ELEMENTWISE_RE = re.compile(r"agendaItems\[\d+\]\.(?:discussionPoints|meetingTopics)$")
_CHAR_PATH_RE = re.compile(r"\.\d+\.\d+$")


def _normalize_once(text: str) -> str:
    text = collapse_ws(text).lower()
    text = _VALUE_TAG_RE.sub("", text)
    text = _BARE_TAG_RE.sub("", text)
    text = _Q_YEAR_RE.sub(r"\1", text)
    text = _QUARTER_YEAR_RE.sub(r"quarter \1", text)
    return collapse_ws(text)


def normalize_string(value: Any) -> str:
    """Comparison form of a string: lowercased, single-spaced, without
    metadata tags and with "Q1 2025" / "Quarter 1 2025" reduced to the quarter.

    Repeated until stable, so stripping a tag can never expose another one.
    """

    if not isinstance(value, str):
        return str(value)
    text = _normalize_once(value)
    while True:
        again = _normalize_once(text)
        if again == text:
            return text
        text = again


def _clean_action_text(text: str) -> str:
    text = re.sub(r"\[\*\*(?:assignee|status|due)\*\*\].*?(?=\[|$)", "", text)
    text = text.replace("[**action**]", "")
    return _clean_decision_text(text)


def _clean_decision_text(text: str) -> str:
    text = re.sub(r"Quarter\s+(\d)\s+2025", r"Quarter \1", text, flags=re.IGNORECASE)
    text = re.sub(r"Q(\d)\s+2025", r"Q\1", text, flags=re.IGNORECASE)
    return collapse_ws(text)


def _sort_ci(names: List[Any]) -> List[Any]:
    return sorted(names, key=lambda n: str(n).lower())


def preprocess_record(record: Any) -> Any:
    """Copy of `record` with people sorted and free text cleaned for diffing."""

    if not isinstance(record, dict):
        return record
    data = copy.deepcopy(record)

    info = data.get("meetingInfo")
    if isinstance(info, dict):
        people = info.get("peoplePresent")
        if isinstance(people, str) and people:
            info["peoplePresent"] = ", ".join(_sort_ci([p.strip() for p in people.split(",") if p.strip()]))
        elif isinstance(people, list):
            info["peoplePresent"] = _sort_ci(people)

    items = data.get("agendaItems")
    if not isinstance(items, list):
        return data
    for item in items:
        if not isinstance(item, dict):
            continue
        if isinstance(item.get("peoplePresent"), list):
            item["peoplePresent"] = _sort_ci(item["peoplePresent"])
        if isinstance(item.get("discussionPoints"), list):
            item["discussionPoints"] = [
                collapse_ws(p) if isinstance(p, str) else str(p) for p in item["discussionPoints"]
            ]
        for action in item.get("actionItems") or []:
            if isinstance(action, dict) and isinstance(action.get("text"), str) and action["text"]:
                action["text"] = _clean_action_text(action["text"])
        for decision in item.get("decisionItems") or []:
            if isinstance(decision, dict) and isinstance(decision.get("decision"), str) and decision["decision"]:
                decision["decision"] = _clean_decision_text(decision["decision"])
    return data


def _kind(value: Any) -> str:
    # Runtime type classes as they appear in JSON.
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return "object"


def _compare_lists(candidate: List[Any], canonical: List[Any], path: str, out: List[Difference]) -> None:
    if len(candidate) != len(canonical) and "discussionPoints" not in path:
        out.append(Difference(f"{path}.length", len(candidate), len(canonical)))

    if _ELEMENTWISE_RE.search(path):
        for i in range(max(len(candidate), len(canonical))):
            c = candidate[i] if i < len(candidate) else None
            k = canonical[i] if i < len(canonical) else None
            if i >= len(candidate) or i >= len(canonical) or normalize_string(c) != normalize_string(k):
                out.append(Difference(f"{path}[{i}]", c, k))
        return

    for i in range(min(len(candidate), len(canonical))):
        _compare_values(candidate[i], canonical[i], f"{path}[{i}]", out)


def _compare_dicts(candidate: Dict[str, Any], canonical: Dict[str, Any], path: str, out: List[Difference]) -> None:
    keys = list(candidate)
    keys.extend(k for k in canonical if k not in candidate)
    for key in keys:
        child = f"{path}.{key}" if path else key
        if ("discussionPoints" in child or "meetingTopics" in child) and _CHAR_PATH_RE.search(child):
            continue
        _compare_values(candidate.get(key), canonical.get(key), child, out)


def _compare_values(candidate: Any, canonical: Any, path: str, out: List[Difference]) -> None:
    if _kind(candidate) != _kind(canonical):
        out.append(Difference(path, candidate, canonical))
        return
    if isinstance(candidate, list) != isinstance(canonical, list):
        out.append(Difference(path, candidate, canonical))
        return
    if isinstance(candidate, list):
        _compare_lists(candidate, canonical, path, out)
    elif isinstance(candidate, dict):
        if isinstance(canonical, dict):
            _compare_dicts(candidate, canonical, path, out)
        else:
            out.append(Difference(path, candidate, canonical))
    elif isinstance(candidate, str):
        if normalize_string(candidate) != normalize_string(canonical):
            out.append(Difference(path, candidate, canonical))
    elif candidate != canonical:
        out.append(Difference(path, candidate, canonical))


def compare_summaries(candidate: Dict[str, Any], canonical: Optional[Dict[str, Any]]) -> List[Difference]:
    """Field-level differences between a parsed record and a canonical one.

    Both sides may be wrapped in a `summary` envelope. A value missing on one
    side compares as None and is reported, never raised.
    """

    left = preprocess_record(unwrap_summary(candidate or {}))
    right = preprocess_record(unwrap_summary(canonical or {}))
    out: List[Difference] = []
    _compare_dicts(left, right, "", out)
    return out


compare = compare_summaries
