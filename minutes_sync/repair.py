from __future__ import annotations

import logging
import re
from typing import Any, Iterable, List, Sequence


logger = logging.getLogger(__name__)


_SINGLE_CHAR_RATIO = 0.7
_MIN_CORRUPT_LEN = 5
_MERGED_TOPIC_LEN = 40


def _as_str(value: Any) -> str:
    return str(value) if value else ""


def looks_char_split(topics: Sequence[Any]) -> bool:
    """True when a list looks like a string that was stored one char per entry."""

    if len(topics) <= _MIN_CORRUPT_LEN:
        return False
    singles = sum(1 for t in topics if isinstance(t, str) and len(t) == 1)
    return singles >= len(topics) * _SINGLE_CHAR_RATIO


def repair_topics(topics: Sequence[Any]) -> List[str]:
    """Reassemble a topic list that was fragmented into single characters.

    Best-effort: a blank entry followed by an uppercase then a lowercase
    character is read as a boundary between topics, any other blank as a
    space inside the current topic. Short capitalised words inside a phrase
    will be split wrongly.
    """

    if not topics:
        return []

    if not looks_char_split(topics):
        return [_as_str(t) for t in topics]

    logger.debug("repairing character-split topic list (%d entries)", len(topics))

    reconstructed: List[str] = []
    current = ""
    n = len(topics)
    for i in range(n):
        ch = _as_str(topics[i])
        if ch in (" ", "") and current:
            nxt = i + 1
            if nxt < n:
                if (
                    re.match(r"[A-Z]", _as_str(topics[nxt]))
                    and nxt + 1 < n
                    and re.match(r"[a-z]", _as_str(topics[nxt + 1]))
                ):
                    reconstructed.append(current)
                    current = ""
                else:
                    current += " "
            else:
                reconstructed.append(current)
                current = ""
        else:
            current += ch

    if current:
        reconstructed.append(current)

    if not reconstructed:
        return ["".join(_as_str(t) for t in topics)]

    result: List[str] = []
    for item in reconstructed:
        if len(item) > _MERGED_TOPIC_LEN and "," in item:
            result.extend(p.strip() for p in item.split(",") if p.strip())
        else:
            result.append(item)
    return result


def fix_topics(topics: Sequence[Any]) -> List[str]:
    """Normalise an already-extracted topic list.

    Joins runs of single characters, splits entries holding several lines,
    collapses whitespace and trims punctuation from both ends.
    """

    fixed: List[str] = []
    i = 0
    n = len(topics)
    while i < n:
        topic = topics[i]
        if not isinstance(topic, str):
            if topic:
                fixed.append(str(topic))
            i += 1
            continue
        if not topic:
            i += 1
            continue
        if len(topic) == 1 and i + 1 < n and isinstance(topics[i + 1], str) and len(topics[i + 1]) == 1:
            j = i + 1
            combined = topic
            while j < n and isinstance(topics[j], str) and len(topics[j]) == 1:
                combined += topics[j]
                j += 1
            fixed.append(combined)
            i = j
            continue
        fixed.append(topic)
        i += 1

    expanded: List[str] = []
    for topic in fixed:
        if "\n" in topic:
            expanded.extend(part.strip() for part in topic.split("\n") if part.strip())
        else:
            expanded.append(topic)

    out: List[str] = []
    for topic in expanded:
        topic = re.sub(r"\s+", " ", topic.strip())
        topic = re.sub(r"^\W+|\W+$", "", topic)
        if topic:
            out.append(topic)
    return out


def split_names(text: str) -> List[str]:
    return [p.strip() for p in (text or "").split(",") if p.strip()]


def dedupe_people(names: Iterable[str]) -> List[str]:
    """Case-insensitive dedupe; the first spelling seen is kept."""

    seen = {}
    for name in names:
        name = name.strip()
        if not name:
            continue
        key = name.lower()
        if key not in seen:
            seen[key] = name
    return list(seen.values())


def sort_people(names: Iterable[str]) -> List[str]:
    return sorted(names, key=lambda n: n.lower())


def join_people(names: Iterable[str]) -> str:
    return ", ".join(sort_people(dedupe_people(names)))
