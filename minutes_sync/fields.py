from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .models import (
    MeetingInfo,
    MeetingRecord,
    Tags,
    WorkingDoc,
    record_date,
    record_workgroup,
    record_workgroup_id,
)
from .repair import dedupe_people, sort_people


_WORKGROUP_RE = re.compile(r"(?m)^### ([^\n]+)")

_LABEL_FIELDS = (
    ("name", re.compile(r"- \*\*Type of meeting:\*\* ([^\n]+)")),
    ("purpose", re.compile(r"- \*\*Purpose:\*\* ([^\n]+)")),
    ("town_hall_number", re.compile(r"- \*\*Town Hall Number:\*\* ([^\n]+)")),
)

_LINK_FIELDS = (
    ("meeting_video_link", "Meeting video"),
    ("media_link", "Media link"),
    ("miro_board_link", "Miro board"),
    ("transcript_link", "Transcript"),
    ("other_media_link", "Other media"),
)

_INLINE_DATE_RE = re.compile(r"- \*\*Date:\*\* ([^\n]+)")
_PRESENT_RE = re.compile(r"- \*\*Present:\*\* ([^\n]+)")
_SLIDES_RE = re.compile(r'\{% embed url="([^"]+)" %\}')
_WORKING_DOCS_RE = re.compile(r"- \*\*Working Docs:\*\*([\s\S]*?)(?=\n\s*\n|\n####|\Z)")
# URLs and titles may contain one level of balanced parentheses.
_MD_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^()]*(?:\([^()]*\)[^()]*)*)\)")
_TAGS_RE = re.compile(r"#### Keywords/tags:([\s\S]*?)(?=\n### |\Z)")

_ROLE_TAG_RE = re.compile(r"\s*\[\*\*(facilitator|documenter|translator)\*\*\]", re.IGNORECASE)

_TAG_FIELDS = (
    ("topics_covered", "topics covered"),
    ("emotions", "emotions"),
    ("other", "other"),
    ("games_played", "games played"),
)

NO_SUMMARY_MARKER = "No Summary Given"
CANCELED_MARKER = "Meeting was cancelled"


def extract_workgroup(section: str) -> str:
    m = _WORKGROUP_RE.search(section)
    return m.group(1).strip() if m else ""


def resolve_workgroup_id(
    workgroup: str,
    canonical_records: Optional[Sequence[Dict[str, Any]]],
    *,
    date: Optional[str] = None,
) -> str:
    """Look up a workgroup id among canonical records by lowercase name.

    The first match wins when several records share a name. With `date`
    the record's meeting date must match as well.
    """

    if not workgroup or not canonical_records:
        return ""
    key = workgroup.lower()
    for record in canonical_records:
        if not isinstance(record, dict):
            continue
        wg = record_workgroup(record)
        if wg is None or wg.lower() != key:
            continue
        if date is not None and record_date(record) != date:
            continue
        wid = record_workgroup_id(record)
        if wid:
            return wid
        # First match wins even when it carries no id.
        return ""
    return ""


def parse_present_line(text: str) -> Tuple[Dict[str, str], List[str]]:
    """Split a `Present:` value into role holders and the remaining names.

    Returns ({"facilitator"|"documenter"|"translator": name}, names). Names
    carrying a role annotation are left out of `names`; the rest are
    deduplicated case-insensitively and sorted.
    """

    roles: Dict[str, str] = {}
    annotated: List[str] = []
    plain: List[str] = []

    for part in text.split(","):
        found = [m.group(1).lower() for m in _ROLE_TAG_RE.finditer(part)]
        name = _ROLE_TAG_RE.sub("", part).strip()
        if not name:
            continue
        if not found:
            plain.append(name)
            continue
        annotated.append(name.lower())
        for role in found:
            roles.setdefault(role, name)

    names = [n for n in dedupe_people(plain) if n.lower() not in annotated]
    return roles, sort_people(names)


def extract_working_docs(section: str) -> List[WorkingDoc]:
    m = _WORKING_DOCS_RE.search(section)
    if not m:
        return []
    return [
        WorkingDoc(title=link.group(1).strip(), link=link.group(2).strip())
        for link in _MD_LINK_RE.finditer(m.group(1))
    ]


def extract_tags(section: str) -> Tags:
    tags = Tags()
    m = _TAGS_RE.search(section)
    if not m:
        return tags
    body = m.group(1)
    for attr, label in _TAG_FIELDS:
        hit = re.search(r"- \*\*" + re.escape(label) + r":\*\* ([^\n]+)", body, re.IGNORECASE)
        if hit:
            setattr(tags, attr, hit.group(1).strip())
    return tags


def extract_meeting_info(section: str, date: Optional[str]) -> MeetingInfo:
    info = MeetingInfo(date=date or "")

    for attr, pattern in _LABEL_FIELDS:
        m = pattern.search(section)
        if m:
            setattr(info, attr, m.group(1).strip())

    # An inline date line overrides the nearest date heading.
    m = _INLINE_DATE_RE.search(section)
    if m:
        info.date = m.group(1).strip()

    m = _PRESENT_RE.search(section)
    if m:
        roles, names = parse_present_line(m.group(1))
        info.host = roles.get("facilitator", "")
        info.documenter = roles.get("documenter", "")
        info.translator = roles.get("translator", "")
        info.people_present = ", ".join(names)

    for attr, label in _LINK_FIELDS:
        hit = re.search(
            r"- \*\*" + re.escape(label) + r":\*\* \[Link\]\(([^)]+)\)", section, re.IGNORECASE
        )
        if hit:
            setattr(info, attr, hit.group(1).strip())

    m = _SLIDES_RE.search(section)
    if m:
        info.google_slides = m.group(1).strip()

    info.working_docs = extract_working_docs(section)
    return info


def extract_meeting_fields(
    section: str,
    date: Optional[str],
    canonical_records: Optional[Sequence[Dict[str, Any]]] = None,
) -> MeetingRecord:
    """Build a record from one workgroup block's metadata (no agenda items)."""

    record = MeetingRecord()
    record.workgroup = extract_workgroup(section)
    record.meeting_info = extract_meeting_info(section, date)

    if record.workgroup:
        record.workgroup_id = resolve_workgroup_id(record.workgroup, canonical_records)
        if not record.workgroup_id and _INLINE_DATE_RE.search(section):
            record.workgroup_id = resolve_workgroup_id(
                record.workgroup, canonical_records, date=record.meeting_info.date
            )

    record.tags = extract_tags(section)

    if NO_SUMMARY_MARKER in section:
        record.no_summary_given = True
        record.no_summary_given_text = NO_SUMMARY_MARKER
    if CANCELED_MARKER in section:
        record.canceled_summary = True
        record.canceled_summary_text = CANCELED_MARKER

    return record
