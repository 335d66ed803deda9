from __future__ import annotations

import re
from typing import Callable, List, Optional, Tuple

from .models import DEFAULT_AGENDA_STATUS, ActionItem, AgendaItem, DecisionItem
from .repair import dedupe_people, fix_topics, repair_topics, sort_people


# "#### Agenda item 1 - Budget review - [carry over]"
_AGENDA_MARKER_RE = re.compile(
    r"#### Agenda item (?P<num>\d+) - (?P<title>[^-\n]+) - \[(?P<status>[^\]]+)\]"
    r"(?P<body>[\s\S]*?)(?=\n#### Agenda item|\n### |\Z)"
)

# First heading that can open the implicit (unmarked) agenda item.
_CONTENT_START_RE = re.compile(
    r"#### (?:Agenda Items:|Discussion Points|In this meeting we discussed|Action Items|"
    r"Decision Items|Town Hall Updates|Town Hall Summary|Narrative|Game Rules|Discussion|"
    r"Learning Points|Meeting Topics|Issues|Leaderboard)",
    re.IGNORECASE,
)

_BULLET_RE = re.compile(r"(?m)^- ([^\n]+)")


def _section(content: str, headings: str, *, flags: int = 0) -> Optional[str]:
    """Body of a `#### Heading:` subsection, up to the next `#### ` heading."""

    m = re.search(r"#### (?:" + headings + r"):([\s\S]*?)(?=\n#### |\Z)", content, flags)
    return m.group(1) if m else None


def _bullets(text: str) -> List[str]:
    return [b.strip() for b in _BULLET_RE.findall(text)]


def has_agenda_content(item: AgendaItem) -> bool:
    return bool(
        item.discussion_points
        or item.action_items
        or item.decision_items
        or item.town_hall_updates.strip()
        or item.town_hall_summary.strip()
        or item.narrative.strip()
        or item.game_rules.strip()
        or item.discussion.strip()
        or item.learning_points
        or item.meeting_topics
        or item.issues
        or item.leaderboard
        or item.people_present
        or item.facilitator.strip()
        or item.documenter.strip()
    )


# --- meeting topics -------------------------------------------------------

TopicStrategy = Callable[[str], Optional[List[str]]]


def _strip_dash(line: str) -> str:
    return re.sub(r"^\s*-\s*", "", line, count=1).strip()


def _scan_lines(text: str) -> List[str]:
    """Dash-prefixed lines if there are any, otherwise every non-blank line."""

    bullets = re.findall(r"(?m)^[ \t]*-[ \t]+[^\n]+$", text)
    if bullets:
        return [_strip_dash(b) for b in bullets]
    lines = [ln.strip() for ln in text.split("\n") if ln.strip()]
    if any(ln.startswith("-") for ln in lines):
        return [ln[1:].strip() for ln in lines if ln.startswith("-")]
    return lines


def topics_from_heading_bullets(content: str) -> Optional[List[str]]:
    """`#### Agenda Items:` immediately followed by `- ` lines."""

    m = re.search(r"####\s+Agenda\s+Items:\s*\n((?:- [^\n]+\n?)+)", content)
    if not m:
        return None
    lines = [ln.strip() for ln in m.group(1).split("\n")]
    topics = [ln[1:].strip() for ln in lines if ln.startswith("-")]
    return topics or None


def topics_from_tolerant_heading(content: str) -> Optional[List[str]]:
    """Any-case heading with loose spacing; bullets up to the next `####`."""

    m = re.search(r"####\s+Agenda\s+Items\s*:", content, re.IGNORECASE)
    if not m:
        return None
    after = content[m.end():]
    nxt = after.find("####")
    items = (after[:nxt] if nxt != -1 else after).strip()
    topics = [_strip_dash(b) for b in re.findall(r"(?m)^-\s+.+$", items)]
    return topics or None


def topics_from_section_scan(content: str) -> Optional[List[str]]:
    """Line scan of the Agenda Items (or Meeting Topics) section body."""

    m = re.search(r"####\s*Agenda\s+Items\s*:([^#]*?)(?=\n\s*####|\Z)", content, re.IGNORECASE)
    if m is None:
        m = re.search(
            r"####\s*(?:Meeting\s+Topics|In\s+this\s+meeting\s+we\s+discussed|Agenda\s+Items)\s*:"
            r"([^#]*?)(?=\n\s*####|\Z)",
            content,
            re.IGNORECASE,
        )
    if m is None:
        return None
    topics = _scan_lines(m.group(1).strip())
    return topics or None


def topics_from_line_search(content: str) -> Optional[List[str]]:
    """Find the literal heading line and collect dash lines until the next heading."""

    lines = content.split("\n")
    try:
        start = next(i for i, ln in enumerate(lines) if ln.strip() == "#### Agenda Items:")
    except StopIteration:
        return None

    topics: List[str] = []
    for ln in lines[start + 1:]:
        ln = ln.strip()
        if ln.startswith("####"):
            break
        if ln.startswith("-"):
            topics.append(ln[1:].strip())
    return topics or None


# Tried in order; the first strategy returning a non-empty list wins.
TOPIC_STRATEGIES: Tuple[Tuple[str, TopicStrategy], ...] = (
    ("heading_bullets", topics_from_heading_bullets),
    ("tolerant_heading_bullets", topics_from_tolerant_heading),
    ("section_line_scan", topics_from_section_scan),
    ("direct_line_search", topics_from_line_search),
)


def extract_meeting_topics(content: str) -> List[str]:
    for _name, strategy in TOPIC_STRATEGIES:
        topics = strategy(content)
        if topics:
            return fix_topics(repair_topics(topics))
    return []


# --- action / decision items ----------------------------------------------

_ACTION_LINE_RE = re.compile(r"(?m)^- \[\*\*action\*\*\].*$")
_INLINE_TAGS = ("[**assignee**]", "[**due**]", "[**status**]")


def _inline_value(line: str, tag: str, others: Tuple[str, ...]) -> str:
    stop = "|".join(r"\s+\[\*\*" + o + r"\*\*\]" for o in others)
    m = re.search(r"\[\*\*" + tag + r"\*\*\] ([^\[\]]*?)(?=" + stop + r"|$)", line)
    return m.group(1).strip() if m else ""


def _parse_action_block(block: str) -> Optional[ActionItem]:
    line_match = _ACTION_LINE_RE.search(block)
    if not line_match:
        return None
    line = line_match.group(0)

    if any(tag in line for tag in _INLINE_TAGS):
        m = re.match(
            r"^- \[\*\*action\*\*\] (.*?)"
            r"(?=\s+\[\*\*assignee\*\*\]|\s+\[\*\*due\*\*\]|\s+\[\*\*status\*\*\]|$)",
            line,
        )
        text = m.group(1).strip() if m else ""
        assignee = _inline_value(line, "assignee", ("due", "status"))
        due = _inline_value(line, "due", ("assignee", "status"))
        status = _inline_value(line, "status", ("assignee", "due"))
    else:
        m = re.search(r"(?m)^- \[\*\*action\*\*\] ([^\n]+)", block)
        text = m.group(1).strip() if m else ""
        if re.search(r"\n\s+\[\*\*(?:assignee|status|due)\*\*\]", block):
            # Metadata on a following, indented line without a dash.
            def meta(tag: str) -> str:
                hit = re.search(r"\[\*\*" + tag + r"\*\*\]\s+([^\[\]]+?)(?=\s+\[\*\*|\s*$)", block)
                return hit.group(1).strip() if hit else ""
        else:
            def meta(tag: str) -> str:
                hit = re.search(r"\n\s+- \[\*\*" + tag + r"\*\*\] ([^\n]+)", block)
                return hit.group(1).strip() if hit else ""

        assignee, due, status = meta("assignee"), meta("due"), meta("status")

    if not text:
        return None
    return ActionItem(text=text, assignee=assignee, status=status, due_date=due or None)


def parse_action_items(section: str) -> List[ActionItem]:
    items: List[ActionItem] = []
    for block in re.split(r"(?=\n?- \[\*\*action\*\*\])", section):
        if not block.strip():
            continue
        item = _parse_action_block(block)
        if item is not None:
            items.append(item)
    return items


def parse_decision_items(section: str) -> List[DecisionItem]:
    blocks: List[str] = []
    current = ""
    for line in section.strip().split("\n"):
        # A bullet that opens with a metadata tag continues the previous decision.
        if re.match(r"^\s*-\s+(?!\[\*\*)", line):
            if current:
                blocks.append(current)
            current = line
        elif current:
            current += "\n" + line
    if current:
        blocks.append(current)

    def meta(block: str, tag: str) -> str:
        m = re.search(r"\s*-\s+\[\*\*" + tag + r"\*\*\]\s+([^\n]+)", block)
        return m.group(1).strip() if m else ""

    items: List[DecisionItem] = []
    for block in blocks:
        m = re.search(r"(?m)^\s*-\s+([^\n]+)", block)
        if not m:
            continue
        items.append(
            DecisionItem(
                decision=m.group(1).strip(),
                rationale=meta(block, "rationale"),
                opposing=meta(block, "opposing"),
                effect=meta(block, "effect"),
            )
        )
    return items


# --- people -----------------------------------------------------------------

def _parse_people(text: str) -> List[str]:
    text = text.strip()
    bullets = re.findall(r"(?m)^-\s+([^\n]+)", text)
    if bullets:
        return [b.strip() for b in bullets]
    if "," in text:
        return [p.strip() for p in text.split(",") if p.strip()]
    return [ln.strip() for ln in text.split("\n") if ln.strip()]


def _parse_item_people(content: str, item: AgendaItem) -> None:
    people = _section(content, "People|Attendees|People Present", flags=re.IGNORECASE)
    if people is not None:
        item.people_present = _parse_people(people)

    facilitator = _section(content, "Facilitator", flags=re.IGNORECASE)
    if facilitator is not None:
        item.facilitator = facilitator.strip()

    documenter = _section(content, "Documenter|Note Taker", flags=re.IGNORECASE)
    if documenter is not None:
        item.documenter = documenter.strip()

    excluded = {n.lower() for n in (item.facilitator, item.documenter) if n}
    present = [p for p in dedupe_people(item.people_present) if p.lower() not in excluded]
    item.people_present = sort_people(present)


# --- agenda item content ----------------------------------------------------

def _with_terminal_punctuation(text: str) -> str:
    if text and not text.endswith((".", "!", "?")):
        return text + "."
    return text


def parse_agenda_content(content: str, item: AgendaItem) -> AgendaItem:
    """Fill `item` from the subsections found in `content`.

    Subsections are located independently, so their relative order in the
    source does not matter; bullet order inside each one is kept.
    """

    _parse_item_people(content, item)

    item.meeting_topics = extract_meeting_topics(content)

    body = _section(content, "Discussion Points|In this meeting we discussed")
    if body is not None:
        item.discussion_points = [_with_terminal_punctuation(p) for p in _bullets(body)]

    body = _section(content, "Action Items")
    if body is not None:
        item.action_items = parse_action_items(body)

    body = _section(content, "Decision Items")
    if body is not None:
        item.decision_items = parse_decision_items(body)

    for attr, heading in (
        ("town_hall_updates", "Town Hall Updates"),
        ("town_hall_summary", "Town Hall Summary"),
        ("narrative", "Narrative"),
        ("game_rules", "Game Rules"),
        ("discussion", "Discussion"),
    ):
        body = _section(content, heading)
        if body is not None:
            setattr(item, attr, body.strip())

    body = _section(content, "Learning Points")
    if body is not None:
        item.learning_points = _bullets(body)

    body = _section(content, "Issues|To carry over for next meeting")
    if body is not None:
        item.issues = _bullets(body)

    body = _section(content, "Leaderboard")
    if body is not None:
        entries = re.findall(r"(?m)^- [^\n]+", body)
        item.leaderboard = [re.sub(r"^- \d+(?:st|nd|rd|th) ", "", e).strip() for e in entries]

    return item


def extract_agenda_items(section: str) -> List[AgendaItem]:
    """Agenda items of one workgroup block.

    Explicit `#### Agenda item N - Title - [Status]` markers each become an
    item. Without markers, everything from the first content heading on is
    parsed as one implicit "carry over" item, kept only if it has content.
    """

    items: List[AgendaItem] = []
    for m in _AGENDA_MARKER_RE.finditer(section):
        item = AgendaItem(agenda=m.group("title").strip(), status=m.group("status").strip())
        items.append(parse_agenda_content(m.group("body"), item))
    if items:
        return items

    start = _CONTENT_START_RE.search(section)
    if start is None:
        return []

    item = parse_agenda_content(section[start.start():], AgendaItem(status=DEFAULT_AGENDA_STATUS))
    return [item] if has_agenda_content(item) else []
