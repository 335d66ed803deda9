from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from .agenda import extract_agenda_items
from .fields import extract_meeting_fields
from .models import MeetingRecord
from .repair import join_people, split_names
from .segment import segment_document
from .text import normalize_text


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SingleRecord:
    record: MeetingRecord

    @property
    def records(self) -> List[MeetingRecord]:
        return [self.record]


@dataclass(frozen=True)
class MultipleRecords:
    records: List[MeetingRecord] = field(default_factory=list)


@dataclass(frozen=True)
class ParseError:
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error}


ParseResult = Union[SingleRecord, MultipleRecords, ParseError]


def _finalize(record: MeetingRecord) -> MeetingRecord:
    info = record.meeting_info
    info.people_present = join_people(split_names(info.people_present))
    return record


def parse_blocks(
    text: str, canonical_records: Optional[Sequence[Dict[str, Any]]] = None
) -> List[MeetingRecord]:
    records: List[MeetingRecord] = []
    for block in segment_document(text):
        record = extract_meeting_fields(block.text, block.date, canonical_records)
        record.agenda_items = extract_agenda_items(block.text)
        records.append(_finalize(record))
    return records


def parse_document(
    text: str, canonical_records: Optional[Sequence[Dict[str, Any]]] = None
) -> ParseResult:
    """Parse minutes markdown into one record per workgroup block.

    Empty or whitespace-only input gives a ParseError; anything else parses
    best-effort, with missing fields left at their defaults.
    """

    if not text or not text.strip():
        return ParseError("No content to parse")

    records = parse_blocks(normalize_text(text), canonical_records)
    logger.debug("parsed %d workgroup block(s)", len(records))
    if len(records) == 1:
        return SingleRecord(records[0])
    return MultipleRecords(records)
