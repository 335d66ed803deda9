from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

from .dates import extract_date_headings, find_closest_date


@dataclass(frozen=True)
class WorkgroupBlock:
    start: int
    end: int
    text: str
    date: Optional[str]


# Exactly three hashes: "#### " agenda markers must not open a new block.
WORKGROUP_HEADING_RE = re.compile(r"(?m)^### ([^\n]+)")


def segment_document(markdown: str) -> List[WorkgroupBlock]:
    """Split a document into workgroup blocks, each tagged with its date.

    A block runs from its `### ` heading to the next one (or end of text).
    With no workgroup headings the whole document is a single block.
    """

    headings = extract_date_headings(markdown)
    starts = [m.start() for m in WORKGROUP_HEADING_RE.finditer(markdown)]

    if not starts:
        return [
            WorkgroupBlock(
                start=0,
                end=len(markdown),
                text=markdown,
                date=find_closest_date(0, headings),
            )
        ]

    blocks: List[WorkgroupBlock] = []
    for idx, start in enumerate(starts):
        end = starts[idx + 1] if idx + 1 < len(starts) else len(markdown)
        blocks.append(
            WorkgroupBlock(
                start=start,
                end=end,
                text=markdown[start:end],
                date=find_closest_date(start, headings),
            )
        )
    return blocks
