from __future__ import annotations

from minutes_sync.dates import DateHeading, extract_date_headings, find_closest_date, parse_date_heading
from minutes_sync.segment import segment_document


def test_parse_date_heading_accepts_both_layouts() -> None:
    assert parse_date_heading("January 1st 2024") == "2024-01-01"
    assert parse_date_heading("Monday, March 4th, 2024") == "2024-03-04"
    assert parse_date_heading("Wednesday 3rd January 2024") == "2024-01-03"
    assert parse_date_heading("Agenda") is None
    assert parse_date_heading("February 30th 2024") is None


def test_extract_date_headings_only_reads_level_two_headings() -> None:
    text = "## January 1st 2024\n### February 2nd 2024\n## Notes\n## March 3rd 2024\n"
    headings = extract_date_headings(text)
    assert [h.date for h in headings] == ["2024-01-01", "2024-03-03"]
    assert headings[0].index == 0
    assert headings[1].index == text.index("## March")


def test_find_closest_date_never_looks_ahead() -> None:
    headings = [DateHeading(index=10, date="2024-01-01"), DateHeading(index=100, date="2024-01-08")]
    assert find_closest_date(5, headings) is None
    assert find_closest_date(50, headings) == "2024-01-01"
    assert find_closest_date(100, headings) == "2024-01-08"
    assert find_closest_date(500, headings) == "2024-01-08"
    assert find_closest_date(50, []) is None


def test_segment_document_splits_on_workgroup_headings() -> None:
    text = (
        "## January 1st 2024\n"
        "### Gamers Guild\n"
        "- **Type of meeting:** Weekly\n"
        "#### Agenda item 1 - Games - [completed]\n"
        "## January 8th 2024\n"
        "### Video Workgroup\n"
        "- **Type of meeting:** Biweekly\n"
    )
    blocks = segment_document(text)
    assert len(blocks) == 2
    assert blocks[0].text.startswith("### Gamers Guild")
    # "#### Agenda item" stays inside the Gamers Guild block.
    assert "#### Agenda item 1" in blocks[0].text
    assert blocks[0].date == "2024-01-01"
    assert blocks[1].text.startswith("### Video Workgroup")
    assert blocks[1].date == "2024-01-08"
    assert blocks[1].end == len(text)


def test_segment_document_without_workgroups_is_one_block() -> None:
    text = "## January 1st 2024\nJust some notes.\n"
    blocks = segment_document(text)
    assert len(blocks) == 1
    assert blocks[0].start == 0
    assert blocks[0].text == text
    assert blocks[0].date == "2024-01-01"
