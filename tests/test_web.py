from __future__ import annotations

import http.client
import json
import threading
from pathlib import Path
from urllib.parse import urlencode

import pytest

from minutes_sync.compare import Difference
from minutes_sync.parser import parse_document
from minutes_sync.reconcile import ComparisonResult, LocalDocumentSource, Reconciler, StaticRecordSource
from minutes_sync.web import make_server, render_browse_html, render_index_html, render_results_html


DOC = (
    "## January 1st 2024\n"
    "### Gamers Guild\n"
    "- **Present:** Alice [**facilitator**], Bob\n"
    "#### Discussion Points:\n"
    "- Played a new game\n"
)


def _result(differences, canonical=True) -> ComparisonResult:
    record = {"workgroup": "Gamers Guild"}
    return ComparisonResult(
        workgroup="Gamers Guild",
        source_path="timeline/2024/January/week-1.md",
        candidate_record=record,
        ordered_candidate=record,
        canonical_record=record if canonical else None,
        ordered_canonical=record if canonical else None,
        differences=differences,
    )


def test_render_index_and_browse() -> None:
    html = render_index_html(timeline_root="timeline")
    assert "action=\"/compare\"" in html
    assert "/browse?dir=timeline" in html

    html = render_browse_html(path="timeline/2024", directories=["January"], files=["timeline/2024/a.md"])
    assert "/browse?dir=timeline/2024/January" in html
    assert "value=\"timeline/2024/a.md\"" in html

    assert "Empty directory." in render_browse_html(path="x", directories=[], files=[])


def test_render_results() -> None:
    assert "Records match! No differences found." in render_results_html([_result([])])
    assert "No matching canonical record found." in render_results_html([_result([Difference("entire record", {}, None)], canonical=False)])

    html = render_results_html([_result([Difference("meetingInfo.host", "<b>Al</b>", None)])])
    assert "1 difference(s)" in html
    assert "&lt;b&gt;Al&lt;/b&gt;" in html
    assert "<em>missing</em>" in html


@pytest.fixture()
def server(tmp_path: Path):
    week = tmp_path / "timeline" / "2024" / "January"
    week.mkdir(parents=True)
    (week / "week-1.md").write_text(DOC, encoding="utf-8")
    (tmp_path / "timeline" / "2024" / "blank.md").write_text("", encoding="utf-8")

    canonical = parse_document(DOC).records[0].to_dict()
    documents = LocalDocumentSource(root=tmp_path)
    reconciler = Reconciler(documents, StaticRecordSource([{"summary": canonical}]))
    httpd = make_server(reconciler=reconciler, documents=documents, timeline_root="timeline", port=0)

    t = threading.Thread(target=httpd.serve_forever, kwargs={"poll_interval": 0.01}, daemon=True)
    t.start()
    try:
        yield httpd.server_address[1]
    finally:
        httpd.shutdown()
        httpd.server_close()


def _get(port: int, path: str):
    conn = http.client.HTTPConnection("127.0.0.1", port, timeout=5)
    conn.request("GET", path)
    resp = conn.getresponse()
    body = resp.read().decode("utf-8")
    conn.close()
    return resp.status, body


def test_api_compare_file(server: int) -> None:
    status, body = _get(server, "/api/compare?path=timeline/2024/January/week-1.md")
    assert status == 200
    results = json.loads(body)["results"]
    assert len(results) == 1
    assert results[0]["workgroup"] == "Gamers Guild"
    assert results[0]["differences"] == []


def test_api_compare_errors(server: int) -> None:
    assert _get(server, "/api/compare")[0] == 400
    status, body = _get(server, "/api/compare?path=timeline/2024/blank.md")
    assert status == 422
    assert "blank.md" in json.loads(body)["error"]
    assert _get(server, "/api/compare?path=timeline/none.md")[0] == 502
    assert _get(server, "/nowhere")[0] == 404


def test_browse_and_post_compare(server: int) -> None:
    status, body = _get(server, "/browse?dir=timeline/2024")
    assert status == 200
    assert "January/" in body
    assert "timeline/2024/blank.md" in body

    form = urlencode({"dir": "timeline/2024/January"}).encode("utf-8")
    conn = http.client.HTTPConnection("127.0.0.1", server, timeout=5)
    conn.request(
        "POST",
        "/compare",
        body=form,
        headers={"Content-Type": "application/x-www-form-urlencoded", "Content-Length": str(len(form))},
    )
    resp = conn.getresponse()
    html = resp.read().decode("utf-8")
    conn.close()
    assert resp.status == 200
    assert "Records match! No differences found." in html
