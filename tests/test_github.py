from __future__ import annotations

import base64
import io
import json
from typing import Any, List
from urllib.error import HTTPError, URLError

import pytest

import minutes_sync.github as gh
from minutes_sync.github import CommitError, FetchError, GitHubClient, GitHubConfig, format_meeting_path


class _Resp:
    def __init__(self, obj: Any):
        self._raw = json.dumps(obj).encode("utf-8")

    def read(self) -> bytes:
        return self._raw

    def __enter__(self) -> "_Resp":
        return self

    def __exit__(self, *exc) -> None:
        return None


def _not_found(url: str) -> HTTPError:
    return HTTPError(url, 404, "Not Found", None, io.BytesIO(b"{}"))


def _install(monkeypatch, handler) -> List[Any]:
    seen: List[Any] = []

    def fake_urlopen(req, timeout=None):  # noqa: ANN001
        seen.append(req)
        return handler(req)

    monkeypatch.setattr(gh, "urlopen", fake_urlopen)
    return seen


def test_format_meeting_path() -> None:
    assert (
        format_meeting_path("timeline/2024/January/week-1.md", "Gamers Guild", "2024-01-03")
        == "timeline/2024/January/week-1/2024-01-03-gamers-guild"
    )
    assert format_meeting_path("timeline/2024/January/week-1.md", "Gamers Guild", None) is None
    assert format_meeting_path("week-1.md", "Gamers Guild", "2024-01-03") is None


def test_fetch_raw_document_decodes_base64(monkeypatch) -> None:
    encoded = base64.b64encode("### Café\n".encode("utf-8")).decode("ascii")
    seen = _install(monkeypatch, lambda req: _Resp({"content": encoded}))

    client = GitHubClient(GitHubConfig(owner="o", repo="r", branch="main"))
    assert client.fetch_raw_document("timeline/2024/week 1.md") == "### Café\n"
    assert seen[0].full_url == "https://api.github.com/repos/o/r/contents/timeline/2024/week%201.md?ref=main"
    assert seen[0].get_header("Authorization") is None


def test_directory_listing(monkeypatch) -> None:
    entries = [
        {"name": "b.md", "path": "t/b.md", "type": "file"},
        {"name": "a.md", "path": "t/a.md", "type": "file"},
        {"name": "notes.txt", "path": "t/notes.txt", "type": "file"},
        {"name": "2024", "path": "t/2024", "type": "dir"},
    ]
    _install(monkeypatch, lambda req: _Resp(entries))
    client = GitHubClient(GitHubConfig(token="tok"))
    assert client.list_markdown_files("t") == ["t/a.md", "t/b.md"]
    assert client.list_directories("t") == ["2024"]


def test_http_errors_map_to_fetch_error_codes(monkeypatch) -> None:
    def handler(req):
        raise _not_found(req.full_url)

    _install(monkeypatch, handler)
    with pytest.raises(FetchError) as exc:
        GitHubClient(GitHubConfig()).fetch_raw_document("missing.md")
    assert exc.value.code == "not_found"
    assert exc.value.details["http_status"] == 404

    def offline(req):
        raise URLError("no route")

    _install(monkeypatch, offline)
    with pytest.raises(FetchError) as exc:
        GitHubClient(GitHubConfig()).list_markdown_files("t")
    assert exc.value.code == "unavailable"


def test_persist_artifact_requires_token() -> None:
    with pytest.raises(CommitError) as exc:
        GitHubClient(GitHubConfig(token=None)).persist_artifact("a.json", "{}", "msg")
    assert exc.value.code == "missing_token"


def test_persist_artifact_updates_existing_file(monkeypatch) -> None:
    def handler(req):
        if req.get_method() == "GET":
            return _Resp({"sha": "abc123"})
        return _Resp({"content": {"path": "x"}})

    seen = _install(monkeypatch, handler)
    cfg = GitHubConfig(owner="src", repo="minutes", token="tok", commit_owner="dst", commit_branch="sync")
    GitHubClient(cfg).persist_artifact("t/2024/a.json", "{\"a\": 1}\n", "Update a")

    put = seen[-1]
    assert put.get_method() == "PUT"
    assert put.full_url == "https://api.github.com/repos/dst/minutes/contents/t/2024/a.json"
    assert put.get_header("Authorization") == "token tok"
    body = json.loads(put.data.decode("utf-8"))
    assert body["sha"] == "abc123"
    assert body["branch"] == "sync"
    assert base64.b64decode(body["content"]).decode("utf-8") == "{\"a\": 1}\n"


def test_ensure_directory_creates_readme_when_missing(monkeypatch) -> None:
    def handler(req):
        if req.get_method() == "GET":
            raise _not_found(req.full_url)
        return _Resp({})

    seen = _install(monkeypatch, handler)
    GitHubClient(GitHubConfig(owner="o", repo="r", token="tok")).ensure_directory("t/2024/week-1")

    puts = [r for r in seen if r.get_method() == "PUT"]
    assert len(puts) == 1
    assert puts[0].full_url.endswith("/contents/t/2024/week-1/README.md")
    assert "sha" not in json.loads(puts[0].data.decode("utf-8"))


def test_ensure_directory_is_noop_when_present(monkeypatch) -> None:
    seen = _install(monkeypatch, lambda req: _Resp([{"name": "README.md", "type": "file"}]))
    GitHubClient(GitHubConfig(token="tok")).ensure_directory("t/2024")
    assert [r.get_method() for r in seen] == ["GET"]
