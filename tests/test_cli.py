from __future__ import annotations

import json
from pathlib import Path

import pytest

from minutes_sync.cli import commit_results, main
from minutes_sync.db import get_artifact
from minutes_sync.parser import parse_document
from minutes_sync.reconcile import reconcile_document, SourceDocument


DOC = (
    "## January 3rd 2024\n"
    "### Gamers Guild\n"
    "- **Present:** Alice [**facilitator**], Bob\n"
    "#### Discussion Points:\n"
    "- Played a new game\n"
)


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("MINUTES_SYNC_CONFIG", raising=False)
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_KEY", raising=False)
    monkeypatch.chdir(tmp_path)


def _write_canonical(tmp_path: Path, doc: str = DOC) -> Path:
    record = parse_document(doc).records[0].to_dict()
    path = tmp_path / "canonical.json"
    path.write_text(json.dumps({"records": [{"id": 1, "summary": record}]}), encoding="utf-8")
    return path


def test_print_and_init_config(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    expected = tmp_path / "xdg" / "minutes-sync" / "config.yaml"
    assert main(["--print-config-path"]) == 0
    assert capsys.readouterr().out.strip() == str(expected)

    assert main(["--init-config"]) == 0
    assert expected.exists()


def test_import_only(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = tmp_path / "c.sqlite3"
    assert main(["--import-canonical", str(_write_canonical(tmp_path)), "--canonical-db", str(db)]) == 0
    assert "Imported 1 canonical record(s)" in capsys.readouterr().out
    assert db.exists()


def test_compare_local_file_and_write_results(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    md = tmp_path / "week-1.md"
    md.write_text(DOC, encoding="utf-8")
    db = tmp_path / "c.sqlite3"
    out = tmp_path / "out" / "results.json"

    rc = main(
        [
            "--import-canonical",
            str(_write_canonical(tmp_path)),
            "--canonical-db",
            str(db),
            "--file",
            str(md),
            "--out",
            str(out),
            "--fail-on-diff",
        ]
    )
    assert rc == 0
    printed = capsys.readouterr().out
    assert "Gamers Guild" in printed
    assert ": match" in printed

    payload = json.loads(out.read_text(encoding="utf-8"))
    assert "generated_at" in payload
    assert payload["results"][0]["differences"] == []


def test_fail_on_diff(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    md = tmp_path / "week-1.md"
    md.write_text(DOC.replace("Played a new game", "Played an old game"), encoding="utf-8")
    db = tmp_path / "c.sqlite3"
    main(["--import-canonical", str(_write_canonical(tmp_path)), "--canonical-db", str(db)])

    assert main(["--canonical-db", str(db), "--file", str(md)]) == 0
    assert main(["--canonical-db", str(db), "--file", str(md), "--fail-on-diff"]) == 1
    assert "1 difference(s)" in capsys.readouterr().out


def test_errors_exit_2(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = tmp_path / "c.sqlite3"
    assert main(["--canonical-db", str(db), "--file", str(tmp_path / "missing.md")]) == 2

    empty = tmp_path / "empty.md"
    empty.write_text("", encoding="utf-8")
    assert main(["--canonical-db", str(db), "--file", str(empty)]) == 2

    # Supabase without credentials
    md = tmp_path / "week-1.md"
    md.write_text(DOC, encoding="utf-8")
    assert main(["--file", str(md)]) == 2

    assert main(["--config", str(tmp_path / "nope.yaml"), "--file", str(md)]) == 2
    assert main(["--canonical-db", str(db), "--file", str(md), "--commit"]) == 2

    err = capsys.readouterr().err
    assert "Supabase credentials are missing" in err
    assert "--commit needs remote paths" in err


class _FakeCommitTarget:
    def __init__(self) -> None:
        self.directories = []
        self.files = {}

    def ensure_directory(self, path: str) -> None:
        self.directories.append(path)

    def persist_artifact(self, path: str, content: str, message: str) -> dict:
        self.files[path] = content
        return {}


def test_commit_results_writes_dated_folder() -> None:
    results = reconcile_document(SourceDocument("timeline/2024/January/week-1.md", DOC), [])
    target = _FakeCommitTarget()
    written = commit_results(results, target)

    folder = "timeline/2024/January/week-1/2024-01-03-gamers-guild"
    assert written == [f"{folder}/meeting-summary.json"]
    assert target.directories == [folder]
    assert json.loads(target.files[written[0]])["workgroup"] == "Gamers Guild"

    assert commit_results(reconcile_document(SourceDocument("week-1.md", DOC), []), target) == []


def test_commit_db_stores_ordered_records_for_local_files(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    week = tmp_path / "timeline" / "2024" / "January"
    week.mkdir(parents=True)
    md = week / "week-1.md"
    md.write_text(DOC, encoding="utf-8")
    store = tmp_path / "artifacts.sqlite3"

    rc = main(["--canonical-db", str(tmp_path / "c.sqlite3"), "--file", str(md), "--commit-db", str(store)])
    assert rc == 0

    path = "timeline/2024/January/week-1/2024-01-03-gamers-guild/meeting-summary.json"
    assert f"Stored {path}" in capsys.readouterr().out
    stored = json.loads(get_artifact(db_path=store, path=path))
    assert stored["workgroup"] == "Gamers Guild"
    assert stored["agendaItems"][0]["discussionPoints"] == ["Played a new game."]
