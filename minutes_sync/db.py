from __future__ import annotations

import sqlite3
import hashlib
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import json
from datetime import datetime, timezone

from .models import record_date, record_workgroup, record_workgroup_id


DB_FILENAME = "canonical.sqlite3"


class CredentialsError(RuntimeError):
    """The canonical record store is not configured."""


class QueryError(RuntimeError):
    """The canonical record store failed to answer."""


def _connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


def init_db(db_path: Path) -> None:
    with _connect(db_path) as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS canonical_records (
                record_key TEXT PRIMARY KEY,
                workgroup TEXT,
                workgroup_id TEXT,
                meeting_date TEXT,
                confirmed INTEGER NOT NULL DEFAULT 1,
                json TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS artifacts (
                path TEXT PRIMARY KEY,
                content TEXT NOT NULL,
                message TEXT,
                updated_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_canonical_workgroup_date ON canonical_records(workgroup, meeting_date);
            CREATE INDEX IF NOT EXISTS idx_canonical_confirmed ON canonical_records(confirmed);
            """
        )


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def stable_hash_json(obj: object) -> str:
    """Compute a stable sha256 of a JSON-serializable object."""
    payload = json.dumps(obj, ensure_ascii=False, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def canonical_record_key(record: Dict[str, Any]) -> str:
    """Row id if the record carries one, else a hash of workgroup and date."""

    rid = record.get("id")
    if isinstance(rid, (str, int)) and str(rid):
        return str(rid)
    wg = (record_workgroup(record) or "").lower()
    return stable_hash_json([wg, record_date(record)])


def upsert_canonical_record(*, db_path: Path, record: Dict[str, Any], confirmed: Optional[bool] = None) -> str:
    """Insert or replace one canonical record; returns its key.

    `confirmed` defaults to the record's own `confirmed` flag, or True.
    """

    if confirmed is None:
        flag = record.get("confirmed")
        confirmed = True if flag is None else bool(flag)

    init_db(db_path)
    key = canonical_record_key(record)
    with _connect(db_path) as conn:
        conn.execute(
            """
            INSERT INTO canonical_records (record_key, workgroup, workgroup_id, meeting_date, confirmed, json, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(record_key) DO UPDATE SET
                workgroup=excluded.workgroup,
                workgroup_id=excluded.workgroup_id,
                meeting_date=excluded.meeting_date,
                confirmed=excluded.confirmed,
                json=excluded.json,
                updated_at=excluded.updated_at
            """,
            (
                key,
                record_workgroup(record),
                record_workgroup_id(record),
                record_date(record),
                1 if confirmed else 0,
                json.dumps(record, ensure_ascii=False),
                _utc_now_iso(),
            ),
        )
    return key


def import_canonical_records(*, db_path: Path, records: Iterable[Dict[str, Any]]) -> int:
    n = 0
    for record in records:
        if isinstance(record, dict):
            upsert_canonical_record(db_path=db_path, record=record)
            n += 1
    return n


def fetch_canonical_records(*, db_path: Optional[Path], confirmed_only: bool = True) -> List[Dict[str, Any]]:
    if db_path is None:
        raise CredentialsError("No canonical record database configured.")

    query = "SELECT json FROM canonical_records"
    if confirmed_only:
        query += " WHERE confirmed = 1"
    query += " ORDER BY rowid"

    try:
        init_db(db_path)
        with _connect(db_path) as conn:
            rows = conn.execute(query).fetchall()
    except sqlite3.Error as e:
        raise QueryError(f"Failed to read canonical records from {db_path}: {e}") from e

    out: List[Dict[str, Any]] = []
    for r in rows:
        try:
            obj = json.loads(str(r["json"]))
        except json.JSONDecodeError as e:
            raise QueryError(f"Corrupt canonical record JSON in {db_path}") from e
        if isinstance(obj, dict):
            out.append(obj)
    return out


def upsert_artifact(*, db_path: Path, path: str, content: str, message: Optional[str] = None) -> None:
    init_db(db_path)
    with _connect(db_path) as conn:
        conn.execute(
            """
            INSERT INTO artifacts (path, content, message, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(path) DO UPDATE SET
                content=excluded.content,
                message=excluded.message,
                updated_at=excluded.updated_at
            """,
            (str(path), content, message, _utc_now_iso()),
        )


def get_artifact(*, db_path: Path, path: str) -> Optional[str]:
    init_db(db_path)
    with _connect(db_path) as conn:
        row = conn.execute("SELECT content FROM artifacts WHERE path = ?", (str(path),)).fetchone()
    return None if row is None else str(row["content"])


class SqliteRecordSource:
    def __init__(self, db_path: Optional[Path]):
        self._db_path = db_path

    def fetch_canonical_records(self) -> List[Dict[str, Any]]:
        return fetch_canonical_records(db_path=self._db_path)


class SqliteArtifactStore:
    """Offline stand-in for the commit-back target."""

    def __init__(self, db_path: Path):
        self._db_path = db_path

    def persist_artifact(self, path: str, content: str, message: str) -> Dict[str, Any]:
        upsert_artifact(db_path=self._db_path, path=path, content=content, message=message)
        return {"path": path}

    def ensure_directory(self, path: str) -> None:
        return None
