from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .config import ConfigError, SyncConfig, init_config, load_config, resolve_config_path
from .db import CredentialsError, QueryError, SqliteArtifactStore, SqliteRecordSource, import_canonical_records
from .github import GitHubClient, GitHubError, format_meeting_path
from .models import record_date
from .reconcile import (
    ComparisonResult,
    DocumentSource,
    LocalDocumentSource,
    ReconcileError,
    Reconciler,
    RecordSource,
)
from .supabase import SupabaseRecordSource


logger = logging.getLogger(__name__)


COMMIT_FILENAME = "meeting-summary.json"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_canonical_json(path: Path) -> List[Dict[str, Any]]:
    data = json.loads(path.read_text(encoding="utf-8"))
    # Accept a bare list of rows or {"records": [...]}.
    if isinstance(data, dict) and isinstance(data.get("records"), list):
        data = data["records"]
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list of records")
    return [r for r in data if isinstance(r, dict)]


def _record_source(args: argparse.Namespace, cfg: SyncConfig) -> RecordSource:
    if args.canonical_db:
        return SqliteRecordSource(Path(args.canonical_db).expanduser())
    return SupabaseRecordSource(cfg.supabase)


def _summary_line(r: ComparisonResult) -> str:
    label = f"{r.workgroup or '(no workgroup)'} [{r.source_path}]"
    if not r.matched:
        return f"- {label}: no matching canonical record"
    if not r.differences:
        return f"- {label}: match"
    return f"- {label}: {len(r.differences)} difference(s)"


def commit_results(
    results: List[ComparisonResult], target: Union[GitHubClient, SqliteArtifactStore]
) -> List[str]:
    """Write each ordered candidate record next to its timeline file."""

    written: List[str] = []
    for r in results:
        date = record_date(r.candidate_record)
        folder = format_meeting_path(r.source_path, r.workgroup, date)
        if folder is None:
            logger.warning("not committing %s (%s): no dated timeline path", r.workgroup, r.source_path)
            continue
        target.ensure_directory(folder)
        path = f"{folder}/{COMMIT_FILENAME}"
        content = json.dumps(r.ordered_candidate, indent=2, ensure_ascii=False) + "\n"
        target.persist_artifact(path, content, f"Update {r.workgroup} meeting summary for {date}")
        written.append(path)
    return written


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Compare meeting-minutes markdown against canonical records")
    parser.add_argument(
        "--file",
        action="append",
        default=[],
        help="Local markdown file to compare (repeatable)",
    )
    parser.add_argument("--path", type=str, default=None, help="Remote markdown file, e.g. timeline/2024/January/week-1.md")
    parser.add_argument("--dir", type=str, default=None, help="Remote directory; compares every .md file in it")
    parser.add_argument(
        "--canonical-db",
        type=str,
        default=None,
        help="Read canonical records from this SQLite store instead of Supabase",
    )
    parser.add_argument(
        "--import-canonical",
        type=str,
        default=None,
        help="Load canonical records from a JSON file into the SQLite store (--canonical-db or the configured store)",
    )
    parser.add_argument("--out", type=str, default=None, help="Write comparison results JSON to this path")
    parser.add_argument(
        "--commit",
        action="store_true",
        help="Commit each ordered record to GitHub under its timeline folder (needs GITHUB_TOKEN)",
    )
    parser.add_argument(
        "--commit-db",
        type=str,
        default=None,
        help="Write ordered records into this SQLite store instead of committing to GitHub",
    )
    parser.add_argument("--fail-on-diff", action="store_true", help="Exit 1 when any differences are found")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config YAML (optional; defaults to XDG config or ./minutes_sync.yaml)",
    )
    parser.add_argument("--init-config", action="store_true", help="Create a starter config at the resolved path and exit")
    parser.add_argument("--overwrite-config", action="store_true", help="With --init-config, overwrite an existing file")
    parser.add_argument("--print-config-path", action="store_true", help="Print the resolved config path and exit")
    parser.add_argument("--serve", action="store_true", help="Serve a local web UI for browsing and comparing")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Host for --serve (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port for --serve (default: 8000)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)
    _configure_logging(bool(args.verbose))

    config_path = resolve_config_path(args.config, prefer_xdg=bool(args.init_config))

    if args.print_config_path:
        print(config_path)
        return 0

    if args.init_config:
        init_config(config_path, overwrite=bool(args.overwrite_config))
        print(f"Initialized config at {config_path}")
        return 0

    try:
        cfg = load_config(config_path, required=bool(args.config))
    except ConfigError as e:
        print(str(e), file=sys.stderr)
        return 2

    if args.import_canonical:
        db_path = Path(args.canonical_db).expanduser() if args.canonical_db else cfg.canonical_db_path
        try:
            records = _load_canonical_json(Path(args.import_canonical))
        except (OSError, ValueError) as e:
            print(f"Import failed: {e}", file=sys.stderr)
            return 2
        n = import_canonical_records(db_path=db_path, records=records)
        print(f"Imported {n} canonical record(s) into {db_path}")
        if not (args.file or args.path or args.dir or args.serve):
            return 0
        args.canonical_db = str(db_path)

    records_source = _record_source(args, cfg)
    github = GitHubClient(cfg.github)
    documents: DocumentSource = LocalDocumentSource() if args.file else github
    reconciler = Reconciler(documents, records_source)

    if args.serve:
        from .web import serve

        print(f"Serving at http://{args.host}:{int(args.port)}/")
        serve(
            reconciler=reconciler,
            documents=documents,
            timeline_root=cfg.timeline_root,
            host=str(args.host),
            port=int(args.port),
        )
        return 0

    if not (args.file or args.path or args.dir):
        parser.error("Provide --file, --path or --dir (or --serve)")

    try:
        if args.file:
            if len(args.file) == 1:
                results = reconciler.compare_path(args.file[0])
            else:
                results = reconciler.compare_paths(args.file)
        elif args.path:
            results = reconciler.compare_path(args.path)
        else:
            results = reconciler.compare_directory(args.dir)
    except ReconcileError as e:
        print(str(e), file=sys.stderr)
        return 2
    except (GitHubError, CredentialsError, QueryError) as e:
        print(f"Comparison failed: {e}", file=sys.stderr)
        return 2

    for r in results:
        print(_summary_line(r))

    if args.out:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "generated_at": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "results": [r.to_dict() for r in results],
        }
        out_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        print(f"Wrote {out_path}")

    if args.commit_db:
        store = SqliteArtifactStore(Path(args.commit_db).expanduser())
        for path in commit_results(results, store):
            print(f"Stored {path} in {args.commit_db}")
    elif args.commit:
        if args.file:
            print("--commit needs remote paths (--path or --dir); use --commit-db for local files", file=sys.stderr)
            return 2
        try:
            for path in commit_results(results, github):
                print(f"Committed {path}")
        except GitHubError as e:
            print(f"Commit failed: {e}", file=sys.stderr)
            return 2

    if args.fail_on_diff and any(r.differences for r in results):
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
