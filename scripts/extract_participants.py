from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

# Allow running as a script (sys.path[0] becomes ./scripts). Add repo root.
_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from minutes_sync.config import ConfigError, load_config, resolve_config_path
from minutes_sync.db import CredentialsError, QueryError, SqliteRecordSource
from minutes_sync.participants import extract_meeting_participants
from minutes_sync.supabase import SupabaseRecordSource


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="List everyone recorded as present in canonical meeting summaries")
    p.add_argument("--config", type=str, default=None, help="Path to config YAML")
    p.add_argument("--canonical-db", type=str, default=None, help="Read records from this SQLite store instead of Supabase")
    p.add_argument("--json", action="store_true", help="Print the roster as a JSON list")
    args = p.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        cfg = load_config(resolve_config_path(args.config), required=bool(args.config))
    except ConfigError as e:
        print(str(e), file=sys.stderr)
        return 2

    source = (
        SqliteRecordSource(Path(args.canonical_db).expanduser())
        if args.canonical_db
        else SupabaseRecordSource(cfg.supabase)
    )

    try:
        records = source.fetch_canonical_records()
    except (CredentialsError, QueryError) as e:
        print(f"Failed to extract meeting participants: {e}", file=sys.stderr)
        return 2

    roster = extract_meeting_participants(records)
    if args.json:
        print(json.dumps(roster, ensure_ascii=False, indent=2))
        return 0

    print(f"Unique participants found: {len(roster)}")
    for name in roster:
        print(name)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
