from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from supabase import Client, ClientOptions, create_client

from .db import CredentialsError, QueryError


logger = logging.getLogger(__name__)


DEFAULT_TABLE = "meetingsummaries"


@dataclass(frozen=True)
class SupabaseConfig:
    url: Optional[str] = None
    key: Optional[str] = None
    table: str = DEFAULT_TABLE
    timeout_s: float = 30.0


class SupabaseRecordSource:
    """Confirmed meeting summaries from the Supabase `meetingsummaries` table."""

    def __init__(self, cfg: SupabaseConfig, client: Optional[Client] = None):
        self._cfg = cfg
        self._client = client

    def _connect(self) -> Client:
        if self._client is not None:
            return self._client
        url = (self._cfg.url or "").strip()
        key = (self._cfg.key or "").strip()
        if not url or not key:
            raise CredentialsError("Supabase credentials are missing. Set SUPABASE_URL and SUPABASE_KEY.")
        self._client = create_client(url, key, options=ClientOptions(postgrest_client_timeout=self._cfg.timeout_s))
        return self._client

    def fetch_canonical_records(self) -> List[Dict[str, Any]]:
        client = self._connect()
        logger.debug("querying %s for confirmed records", self._cfg.table)

        try:
            res = client.table(self._cfg.table).select("*").eq("confirmed", True).execute()
        except Exception as e:
            raise QueryError(f"Supabase query on {self._cfg.table} failed: {e}") from e

        data = res.data
        if not isinstance(data, list):
            raise QueryError("Supabase response was not a list of rows.")

        records = [r for r in data if isinstance(r, dict)]
        if not records:
            logger.warning("no confirmed records returned from %s", self._cfg.table)
        else:
            logger.info("fetched %d canonical record(s) from %s", len(records), self._cfg.table)
        return records
