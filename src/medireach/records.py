"""Record sources: load GeoRecords from Supabase, Postgres or a JSON file."""

from __future__ import annotations

import asyncio
import json
import logging
import pathlib
from typing import Optional

from medireach.adapters import ADAPTER_MAP
from medireach.clients.supabase_client import SupabaseClient
from medireach.config import Settings
from medireach.models import GeoRecord
from medireach.sources import TABLES

logger = logging.getLogger(__name__)


async def fetch_records(
    kind: str,
    settings: Settings,
    limit: Optional[int] = None,
    client: Optional[SupabaseClient] = None,
) -> list[GeoRecord]:
    """Fetch and adapt one table through the Supabase REST API."""
    config = TABLES[kind]
    client = client or SupabaseClient(settings, config)
    try:
        rows = await client.fetch_rows(limit=limit)
    finally:
        await client.close()

    records = ADAPTER_MAP[kind].adapt_rows(rows)
    logger.info("[%s] loaded %d record(s) from %d row(s)", kind, len(records), len(rows))
    return records


def load_records(
    kind: str,
    settings: Settings,
    backend: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[GeoRecord]:
    """Load one table using the configured backend ("rest" or "postgres")."""
    if kind not in TABLES:
        raise KeyError(f"unknown record kind {kind!r}")
    backend = backend or settings.backend

    if backend == "postgres":
        from medireach.db import fetch_table_rows
        rows = fetch_table_rows(settings, TABLES[kind], limit)
        return ADAPTER_MAP[kind].adapt_rows(rows)

    return asyncio.run(fetch_records(kind, settings, limit))


def load_records_from_file(path: str | pathlib.Path, kind: str) -> list[GeoRecord]:
    """Load table rows exported as a JSON array and adapt them."""
    rows = json.loads(pathlib.Path(path).read_text())
    if not isinstance(rows, list):
        raise ValueError(f"{path}: expected a JSON array of rows")
    return ADAPTER_MAP[kind].adapt_rows(rows)
