"""Async PostgREST client for the Supabase record tables."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

import httpx

from medireach.config import Settings
from medireach.errors import RecordSourceError
from medireach.sources import TableConfig

logger = logging.getLogger(__name__)


class RequestPacer:
    """Spaces requests to one table at most ``rpm`` per minute."""

    def __init__(self, rpm: int):
        self.interval = 60.0 / max(rpm, 1)
        self._next_slot = 0.0

    async def wait(self) -> None:
        delay = self._next_slot - time.monotonic()
        if delay > 0:
            await asyncio.sleep(delay)
        self._next_slot = time.monotonic() + self.interval


def _filter_value(value) -> str:
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    return f"eq.{value}"


class SupabaseClient:
    """Async HTTP client for one Supabase table exposed through PostgREST."""

    def __init__(
        self,
        settings: Settings,
        config: TableConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.config = config
        self._pacer = RequestPacer(config.rate_limit_rpm)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            headers = {"Accept": "application/json"}
            if self.settings.supabase_key:
                headers["apikey"] = self.settings.supabase_key
                headers["Authorization"] = f"Bearer {self.settings.supabase_key}"
            self._client = httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def fetch_rows(self, limit: Optional[int] = None) -> list[dict]:
        """Fetch every row of the table that passes its server-side filters.

        Returns:
            Decoded JSON rows, ordered by the table's ``order_by`` column.
        """
        params = {
            "select": self.config.select,
            "order": f"{self.config.order_by}.asc",
        }
        for column, value in self.config.filters.items():
            params[column] = _filter_value(value)
        if limit is not None:
            params["limit"] = str(limit)

        return await self._request_with_retry(params)

    async def _request_with_retry(self, params: dict) -> list[dict]:
        """GET the table, backing off on network errors, 429 and 5xx."""
        client = await self._get_client()
        url = f"{self.settings.rest_url}/{self.config.table}"
        attempts = max(self.config.max_retries, 0) + 1

        for attempt in range(attempts):
            await self._pacer.wait()
            try:
                resp = await client.get(url, params=params)
                resp.raise_for_status()
                return resp.json()
            except httpx.HTTPStatusError as exc:
                if not _retryable(exc.response.status_code):
                    raise RecordSourceError(
                        f"{self.config.name}: HTTP {exc.response.status_code} from {url}"
                    ) from exc
                error: Exception = exc
            except httpx.RequestError as exc:
                error = exc

            if attempt + 1 == attempts:
                raise RecordSourceError(
                    f"{self.config.name}: all {attempts} attempts failed"
                ) from error
            backoff = self.config.retry_backoff_base ** attempt
            logger.warning(
                "%s: attempt %d/%d failed (%s), retrying in %.1fs",
                self.config.name, attempt + 1, attempts, error, backoff,
            )
            await asyncio.sleep(backoff)


def _retryable(status: int) -> bool:
    return status == 429 or status >= 500
