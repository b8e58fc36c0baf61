"""Abstract base adapter with validation logic."""

from __future__ import annotations

import abc
import logging
from typing import Iterable

from medireach.geo import Coordinate
from medireach.models import GeoRecord

logger = logging.getLogger(__name__)


class RecordAdapter(abc.ABC):
    """Abstract adapter that converts table rows → GeoRecord."""

    kind: str = ""

    @abc.abstractmethod
    def adapt(self, row: dict) -> GeoRecord:
        """Adapt one table row.

        Args:
            row: A column → value mapping (PostgREST JSON object or
                psycopg2 RealDictRow).

        Raises:
            KeyError, TypeError, ValueError: the row is missing or has
                malformed required fields.
        """

    def adapt_rows(self, rows: Iterable[dict]) -> list[GeoRecord]:
        """Adapt many rows, skipping (and logging) the ones that don't fit."""
        records: list[GeoRecord] = []
        for row in rows:
            try:
                record = self.adapt(row)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("[%s] skipping malformed row %r: %s",
                               self.kind, _row_id(row), exc)
                continue

            errors = self.validate(record)
            if errors:
                logger.warning("[%s] validation failed for %s: %s",
                               self.kind, record.id, errors)
                continue
            records.append(record)
        return records

    @staticmethod
    def validate(record: GeoRecord) -> list[str]:
        """Validate a GeoRecord. Returns list of error messages (empty = valid)."""
        errors: list[str] = []

        if not record.id:
            errors.append("id is empty")

        errors.extend(record.location.errors())

        return errors


def _row_id(row) -> object:
    try:
        return row.get("id")
    except AttributeError:
        return None


def location_from_row(row: dict) -> Coordinate:
    return Coordinate(lat=float(row["latitude"]), lng=float(row["longitude"]))


def string_list(value) -> list[str]:
    """Normalize a nullable text[] / JSON array column."""
    if value is None:
        return []
    if isinstance(value, str):
        raise TypeError(f"expected a list, got string {value!r}")
    return [str(v) for v in value]
