"""Adapter for rows of the `camps` table."""

from __future__ import annotations

from datetime import date, datetime

from medireach.adapters.base import RecordAdapter, location_from_row
from medireach.models import GeoRecord


class CampAdapter(RecordAdapter):
    kind = "camp"

    def adapt(self, row: dict) -> GeoRecord:
        return GeoRecord(
            id=str(row["id"]),
            kind=self.kind,
            location=location_from_row(row),
            attributes={
                "name": row["name"],
                "type": (row.get("type") or "").lower(),
                "date": _parse_date(row["date"]),
                "address": row.get("address") or "",
                "contact": row.get("contact") or "",
            },
        )


def _parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])
