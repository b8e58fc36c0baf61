"""Adapter for rows of the `hospitals` table."""

from __future__ import annotations

from medireach.adapters.base import RecordAdapter, location_from_row, string_list
from medireach.models import GeoRecord


class HospitalAdapter(RecordAdapter):
    kind = "hospital"

    def adapt(self, row: dict) -> GeoRecord:
        return GeoRecord(
            id=str(row["id"]),
            kind=self.kind,
            location=location_from_row(row),
            attributes={
                "name": row["name"],
                "type": (row.get("type") or "").lower(),
                "status": (row.get("status") or "").lower(),
                "address": row.get("address") or "",
                "contact": row.get("contact") or "",
                "services": string_list(row.get("services")),
            },
        )
