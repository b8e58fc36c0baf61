"""Adapter for rows of the `blood_banks` table."""

from __future__ import annotations

from medireach.adapters.base import RecordAdapter, location_from_row, string_list
from medireach.models import GeoRecord


class BloodBankAdapter(RecordAdapter):
    kind = "blood_bank"

    def adapt(self, row: dict) -> GeoRecord:
        return GeoRecord(
            id=str(row["id"]),
            kind=self.kind,
            location=location_from_row(row),
            attributes={
                "name": row["name"],
                "blood_groups": [g.upper() for g in string_list(row.get("blood_groups"))],
                "address": row.get("address") or "",
                "contact": row.get("contact") or "",
            },
        )
