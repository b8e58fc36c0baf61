"""Adapter for rows of the `donors` table."""

from __future__ import annotations

from datetime import date

from medireach.adapters.base import RecordAdapter, location_from_row
from medireach.models import GeoRecord


class DonorAdapter(RecordAdapter):
    kind = "donor"

    def adapt(self, row: dict) -> GeoRecord:
        last_donation = row.get("last_donation_date")
        if isinstance(last_donation, str):
            last_donation = date.fromisoformat(last_donation[:10])

        return GeoRecord(
            id=str(row["id"]),
            kind=self.kind,
            location=location_from_row(row),
            attributes={
                "name": row["name"],
                "blood_group": str(row["blood_group"]).upper(),
                "phone": row.get("phone") or "",
                "sos_enabled": bool(row.get("sos_enabled", False)),
                "last_donation_date": last_donation,
            },
        )
