"""Data models for proximity search over geotagged healthcare records."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Optional, Sequence

from medireach.geo import Coordinate

Predicate = Callable[["GeoRecord"], bool]

# Attributes serialized as ISO dates and restored by GeoRecord.from_json
DATE_ATTRIBUTES = ("date", "last_donation_date")


def _json_default(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


@dataclass(frozen=True)
class GeoRecord:
    """A geotagged hospital, blood bank, camp or donor.

    Treated as an immutable snapshot for the duration of a search.
    """

    id: str
    location: Coordinate
    attributes: dict = field(default_factory=dict)
    kind: str = ""              # "hospital", "blood_bank", "camp", "donor"

    @property
    def name(self) -> str:
        return str(self.attributes.get("name") or self.id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "location": self.location.to_dict(),
            "attributes": dict(self.attributes),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=_json_default)

    @classmethod
    def from_json(cls, raw: str) -> GeoRecord:
        d = json.loads(raw)
        attributes = d.get("attributes") or {}
        for key in DATE_ATTRIBUTES:
            if isinstance(attributes.get(key), str):
                attributes[key] = date.fromisoformat(attributes[key][:10])
        return cls(
            id=d["id"],
            location=Coordinate.parse(d["location"]),
            attributes=attributes,
            kind=d.get("kind", ""),
        )


@dataclass
class SearchQuery:
    """Parameters for one proximity search.

    Without an origin the search runs in degraded mode: no distances, no
    radius cutoff, input order preserved.
    """

    origin: Optional[Coordinate] = None
    radius_km: Optional[float] = None
    predicates: Sequence[Predicate] = ()
    limit: Optional[int] = None


@dataclass(frozen=True)
class RankedResult:
    """A record paired with its distance from the search origin."""

    record: GeoRecord
    distance_km: Optional[float] = None

    def to_dict(self) -> dict:
        d = self.record.to_dict()
        d["distance_km"] = self.distance_km
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=_json_default)
