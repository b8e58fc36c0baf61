"""Distance ranking with optional radius cutoff."""

from __future__ import annotations

import math
from typing import Iterable, Optional

from medireach.errors import InvalidQueryError
from medireach.geo import Coordinate, distance_km
from medireach.models import GeoRecord, RankedResult


def check_radius(radius_km: Optional[float], origin: Optional[Coordinate]) -> None:
    """Raise InvalidQueryError for an unusable radius."""
    if radius_km is None:
        return
    if origin is None:
        raise InvalidQueryError("radius_km requires an origin")
    if isinstance(radius_km, bool) or not isinstance(radius_km, (int, float)):
        raise InvalidQueryError(f"radius_km {radius_km!r} is not a number")
    if not math.isfinite(radius_km) or radius_km <= 0:
        raise InvalidQueryError(f"radius_km must be a positive finite number, got {radius_km}")


def rank(
    records: Iterable[GeoRecord],
    origin: Optional[Coordinate] = None,
    radius_km: Optional[float] = None,
) -> list[RankedResult]:
    """Attach distances, drop records beyond the radius, sort nearest-first.

    Without an origin every record is returned in input order with
    ``distance_km=None``. Records exactly on the radius are kept. Ties keep
    their input order.
    """
    check_radius(radius_km, origin)

    if origin is None:
        return [RankedResult(record=record) for record in records]

    origin.validate()
    ranked = [
        RankedResult(record=record, distance_km=distance_km(origin, record.location))
        for record in records
    ]
    if radius_km is not None:
        ranked = [r for r in ranked if r.distance_km <= radius_km]

    return sorted(ranked, key=lambda r: r.distance_km)
