"""Great-circle distance and coordinate validation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from medireach.errors import InvalidCoordinateError

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Coordinate:
    """A WGS84 point in decimal degrees.

    Construction does not validate; call ``validate()`` (or any engine entry
    point, which does it for you) before trusting the values.
    """

    lat: float
    lng: float

    def errors(self) -> list[str]:
        """Return validation messages for this coordinate (empty = valid)."""
        errors: list[str] = []
        for name, value, bound in (("latitude", self.lat, 90), ("longitude", self.lng, 180)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                errors.append(f"{name} {value!r} is not a number")
            elif not math.isfinite(value):
                errors.append(f"{name} {value} is not finite")
            elif not -bound <= value <= bound:
                errors.append(f"{name} {value} out of range [-{bound}, {bound}]")
        return errors

    def validate(self) -> Coordinate:
        errors = self.errors()
        if errors:
            raise InvalidCoordinateError(errors)
        return self

    @classmethod
    def parse(cls, value: Any) -> Coordinate:
        """Build a Coordinate from a Coordinate, a lat/lng mapping or a pair."""
        if isinstance(value, Coordinate):
            return value
        try:
            if isinstance(value, dict):
                lat = value["lat"] if "lat" in value else value["latitude"]
                lng = value["lng"] if "lng" in value else value["longitude"]
            else:
                lat, lng = value
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidCoordinateError([f"cannot read coordinate from {value!r}"]) from exc
        return cls(lat=lat, lng=lng)

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points on Earth in kilometers.

    Uses the Haversine formula. Inputs are WGS84 decimal degrees.
    """
    rlat1, rlon1 = math.radians(lat1), math.radians(lon1)
    rlat2, rlon2 = math.radians(lat2), math.radians(lon2)

    dlat = rlat2 - rlat1
    dlon = rlon2 - rlon1

    a = math.sin(dlat / 2) ** 2 + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlon / 2) ** 2
    # Rounding can push near-antipodal pairs just past 1.0.
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Validated great-circle distance between two coordinates, in km.

    Raises InvalidCoordinateError if either point is out of range.
    """
    a.validate()
    b.validate()
    if a.lat == b.lat and a.lng == b.lng:
        return 0.0
    return haversine_km(a.lat, a.lng, b.lat, b.lng)


def distance_m(a: Coordinate, b: Coordinate) -> float:
    return distance_km(a, b) * 1000.0
