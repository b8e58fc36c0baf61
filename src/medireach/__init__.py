"""Proximity search over geotagged hospitals, blood banks, camps and donors."""

from medireach.errors import InvalidCoordinateError, InvalidQueryError, MediReachError
from medireach.geo import Coordinate, distance_km, haversine_km
from medireach.models import GeoRecord, RankedResult, SearchQuery
from medireach.search import nearest, search

__all__ = [
    "Coordinate",
    "GeoRecord",
    "InvalidCoordinateError",
    "InvalidQueryError",
    "MediReachError",
    "RankedResult",
    "SearchQuery",
    "distance_km",
    "haversine_km",
    "nearest",
    "search",
]
