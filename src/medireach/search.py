"""Query orchestration: filter, rank, limit."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from medireach.candidates import filter_records
from medireach.errors import InvalidQueryError
from medireach.geo import Coordinate
from medireach.models import GeoRecord, Predicate, RankedResult, SearchQuery
from medireach.ranker import check_radius, rank


def validate_query(query: SearchQuery) -> SearchQuery:
    """Check a query and return it with a parsed, validated origin."""
    origin = query.origin
    if origin is not None:
        origin = Coordinate.parse(origin).validate()

    check_radius(query.radius_km, origin)

    limit = query.limit
    if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0):
        raise InvalidQueryError(f"limit must be a positive integer, got {limit!r}")

    return SearchQuery(
        origin=origin,
        radius_km=query.radius_km,
        predicates=tuple(query.predicates),
        limit=limit,
    )


def search(records: Iterable[GeoRecord], query: Optional[SearchQuery] = None) -> list[RankedResult]:
    """Run a proximity search over an in-memory record collection.

    Pure: the same records and query always produce the same output.

    Raises:
        InvalidCoordinateError: the query origin is out of range.
        InvalidQueryError: radius without origin, non-positive radius or limit.
    """
    query = validate_query(query or SearchQuery())

    candidates = filter_records(records, query.predicates)
    results = rank(candidates, query.origin, query.radius_km)

    if query.limit is not None:
        results = results[:query.limit]
    return results


def nearest(
    records: Iterable[GeoRecord],
    origin: Coordinate,
    predicates: Sequence[Predicate] = (),
) -> RankedResult | None:
    """Return the closest record matching ``predicates``, or None."""
    if origin is None:
        raise InvalidQueryError("nearest() requires an origin")
    results = search(records, SearchQuery(origin=origin, predicates=predicates, limit=1))
    return results[0] if results else None
