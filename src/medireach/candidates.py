"""Location-independent candidate filtering."""

from __future__ import annotations

from typing import Iterable, Sequence

from medireach.models import GeoRecord, Predicate


def matches(record: GeoRecord, predicates: Sequence[Predicate]) -> bool:
    """True when every predicate accepts the record (stops at the first miss)."""
    return all(predicate(record) for predicate in predicates)


def filter_records(
    records: Iterable[GeoRecord],
    predicates: Sequence[Predicate] = (),
) -> list[GeoRecord]:
    """Keep only records accepted by all predicates, preserving input order."""
    if not predicates:
        return list(records)
    return [record for record in records if matches(record, predicates)]
