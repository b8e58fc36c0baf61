"""Reusable attribute predicates for candidate filtering.

Every predicate is defensive: a missing attribute, an unexpected value type
or an unparseable date makes it return False instead of raising, so one
misconfigured filter never aborts a whole search.
"""

from __future__ import annotations

from collections.abc import Collection
from datetime import date, datetime
from typing import Any, Iterable

from medireach.models import GeoRecord, Predicate

_MISSING = object()


def _coerce_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            # Accept both "2024-05-01" and full ISO timestamps.
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        except ValueError:
            return None
    return None


def attribute_equals(key: str, value: Any) -> Predicate:
    def predicate(record: GeoRecord) -> bool:
        actual = record.attributes.get(key, _MISSING)
        if actual is _MISSING:
            return False
        try:
            return bool(actual == value)
        except (TypeError, ValueError):
            return False

    predicate.__name__ = f"attribute_equals({key!r}, {value!r})"
    return predicate


def attribute_in(key: str, values: Iterable[Any]) -> Predicate:
    allowed = list(values)

    def predicate(record: GeoRecord) -> bool:
        actual = record.attributes.get(key, _MISSING)
        if actual is _MISSING:
            return False
        try:
            return actual in allowed
        except (TypeError, ValueError):
            return False

    predicate.__name__ = f"attribute_in({key!r})"
    return predicate


def date_on_or_after(key: str, reference_date: date | datetime | str) -> Predicate:
    """Match records whose ``key`` date is on or after ``reference_date``.

    The reference is supplied by the caller; no clock is read here.
    """
    reference = _coerce_date(reference_date)
    if reference is None:
        raise ValueError(f"cannot interpret {reference_date!r} as a date")

    def predicate(record: GeoRecord) -> bool:
        actual = _coerce_date(record.attributes.get(key))
        return actual is not None and actual >= reference

    predicate.__name__ = f"date_on_or_after({key!r}, {reference.isoformat()})"
    return predicate


def date_on_or_before(key: str, reference_date: date | datetime | str) -> Predicate:
    reference = _coerce_date(reference_date)
    if reference is None:
        raise ValueError(f"cannot interpret {reference_date!r} as a date")

    def predicate(record: GeoRecord) -> bool:
        actual = _coerce_date(record.attributes.get(key))
        return actual is not None and actual <= reference

    predicate.__name__ = f"date_on_or_before({key!r}, {reference.isoformat()})"
    return predicate


def collection_contains(key: str, value: Any) -> Predicate:
    """Match records whose ``key`` attribute is a collection holding ``value``.

    Strings are not treated as collections ("AB+" does not contain "A").
    """

    def predicate(record: GeoRecord) -> bool:
        actual = record.attributes.get(key)
        if isinstance(actual, (str, bytes)) or not isinstance(actual, Collection):
            return False
        try:
            return value in actual
        except TypeError:
            return False

    predicate.__name__ = f"collection_contains({key!r}, {value!r})"
    return predicate


def text_matches(keys: Iterable[str], needle: str) -> Predicate:
    """Case-insensitive substring match against any of ``keys``."""
    fields = list(keys)
    wanted = needle.strip().casefold()

    def predicate(record: GeoRecord) -> bool:
        for key in fields:
            actual = record.attributes.get(key)
            if isinstance(actual, str) and wanted in actual.casefold():
                return True
        return False

    predicate.__name__ = f"text_matches({fields!r}, {needle!r})"
    return predicate
