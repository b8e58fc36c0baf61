"""Predicate sets for the hospital, blood bank, camp and donor searches."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from medireach.models import Predicate
from medireach.predicates import (
    attribute_equals,
    collection_contains,
    date_on_or_after,
    date_on_or_before,
    text_matches,
)

ALL = "all"

HOSPITAL_TYPES = ["government", "private", "ngo"]
HOSPITAL_STATUSES = ["open", "available", "full"]
CAMP_TYPES = ["vaccine", "medicine", "checkup", "awareness"]
BLOOD_GROUPS = ["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]

DEFAULT_HOSPITAL_RADIUS_KM = 20.0
DEFAULT_DONOR_RADIUS_KM = 10.0

TEXT_SEARCH_FIELDS = ("name", "address")


def _given(value: Optional[str]) -> bool:
    return bool(value) and value != ALL


def hospital_predicates(
    type: Optional[str] = None,
    status: Optional[str] = None,
    text: Optional[str] = None,
) -> list[Predicate]:
    predicates: list[Predicate] = []
    if _given(type):
        predicates.append(attribute_equals("type", type.lower()))
    if _given(status):
        predicates.append(attribute_equals("status", status.lower()))
    if text and len(text.strip()) >= 2:
        predicates.append(text_matches(TEXT_SEARCH_FIELDS, text))
    return predicates


def emergency_hospital_predicates() -> list[Predicate]:
    """Hospitals currently accepting emergencies."""
    return [attribute_equals("status", "open")]


def blood_bank_predicates(blood_group: Optional[str] = None) -> list[Predicate]:
    if _given(blood_group):
        return [collection_contains("blood_groups", blood_group.upper())]
    return []


def camp_predicates(
    today: date,
    type: Optional[str] = None,
    within_days: Optional[int] = None,
) -> list[Predicate]:
    """Upcoming camps from ``today`` on, optionally within a window of days."""
    predicates: list[Predicate] = [date_on_or_after("date", today)]
    if within_days is not None:
        predicates.append(date_on_or_before("date", today + timedelta(days=within_days)))
    if _given(type):
        predicates.append(attribute_equals("type", type.lower()))
    return predicates


def donor_predicates(blood_group: Optional[str] = None) -> list[Predicate]:
    """SOS-enabled donors, optionally of one blood group."""
    predicates: list[Predicate] = [attribute_equals("sos_enabled", True)]
    if _given(blood_group):
        predicates.append(attribute_equals("blood_group", blood_group.upper()))
    return predicates
