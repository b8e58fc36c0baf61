"""Exception types raised by the proximity search engine and its sources."""

from __future__ import annotations


class MediReachError(Exception):
    """Base class for all medireach errors."""


class InvalidCoordinateError(MediReachError, ValueError):
    """Raised when a latitude/longitude pair is out of range or non-finite."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Invalid coordinate: {'; '.join(errors)}")


class InvalidQueryError(MediReachError, ValueError):
    """Raised for self-contradictory or out-of-range search parameters."""


class RecordSourceError(MediReachError, RuntimeError):
    """Raised when a record source cannot be read after all retries."""
