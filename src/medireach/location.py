"""Location provider: explicit fix, IP-based lookup, then a fixed default.

Supplies the origin for proximity searches. Failures here never raise;
each step falls back to the next one and says so in the result message.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from medireach.geo import Coordinate, distance_m

logger = logging.getLogger(__name__)

IP_LOOKUP_URL = "https://ipapi.co/json/"
IP_LOOKUP_TIMEOUT_SECONDS = 5.0

# Bhubaneswar, India
DEFAULT_LOCATION = Coordinate(lat=20.2961, lng=85.8245)

# Position-watch throttling
MIN_MOVE_METERS = 25.0
MAX_FIX_AGE_SECONDS = 15.0


@dataclass(frozen=True)
class ResolvedLocation:
    coordinate: Coordinate
    method: str                 # "explicit", "ip", "default"
    message: str = ""

    @property
    def approximate(self) -> bool:
        return self.method != "explicit"


async def lookup_ip_location(
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Coordinate | None:
    """Approximate the caller's position from their public IP address."""
    try:
        async with httpx.AsyncClient(timeout=IP_LOOKUP_TIMEOUT_SECONDS, transport=transport) as client:
            resp = await client.get(IP_LOOKUP_URL)
            resp.raise_for_status()
            data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("IP-based location failed: %s", exc)
        return None

    if not isinstance(data, dict) or data.get("error"):
        logger.warning("IP-based location returned no position: %s", data)
        return None

    lat, lng = data.get("latitude"), data.get("longitude")
    if lat is None or lng is None:
        logger.warning("IP-based location response has no coordinates")
        return None

    coordinate = Coordinate(lat=lat, lng=lng)
    errors = coordinate.errors()
    if errors:
        logger.warning("IP-based location is invalid: %s", errors)
        return None
    return coordinate


async def resolve_location(
    explicit: Optional[Coordinate] = None,
    use_ip: bool = True,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ResolvedLocation:
    """Pick the best available origin.

    An explicit coordinate must be valid (InvalidCoordinateError otherwise);
    the IP lookup and the default are fallbacks.
    """
    if explicit is not None:
        return ResolvedLocation(explicit.validate(), "explicit")

    if use_ip:
        coordinate = await lookup_ip_location(transport=transport)
        if coordinate is not None:
            logger.info("IP-based location detected: %s", coordinate)
            return ResolvedLocation(
                coordinate, "ip", "Location detected using IP address (approximate)",
            )

    return ResolvedLocation(
        DEFAULT_LOCATION,
        "default",
        "Using default location (Bhubaneswar). Enable location for accuracy.",
    )


def should_refresh(
    previous: Optional[Coordinate],
    current: Coordinate,
    seconds_since_update: float,
    min_move_m: float = MIN_MOVE_METERS,
    max_age_s: float = MAX_FIX_AGE_SECONDS,
) -> bool:
    """Decide whether a new position fix should trigger a re-search.

    Invalid fixes never trigger a refresh. Otherwise refresh when there is
    no previous fix, the last one is older than ``max_age_s``, or the user
    moved more than ``min_move_m``.
    """
    if current.errors():
        return False
    if previous is None or seconds_since_update > max_age_s:
        return True
    return distance_m(previous, current) > min_move_m
