"""
Distance calculation using the Haversine formula.

Assumption
----------
Fares and driver ETAs are derived from great-circle (Haversine) distance
rather than road distance.  Callers that have a routed distance can pass
it to the fare engine as an override.

Invalid input
-------------
``distance_km`` raises :class:`InvalidCoordinate` for NaN / out-of-range
input.  Ranking and filtering code uses ``safe_distance_km`` instead,
which substitutes a large sentinel so a bad reading pushes a driver to
the back of the list rather than crashing the request.

Complexity: O(1) per call.
"""

from __future__ import annotations

import logging
import math

from .entities import Coordinate
from .exceptions import InvalidCoordinate

EARTH_RADIUS_KM = 6_371.0
INVALID_DISTANCE_KM = 999.0

logger = logging.getLogger(__name__)


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km** between two points."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(1.0, a)))


def validate_coordinate(point: Coordinate) -> Coordinate:
    """Return *point* unchanged, or raise ``InvalidCoordinate``."""
    lat, lng = point.latitude, point.longitude
    try:
        lat, lng = float(lat), float(lng)
    except (TypeError, ValueError) as exc:
        raise InvalidCoordinate(f"Non-numeric coordinate: {point!r}") from exc
    if math.isnan(lat) or math.isnan(lng):
        raise InvalidCoordinate(f"NaN in coordinate: {point!r}")
    if not -90.0 <= lat <= 90.0:
        raise InvalidCoordinate(f"Latitude out of range: {lat}")
    if not -180.0 <= lng <= 180.0:
        raise InvalidCoordinate(f"Longitude out of range: {lng}")
    return point


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two validated coordinates."""
    validate_coordinate(a)
    validate_coordinate(b)
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def safe_distance_km(
    a: Coordinate,
    b: Coordinate,
    sentinel: float = INVALID_DISTANCE_KM,
) -> float:
    """Like ``distance_km`` but returns *sentinel* for invalid input."""
    try:
        return distance_km(a, b)
    except InvalidCoordinate as exc:
        logger.warning("Invalid coordinates, using %.0f km: %s", sentinel, exc)
        return sentinel
