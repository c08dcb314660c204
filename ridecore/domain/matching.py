"""
Driver compatibility filtering
==============================

1. **Vehicle compatibility** -- a request for a base type (``sedan``,
   ``suv``, ``hatchback``) may be served by the base type or its ``_ac``
   upgrade; an ``_ac`` request needs that exact ``_ac`` type.  Any other
   type (``auto``, ``bike``, ...) matches only itself.  Comparison is
   case-insensitive and ignores surrounding whitespace.
2. **Eligibility gates** -- online, verified, has a vehicle, and reported
   a location within the freshness window (default 5 minutes).
3. **Nearby ranking** -- eligible drivers within a radius of the pickup,
   nearest first.

An empty result is a valid outcome, never an error.

Complexity: O(N) filter, O(N log N) ranking, N = drivers in the snapshot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from .distance import INVALID_DISTANCE_KM, safe_distance_km
from .entities import Coordinate, Driver
from .enums import DriverStatus

FRESHNESS_WINDOW = timedelta(minutes=5)

COMPATIBLE_VEHICLE_TYPES: dict[str, frozenset[str]] = {
    "hatchback": frozenset({"hatchback", "hatchback_ac"}),
    "hatchback_ac": frozenset({"hatchback_ac"}),
    "sedan": frozenset({"sedan", "sedan_ac"}),
    "sedan_ac": frozenset({"sedan_ac"}),
    "suv": frozenset({"suv", "suv_ac"}),
    "suv_ac": frozenset({"suv_ac"}),
}

logger = logging.getLogger(__name__)


def normalize_vehicle_type(vehicle_type: Optional[str]) -> str:
    return (vehicle_type or "").strip().lower()


def compatible_vehicle_types(requested: str) -> frozenset[str]:
    """Driver vehicle types that may serve a *requested* type."""
    key = normalize_vehicle_type(requested)
    return COMPATIBLE_VEHICLE_TYPES.get(key, frozenset({key}))


def is_compatible(requested: str, offered: Optional[str]) -> bool:
    offered_key = normalize_vehicle_type(offered)
    if not offered_key:
        return False
    return offered_key in compatible_vehicle_types(requested)


def _as_utc(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def has_fresh_location(
    driver: Driver,
    now: datetime,
    window: timedelta = FRESHNESS_WINDOW,
) -> bool:
    if driver.location is None:
        return False
    return _as_utc(now) - _as_utc(driver.location.updated_at) < window


def _rejection_reason(
    requested: str, driver: Driver, now: datetime, window: timedelta
) -> Optional[str]:
    if driver.status is not DriverStatus.ONLINE:
        return f"status={driver.status.value}"
    if not driver.is_verified:
        return "not verified"
    if not normalize_vehicle_type(driver.vehicle_type):
        return "no vehicle"
    if not is_compatible(requested, driver.vehicle_type):
        return f"vehicle {driver.vehicle_type!r} incompatible"
    if driver.location is None:
        return "no location"
    if not has_fresh_location(driver, now, window):
        return "stale location"
    return None


def filter_compatible(
    requested: str,
    pool: Iterable[Driver],
    now: Optional[datetime] = None,
    window: timedelta = FRESHNESS_WINDOW,
    log: Optional[logging.Logger] = None,
) -> list[Driver]:
    """Return drivers from *pool* that may be offered a *requested* ride."""
    log = log or logger
    now = now or datetime.now(timezone.utc)
    eligible: list[Driver] = []
    for driver in pool:
        reason = _rejection_reason(requested, driver, now, window)
        if reason is None:
            eligible.append(driver)
        else:
            log.debug("Driver %s excluded: %s", driver.id, reason)
    log.info(
        "%d eligible drivers for vehicle type %r",
        len(eligible),
        normalize_vehicle_type(requested),
    )
    return eligible


# ── Nearby ranking ────────────────────────────────────────────────────


@dataclass(frozen=True)
class NearbyDriver:
    driver: Driver
    distance_km: float


def find_nearby(
    pickup: Coordinate,
    requested: str,
    pool: Iterable[Driver],
    radius_km: float = 10.0,
    now: Optional[datetime] = None,
    window: timedelta = FRESHNESS_WINDOW,
    sentinel_km: float = INVALID_DISTANCE_KM,
) -> list[NearbyDriver]:
    """Eligible drivers within *radius_km* of *pickup*, nearest first."""
    ranked = []
    for driver in filter_compatible(requested, pool, now, window):
        d = safe_distance_km(pickup, driver.location.coordinate, sentinel_km)
        if d <= radius_km:
            ranked.append(NearbyDriver(driver, d))
    ranked.sort(key=lambda n: n.distance_km)
    return ranked
