"""
Concentric service-zone classification.

A destination is classified against two circular zones, the *Inner Ring*
and the *Outer Ring*.  Boundaries are inclusive (``distance <= radius``).

    within inner                  -> WITHIN_INNER   (regardless of outer)
    not within inner, within outer -> BETWEEN_INNER_AND_OUTER
    otherwise                     -> OUTSIDE_OUTER

When either zone is missing or unusable (inactive, centre out of range,
bad radius) the result is ``ZONES_UNAVAILABLE``; pricing treats that as
"no deadhead charge" rather than failing the quote.

The rings are not required to share a centre, and nothing checks that the
inner radius is smaller than the outer one.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional

from .distance import distance_km, validate_coordinate
from .entities import Coordinate, Zone
from .enums import ZoneClass
from .exceptions import InvalidCoordinate

INNER_RING = "Inner Ring"
OUTER_RING = "Outer Ring"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZoneAssessment:
    zone_class: ZoneClass
    distance_to_inner_km: Optional[float] = None
    distance_to_outer_km: Optional[float] = None

    @property
    def status_label(self) -> str:
        return _LABELS[self.zone_class]


_LABELS = {
    ZoneClass.WITHIN_INNER: "Within Inner Ring",
    ZoneClass.BETWEEN_INNER_AND_OUTER: "Between Inner and Outer Ring",
    ZoneClass.OUTSIDE_OUTER: "Outside Outer Ring",
    ZoneClass.ZONES_UNAVAILABLE: "Zones unavailable",
}


def _usable(zone: Optional[Zone]) -> bool:
    if zone is None or not zone.is_active:
        return False
    try:
        validate_coordinate(zone.center)
    except InvalidCoordinate as exc:
        logger.warning("Ignoring zone %r: %s", zone.name, exc)
        return False
    if not (math.isfinite(zone.radius_km) and zone.radius_km >= 0):
        logger.warning(
            "Ignoring zone %r: invalid radius %r", zone.name, zone.radius_km
        )
        return False
    return True


def assess(
    point: Coordinate,
    inner_ring: Optional[Zone],
    outer_ring: Optional[Zone],
) -> ZoneAssessment:
    """Classify *point* and keep the centre distances for diagnostics."""
    if not (_usable(inner_ring) and _usable(outer_ring)):
        return ZoneAssessment(ZoneClass.ZONES_UNAVAILABLE)

    to_inner = distance_km(point, inner_ring.center)
    to_outer = distance_km(point, outer_ring.center)
    within_inner = to_inner <= inner_ring.radius_km
    within_outer = to_outer <= outer_ring.radius_km

    if within_inner:
        zone_class = ZoneClass.WITHIN_INNER
    elif within_outer:
        zone_class = ZoneClass.BETWEEN_INNER_AND_OUTER
    else:
        zone_class = ZoneClass.OUTSIDE_OUTER
    return ZoneAssessment(zone_class, to_inner, to_outer)


def classify(
    point: Coordinate,
    inner_ring: Optional[Zone],
    outer_ring: Optional[Zone],
) -> ZoneClass:
    return assess(point, inner_ring, outer_ring).zone_class


def pick_rings(
    zones: Iterable[Zone],
    inner_name: str = INNER_RING,
    outer_name: str = OUTER_RING,
) -> tuple[Optional[Zone], Optional[Zone]]:
    """Select the inner/outer ring from a registry snapshot by name."""
    inner = outer = None
    for zone in zones:
        if zone.name == inner_name and inner is None:
            inner = zone
        elif zone.name == outer_name and outer is None:
            outer = zone
    return inner, outer
