"""
Fare Engine
===========

Formula
-------
    distance_fare = max(0, distance - BASE_KM_COVERED) x per_km_rate
    surge_fare    = (base_fare + distance_fare) x (surge_multiplier - 1)
    subtotal      = max(base_fare + distance_fare + surge_fare, minimum_fare)
    deadhead      = (dist(destination, hub) / DEADHEAD_DIVISOR) x per_km_rate
                    only for REGULAR bookings whose destination lies between
                    the Inner and Outer Ring
    total         = round(subtotal + deadhead)

* The first ``base_km_covered`` km (default 4) are included in the base fare.
* Duration defaults to ``distance / average_speed_kmh`` (default 30 km/h).
* The minimum-fare floor applies to the subtotal, before deadhead.
* Display fields are rounded individually; the total is rounded once from
  the unrounded components.

Complexity: O(1) per quote.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from .distance import distance_km as _distance_km
from .entities import Coordinate, FareBreakdown, FareConfig, RideRequest, Zone
from .enums import BookingType, ZoneClass
from .exceptions import InvalidFareInput, MissingFareConfig
from .zones import ZoneAssessment, assess

# Operational hub used as the return point for deadhead pricing
HOSUR_BUS_STAND = Coordinate(12.7402, 77.8240)

logger = logging.getLogger(__name__)


def round_half_up(value: float, digits: int = 0) -> float:
    """Commercial rounding (2.5 -> 3), unlike the built-in ``round``."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _require_finite(name: str, value: float) -> float:
    if not math.isfinite(value) or value < 0:
        raise InvalidFareInput(f"{name} must be finite and non-negative: {value}")
    return value


# ── Policy ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class FarePolicy:
    base_km_covered: float = 4.0
    average_speed_kmh: float = 30.0
    deadhead_divisor: float = 2.0
    reference_hub: Coordinate = HOSUR_BUS_STAND


@dataclass(frozen=True)
class FareQuote:
    breakdown: FareBreakdown
    zone: Optional[ZoneAssessment]
    deadhead_applied: bool
    deadhead_reason: str

    @property
    def zone_class(self) -> Optional[ZoneClass]:
        return self.zone.zone_class if self.zone else None


_DEADHEAD_REASONS = {
    ZoneClass.WITHIN_INNER: "Within Inner Ring",
    ZoneClass.BETWEEN_INNER_AND_OUTER: "Between Inner and Outer Ring",
    ZoneClass.OUTSIDE_OUTER: "Outside Outer Ring",
    ZoneClass.ZONES_UNAVAILABLE: "Zones unavailable",
}


# ── Engine facade ─────────────────────────────────────────────────────


class FareEngine:
    """High-level API used by the quote endpoint and ride creation."""

    def __init__(
        self,
        policy: Optional[FarePolicy] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.policy = policy or FarePolicy()
        self.log = log or logger

    def distance_fare(self, distance: float, per_km_rate: float) -> float:
        return max(0.0, distance - self.policy.base_km_covered) * per_km_rate

    def estimate_duration(self, distance: float) -> float:
        return distance / self.policy.average_speed_kmh * 60

    def deadhead(
        self, destination: Coordinate, per_km_rate: float, hub: Coordinate
    ) -> tuple[float, float]:
        """Return ``(deadhead_distance_km, deadhead_charge)``."""
        deadhead_distance = _distance_km(destination, hub)
        charge = deadhead_distance / self.policy.deadhead_divisor * per_km_rate
        return deadhead_distance, charge

    def quote(
        self,
        req: RideRequest,
        config: Optional[FareConfig],
        inner_ring: Optional[Zone] = None,
        outer_ring: Optional[Zone] = None,
        *,
        distance_km: Optional[float] = None,
        duration_min: Optional[float] = None,
        reference_point: Optional[Coordinate] = None,
    ) -> FareQuote:
        if config is None:
            self.log.error(
                "No fare config for %s/%s",
                req.vehicle_type,
                req.booking_type.value,
            )
            raise MissingFareConfig(req.vehicle_type, req.booking_type.value)

        distance = (
            distance_km
            if distance_km is not None
            else _distance_km(req.pickup, req.destination)
        )
        duration = (
            duration_min
            if duration_min is not None
            else self.estimate_duration(distance)
        )
        _require_finite("distance_km", distance)
        _require_finite("duration_min", duration)

        surge_multiplier = config.surge_multiplier
        if surge_multiplier < 1.0:
            self.log.warning(
                "Surge multiplier %.2f for %s below 1.0; treating as 1.0",
                surge_multiplier,
                config.vehicle_type,
            )
            surge_multiplier = 1.0

        base_fare = config.base_fare
        distance_fare = self.distance_fare(distance, config.per_km_rate)
        surge_fare = (base_fare + distance_fare) * (surge_multiplier - 1)
        subtotal = max(base_fare + distance_fare + surge_fare, config.minimum_fare)

        deadhead_distance = deadhead_charge = 0.0
        zone: Optional[ZoneAssessment] = None
        if req.booking_type is BookingType.REGULAR:
            zone = assess(req.destination, inner_ring, outer_ring)
            applied = zone.zone_class is ZoneClass.BETWEEN_INNER_AND_OUTER
            reason = _DEADHEAD_REASONS[zone.zone_class]
            if zone.zone_class is ZoneClass.ZONES_UNAVAILABLE:
                self.log.warning(
                    "Inner/Outer Ring unavailable; deadhead disabled for quote"
                )
            if applied:
                deadhead_distance, deadhead_charge = self.deadhead(
                    req.destination,
                    config.per_km_rate,
                    reference_point or self.policy.reference_hub,
                )
        else:
            applied = False
            reason = "Non-regular booking type"

        total = _require_finite("total_fare", subtotal + deadhead_charge)
        breakdown = FareBreakdown(
            base_fare=round_half_up(base_fare),
            distance_fare=round_half_up(distance_fare),
            time_fare=0.0,
            surge_fare=round_half_up(surge_fare),
            platform_fee=0.0,
            deadhead_charge=round_half_up(deadhead_charge),
            deadhead_distance_km=round_half_up(deadhead_distance, 2),
            total_fare=round_half_up(total),
            distance_km=round_half_up(distance, 2),
            duration_min=round_half_up(duration),
        )
        self.log.info(
            "Fare quote %s/%s: %.2f km, subtotal=%.2f deadhead=%.2f total=%.0f (%s)",
            req.vehicle_type,
            req.booking_type.value,
            distance,
            subtotal,
            deadhead_charge,
            breakdown.total_fare,
            reason,
        )
        return FareQuote(
            breakdown=breakdown,
            zone=zone,
            deadhead_applied=applied,
            deadhead_reason=reason,
        )

    def calculate_fare(
        self,
        req: RideRequest,
        config: Optional[FareConfig],
        inner_ring: Optional[Zone] = None,
        outer_ring: Optional[Zone] = None,
        **overrides,
    ) -> FareBreakdown:
        return self.quote(req, config, inner_ring, outer_ring, **overrides).breakdown
