"""
Dispatch Notifier
=================

Turns the eligible driver set for a ride into ride-request notification
records.

Lifecycle (from the notifier's point of view)::

    Requested --> Dispatched                 (>= 1 record produced)
              --> NoDriversAvailable         (0 eligible drivers)
              --> ManualAllocationRequired   (rental / outstation / airport)

Per-driver metrics
------------------
* ``distance_km`` -- Haversine from pickup to the driver's last location;
  a driver without a location gets ``default_distance_km`` (5 km) and is
  flagged ``distance_estimated``; an invalid reading gets the sentinel.
* ``eta_min``     -- ``round(distance_km x eta_minutes_per_km)`` (2 min/km).

The notifier performs no I/O.  Publishing the records and writing the
outcome back to the ride belong to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from .distance import INVALID_DISTANCE_KM, safe_distance_km
from .entities import Driver, NotificationRecord, Ride
from .enums import MANUAL_BOOKING_TYPES, DispatchOutcome
from .matching import FRESHNESS_WINDOW, filter_compatible
from .pricing import round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchPolicy:
    eta_minutes_per_km: float = 2.0
    default_distance_km: float = 5.0
    invalid_distance_km: float = INVALID_DISTANCE_KM
    freshness_window: timedelta = FRESHNESS_WINDOW


@dataclass
class DispatchResult:
    outcome: DispatchOutcome
    records: list[NotificationRecord] = field(default_factory=list)
    reason: str = ""

    @property
    def drivers_notified(self) -> int:
        return len(self.records)


class DispatchNotifier:
    def __init__(
        self,
        policy: Optional[DispatchPolicy] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.policy = policy or DispatchPolicy()
        self.log = log or logger

    # ── public API ────────────────────────────────────────────────

    def plan(
        self,
        ride: Ride,
        pool: Iterable[Driver],
        now: Optional[datetime] = None,
    ) -> DispatchResult:
        """Filter *pool* for *ride* and build the notification batch."""
        manual = self._manual_allocation(ride)
        if manual is not None:
            return manual
        eligible = filter_compatible(
            ride.vehicle_type,
            pool,
            now=now,
            window=self.policy.freshness_window,
            log=self.log,
        )
        return self.dispatch(ride, eligible)

    def dispatch(
        self, ride: Ride, eligible_drivers: Iterable[Driver]
    ) -> DispatchResult:
        manual = self._manual_allocation(ride)
        if manual is not None:
            return manual

        records = [self.build_record(ride, d) for d in eligible_drivers]
        if not records:
            self.log.info("Ride %s: no drivers available", ride.id)
            return DispatchResult(
                DispatchOutcome.NO_DRIVERS_AVAILABLE,
                reason="No drivers available with matching vehicle type",
            )

        self.log.info("Ride %s: %d drivers to notify", ride.id, len(records))
        return DispatchResult(
            DispatchOutcome.DISPATCHED,
            records=records,
            reason=f"{len(records)} drivers notified",
        )

    # ── internals ─────────────────────────────────────────────────

    def _manual_allocation(self, ride: Ride) -> Optional[DispatchResult]:
        if ride.booking_type not in MANUAL_BOOKING_TYPES:
            return None
        self.log.info(
            "Ride %s: %s booking requires manual allocation",
            ride.id,
            ride.booking_type.value,
        )
        return DispatchResult(
            DispatchOutcome.MANUAL_ALLOCATION_REQUIRED,
            reason=(
                f"{ride.booking_type.value} bookings require admin "
                "allocation - not sent to drivers"
            ),
        )

    def driver_distance(self, ride: Ride, driver: Driver) -> tuple[float, bool]:
        """Return ``(distance_km, estimated)`` from pickup to *driver*."""
        if driver.location is None:
            return self.policy.default_distance_km, True
        d = safe_distance_km(
            ride.pickup,
            driver.location.coordinate,
            self.policy.invalid_distance_km,
        )
        return d, False

    def build_record(self, ride: Ride, driver: Driver) -> NotificationRecord:
        distance, estimated = self.driver_distance(ride, driver)
        eta = int(round_half_up(distance * self.policy.eta_minutes_per_km))
        pickup_label = ride.pickup_address or (
            f"{ride.pickup.latitude:.5f}, {ride.pickup.longitude:.5f}"
        )
        return NotificationRecord(
            driver_user_id=driver.user_id,
            ride_id=str(ride.id or ""),
            distance_km=distance,
            eta_min=eta,
            message=f"Pickup: {pickup_label} • {distance:.1f}km away",
            distance_estimated=estimated,
            payload=self._payload(ride, distance, eta),
        )

    @staticmethod
    def _payload(ride: Ride, distance: float, eta: int) -> dict[str, Any]:
        return {
            "ride_id": str(ride.id or ""),
            "ride_code": ride.ride_code,
            "customer_id": ride.customer_id,
            "customer_name": ride.customer_name or "Customer",
            "customer_phone": ride.customer_phone,
            "pickup_address": ride.pickup_address,
            "pickup_coords": {
                "latitude": ride.pickup.latitude,
                "longitude": ride.pickup.longitude,
            },
            "destination_address": ride.destination_address,
            "destination_coords": {
                "latitude": ride.destination.latitude,
                "longitude": ride.destination.longitude,
            },
            "vehicle_type": ride.vehicle_type,
            "booking_type": ride.booking_type.value,
            "fare_amount": ride.fare_amount,
            "distance": round_half_up(distance, 2),
            "eta": eta,
        }
