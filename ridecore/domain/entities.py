"""
Domain entities and value objects.

Patterns used
-------------
- **Value Objects** (``Coordinate``, ``Zone``, ``FareConfig``,
  ``RideRequest``): frozen dataclasses read as point-in-time snapshots.
- **State Pattern** on ``Ride``: enforces valid lifecycle transitions
  (requested -> accepted -> driver_arrived -> in_progress -> completed,
  with cancellation / no-drivers branches).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .enums import (
    RIDE_TRANSITIONS,
    BookingType,
    DriverStatus,
    NotificationStatus,
    RideStatus,
)
from .exceptions import InvalidStateTransition


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Zone:
    name: str
    center: Coordinate
    radius_km: float
    is_active: bool = True


@dataclass(frozen=True)
class FareConfig:
    vehicle_type: str
    base_fare: float
    per_km_rate: float
    minimum_fare: float
    surge_multiplier: float = 1.0
    booking_type: BookingType = BookingType.REGULAR


@dataclass(frozen=True)
class FareBreakdown:
    """Display-rounded fare components.  ``total_fare`` is computed from
    the unrounded components, so it may differ from the sum of the
    rounded fields by a unit."""

    base_fare: float
    distance_fare: float
    time_fare: float
    surge_fare: float
    platform_fee: float
    deadhead_charge: float
    deadhead_distance_km: float
    total_fare: float
    distance_km: float
    duration_min: float


@dataclass(frozen=True)
class RideRequest:
    pickup: Coordinate
    destination: Coordinate
    vehicle_type: str
    booking_type: BookingType = BookingType.REGULAR


@dataclass(frozen=True)
class DriverLocation:
    coordinate: Coordinate
    updated_at: datetime


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Driver:
    id: str
    user_id: str
    status: DriverStatus = DriverStatus.OFFLINE
    is_verified: bool = False
    vehicle_type: Optional[str] = None
    location: Optional[DriverLocation] = None
    full_name: Optional[str] = None
    rating: Optional[float] = None


@dataclass
class Ride:
    id: Optional[str] = None
    ride_code: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    pickup: Coordinate = field(default_factory=lambda: Coordinate(0, 0))
    destination: Coordinate = field(default_factory=lambda: Coordinate(0, 0))
    pickup_address: str = ""
    destination_address: str = ""
    vehicle_type: str = "sedan"
    booking_type: BookingType = BookingType.REGULAR
    fare_amount: Optional[float] = None
    status: RideStatus = RideStatus.REQUESTED
    driver_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def request(self) -> RideRequest:
        return RideRequest(
            pickup=self.pickup,
            destination=self.destination,
            vehicle_type=self.vehicle_type,
            booking_type=self.booking_type,
        )

    def transition_to(self, new_status: RideStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        allowed = RIDE_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition from {self.status.value} to {new_status.value}"
            )
        self.status = new_status


@dataclass
class NotificationRecord:
    driver_user_id: str
    ride_id: str
    distance_km: float
    eta_min: int
    message: str
    distance_estimated: bool = False
    status: NotificationStatus = NotificationStatus.UNREAD
    title: str = "New Ride Request"
    type: str = "ride_request"
    payload: dict[str, Any] = field(default_factory=dict)
