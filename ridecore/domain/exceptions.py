"""Domain error taxonomy.

Only genuine failures live here.  "Zones unavailable", "no drivers
available" and "manual allocation required" are ordinary outcomes and are
modelled as enum members in :mod:`ridecore.domain.enums`.
"""


class RideCoreError(Exception):
    """Base class for all domain errors."""


class InvalidCoordinate(RideCoreError, ValueError):
    """Latitude/longitude is NaN, infinite or out of range."""


class MissingFareConfig(RideCoreError):
    """No active fare row for a (vehicle_type, booking_type) pair."""

    def __init__(self, vehicle_type: str, booking_type: str):
        self.vehicle_type = vehicle_type
        self.booking_type = booking_type
        super().__init__(
            f"Pricing unavailable for {vehicle_type}/{booking_type}"
        )


class NotificationPublishFailure(RideCoreError):
    """The notification sink rejected a batch insert."""

    def __init__(self, ride_id: str, attempted: int, message: str = ""):
        self.ride_id = ride_id
        self.attempted = attempted
        super().__init__(
            f"Failed to publish {attempted} notifications for ride {ride_id}"
            + (f": {message}" if message else "")
        )


class InvalidStateTransition(RideCoreError):
    """Raised when a ride status change violates the state machine."""


class InvalidFareInput(RideCoreError, ValueError):
    """Distance, duration or a fare component is negative or not finite."""
