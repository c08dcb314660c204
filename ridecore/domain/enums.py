"""Domain enumerations and state-transition rules."""

import enum


class RideStatus(str, enum.Enum):
    REQUESTED = "requested"
    ACCEPTED = "accepted"
    DRIVER_ARRIVED = "driver_arrived"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_DRIVERS_AVAILABLE = "no_drivers_available"


# State machine: maps current status -> set of valid next statuses
RIDE_TRANSITIONS: dict[RideStatus, set[RideStatus]] = {
    RideStatus.REQUESTED: {
        RideStatus.ACCEPTED,
        RideStatus.CANCELLED,
        RideStatus.NO_DRIVERS_AVAILABLE,
    },
    RideStatus.NO_DRIVERS_AVAILABLE: {RideStatus.REQUESTED, RideStatus.CANCELLED},
    RideStatus.ACCEPTED: {RideStatus.DRIVER_ARRIVED, RideStatus.CANCELLED},
    RideStatus.DRIVER_ARRIVED: {RideStatus.IN_PROGRESS, RideStatus.CANCELLED},
    RideStatus.IN_PROGRESS: {RideStatus.COMPLETED},
    RideStatus.COMPLETED: set(),
    RideStatus.CANCELLED: set(),
}

# Statuses the assigned driver reports while working a ride
DRIVER_PROGRESS_STATUSES: frozenset[RideStatus] = frozenset(
    {RideStatus.DRIVER_ARRIVED, RideStatus.IN_PROGRESS, RideStatus.COMPLETED}
)


class BookingType(str, enum.Enum):
    REGULAR = "regular"
    RENTAL = "rental"
    OUTSTATION = "outstation"
    AIRPORT = "airport"


# Booking types that are allocated by an operator, never auto-dispatched
MANUAL_BOOKING_TYPES: frozenset[BookingType] = frozenset(
    {BookingType.RENTAL, BookingType.OUTSTATION, BookingType.AIRPORT}
)


class DriverStatus(str, enum.Enum):
    ONLINE = "online"
    BUSY = "busy"
    OFFLINE = "offline"


class ZoneClass(str, enum.Enum):
    WITHIN_INNER = "within_inner"
    BETWEEN_INNER_AND_OUTER = "between_inner_and_outer"
    OUTSIDE_OUTER = "outside_outer"
    ZONES_UNAVAILABLE = "zones_unavailable"


class DispatchOutcome(str, enum.Enum):
    DISPATCHED = "dispatched"
    NO_DRIVERS_AVAILABLE = "no_drivers_available"
    MANUAL_ALLOCATION_REQUIRED = "manual_allocation_required"


class NotificationStatus(str, enum.Enum):
    UNREAD = "unread"
    READ = "read"
    CANCELLED = "cancelled"
