"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``users``           -- customers and drivers (contact details)
* ``drivers``         -- driver profile, status, verification, vehicle type
* ``live_locations``  -- latest reported position per user
* ``zones``           -- circular service zones (Inner / Outer Ring)
* ``fare_matrix``     -- pricing per (vehicle_type, booking_type)
* ``rides``           -- ride requests and their lifecycle status
* ``notifications``   -- ride-request / status notifications to users

Indexes
-------
* **B-Tree** on ``drivers.status``, ``rides.status``, ``zones.name``,
  ``fare_matrix (vehicle_type, booking_type)`` and
  ``notifications (ride_id, user_id)`` -- the look-ups used by the quote,
  dispatch and cancellation paths.
"""

import enum
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    String,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base
from ridecore.domain.enums import (
    BookingType,
    DriverStatus,
    NotificationStatus,
    RideStatus,
)


def _uuid() -> str:
    return str(uuid.uuid4())


def _enum(enum_cls: type[enum.Enum], name: str) -> Enum:
    """Store enum *values* (``"online"``) rather than member names."""
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda e: [m.value for m in e],
    )


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    full_name = Column(String(120), nullable=False)
    phone_number = Column(String(20), unique=True, nullable=True)
    email = Column(String(255), unique=True, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, unique=True)
    status = Column(
        _enum(DriverStatus, "driverstatus"),
        default=DriverStatus.OFFLINE,
        nullable=False,
    )
    is_verified = Column(Boolean, default=False, nullable=False)
    vehicle_type = Column(String(30), nullable=True)
    rating = Column(Float, default=5.0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("UserModel", lazy="joined")

    __table_args__ = (
        Index("idx_drivers_status", "status", "is_verified"),
    )


class LiveLocationModel(Base):
    __tablename__ = "live_locations"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, unique=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    heading = Column(Float, nullable=True)
    speed = Column(Float, nullable=True)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class ZoneModel(Base):
    __tablename__ = "zones"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(60), nullable=False)
    center_latitude = Column(Float, nullable=False)
    center_longitude = Column(Float, nullable=False)
    radius_km = Column(Float, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_zones_name", "name", "is_active"),)


class FareMatrixModel(Base):
    __tablename__ = "fare_matrix"

    id = Column(String(36), primary_key=True, default=_uuid)
    vehicle_type = Column(String(30), nullable=False)
    booking_type = Column(
        _enum(BookingType, "bookingtype"),
        default=BookingType.REGULAR,
        nullable=False,
    )
    base_fare = Column(Float, nullable=False)
    per_km_rate = Column(Float, nullable=False)
    minimum_fare = Column(Float, nullable=False)
    surge_multiplier = Column(Float, default=1.0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_fare_matrix_lookup", "vehicle_type", "booking_type", "is_active"),
    )


class RideModel(Base):
    __tablename__ = "rides"

    id = Column(String(36), primary_key=True, default=_uuid)
    ride_code = Column(String(6), nullable=False)
    customer_id = Column(String(36), ForeignKey("users.id"), nullable=False)

    pickup_address = Column(String(255), nullable=False, default="")
    pickup_latitude = Column(Float, nullable=False)
    pickup_longitude = Column(Float, nullable=False)
    destination_address = Column(String(255), nullable=False, default="")
    destination_latitude = Column(Float, nullable=False)
    destination_longitude = Column(Float, nullable=False)

    vehicle_type = Column(String(30), nullable=False)
    booking_type = Column(
        _enum(BookingType, "bookingtype"),
        default=BookingType.REGULAR,
        nullable=False,
    )
    fare_amount = Column(Float, nullable=True)
    status = Column(
        _enum(RideStatus, "ridestatus"),
        default=RideStatus.REQUESTED,
        nullable=False,
    )
    driver_id = Column(String(36), ForeignKey("drivers.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    customer = relationship("UserModel", lazy="joined")

    __table_args__ = (
        Index("idx_rides_status", "status"),
        Index("idx_rides_customer", "customer_id"),
        Index("idx_rides_driver", "driver_id"),
    )


class NotificationModel(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    ride_id = Column(String(36), ForeignKey("rides.id"), nullable=True)
    type = Column(String(30), nullable=False)
    title = Column(String(120), nullable=False)
    message = Column(String(500), nullable=False)
    data = Column(JSON, nullable=True)
    status = Column(
        _enum(NotificationStatus, "notificationstatus"),
        default=NotificationStatus.UNREAD,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_notifications_ride", "ride_id", "type"),
        Index("idx_notifications_user", "user_id", "status"),
    )
