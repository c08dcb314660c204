"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only, returning domain entities where the core
consumes them (zones, fare configs, drivers).
"""

from __future__ import annotations

import logging
import random
import string
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import exists, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    DriverModel,
    FareMatrixModel,
    LiveLocationModel,
    NotificationModel,
    RideModel,
    UserModel,
    ZoneModel,
)
from ridecore.domain.entities import (
    Coordinate,
    Driver,
    DriverLocation,
    FareConfig,
    NotificationRecord,
    Ride,
    Zone,
)
from ridecore.domain.enums import (
    BookingType,
    DriverStatus,
    NotificationStatus,
    RideStatus,
)
from ridecore.domain.exceptions import NotificationPublishFailure

logger = logging.getLogger(__name__)

RIDE_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_ride_code(length: int = 6) -> str:
    return "".join(random.choices(RIDE_CODE_ALPHABET, k=length))


def _as_utc(ts: datetime) -> datetime:
    # SQLite hands back naive datetimes; every timestamp we write is UTC.
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


# ── Mappers ───────────────────────────────────────────────────────────


def to_zone(m: ZoneModel) -> Zone:
    return Zone(
        name=m.name,
        center=Coordinate(m.center_latitude, m.center_longitude),
        radius_km=m.radius_km,
        is_active=m.is_active,
    )


def to_fare_config(m: FareMatrixModel) -> FareConfig:
    return FareConfig(
        vehicle_type=m.vehicle_type,
        base_fare=m.base_fare,
        per_km_rate=m.per_km_rate,
        minimum_fare=m.minimum_fare,
        surge_multiplier=m.surge_multiplier,
        booking_type=BookingType(m.booking_type),
    )


def to_driver(m: DriverModel, loc: Optional[LiveLocationModel]) -> Driver:
    location = None
    if loc is not None:
        location = DriverLocation(
            coordinate=Coordinate(loc.latitude, loc.longitude),
            updated_at=_as_utc(loc.updated_at),
        )
    return Driver(
        id=m.id,
        user_id=m.user_id,
        status=DriverStatus(m.status),
        is_verified=m.is_verified,
        vehicle_type=m.vehicle_type,
        location=location,
        full_name=m.user.full_name if m.user else None,
        rating=m.rating,
    )


def to_ride(m: RideModel) -> Ride:
    return Ride(
        id=m.id,
        ride_code=m.ride_code,
        customer_id=m.customer_id,
        customer_name=m.customer.full_name if m.customer else None,
        customer_phone=m.customer.phone_number if m.customer else None,
        pickup=Coordinate(m.pickup_latitude, m.pickup_longitude),
        destination=Coordinate(m.destination_latitude, m.destination_longitude),
        pickup_address=m.pickup_address,
        destination_address=m.destination_address,
        vehicle_type=m.vehicle_type,
        booking_type=BookingType(m.booking_type),
        fare_amount=m.fare_amount,
        status=RideStatus(m.status),
        driver_id=m.driver_id,
        created_at=m.created_at,
    )


# ── Zone registry ─────────────────────────────────────────────────────


class ZoneRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_active_zones(self, names: Iterable[str]) -> list[Zone]:
        result = await self.session.execute(
            select(ZoneModel).where(
                ZoneModel.name.in_(list(names)),
                ZoneModel.is_active.is_(True),
            )
        )
        return [to_zone(m) for m in result.scalars().all()]


# ── Fare configuration store ──────────────────────────────────────────


class FareConfigRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_fare_config(
        self, vehicle_type: str, booking_type: BookingType
    ) -> Optional[FareConfig]:
        result = await self.session.execute(
            select(FareMatrixModel)
            .where(
                FareMatrixModel.vehicle_type == vehicle_type.strip().lower(),
                FareMatrixModel.booking_type == booking_type,
                FareMatrixModel.is_active.is_(True),
            )
            .order_by(FareMatrixModel.created_at.desc())
            .limit(1)
        )
        row = result.scalar_one_or_none()
        return to_fare_config(row) if row else None


# ── Driver directory ──────────────────────────────────────────────────


class DriverRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_drivers(self) -> list[Driver]:
        """Online, verified drivers with a vehicle, plus last location."""
        result = await self.session.execute(
            select(DriverModel, LiveLocationModel)
            .outerjoin(
                LiveLocationModel,
                LiveLocationModel.user_id == DriverModel.user_id,
            )
            .where(
                DriverModel.status == DriverStatus.ONLINE,
                DriverModel.is_verified.is_(True),
                DriverModel.vehicle_type.is_not(None),
            )
        )
        return [to_driver(d, loc) for d, loc in result.unique().all()]

    async def get_by_id(self, driver_id: str) -> Optional[DriverModel]:
        return await self.session.get(DriverModel, driver_id)


# ── Rides ─────────────────────────────────────────────────────────────


class RideRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_ride(
        self,
        *,
        customer_id: str,
        pickup: Coordinate,
        destination: Coordinate,
        vehicle_type: str,
        booking_type: BookingType = BookingType.REGULAR,
        pickup_address: str = "",
        destination_address: str = "",
        fare_amount: Optional[float] = None,
    ) -> RideModel:
        ride = RideModel(
            ride_code=generate_ride_code(),
            customer_id=customer_id,
            pickup_address=pickup_address,
            pickup_latitude=pickup.latitude,
            pickup_longitude=pickup.longitude,
            destination_address=destination_address,
            destination_latitude=destination.latitude,
            destination_longitude=destination.longitude,
            vehicle_type=vehicle_type.strip().lower(),
            booking_type=booking_type,
            fare_amount=fare_amount,
            status=RideStatus.REQUESTED,
        )
        self.session.add(ride)
        await self.session.flush()
        await self.session.refresh(ride)
        return ride

    async def get_by_id(
        self, ride_id: str, populate_existing: bool = False
    ) -> Optional[RideModel]:
        return await self.session.get(
            RideModel, ride_id, populate_existing=populate_existing
        )

    async def get_undispatched(self, limit: int = 50) -> list[RideModel]:
        """Requested rides with no notifications yet, oldest first."""
        notified = exists().where(NotificationModel.ride_id == RideModel.id)
        result = await self.session.execute(
            select(RideModel)
            .where(
                RideModel.status == RideStatus.REQUESTED,
                RideModel.booking_type == BookingType.REGULAR,
                ~notified,
            )
            .order_by(RideModel.created_at)
            .limit(limit)
        )
        return list(result.unique().scalars().all())

    async def set_status(self, ride: RideModel, status: RideStatus) -> RideModel:
        ride.status = status
        ride.updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        return ride

    async def compare_and_set_status(
        self,
        ride: RideModel,
        expected: RideStatus,
        status: RideStatus,
        **values,
    ) -> bool:
        """Move *ride* to *status* only if the row is still *expected*.

        A single ``UPDATE ... WHERE status = :expected``; of two concurrent
        writers exactly one sees ``rowcount == 1``.  *ride* is refreshed
        either way.
        """
        result = await self.session.execute(
            update(RideModel)
            .where(RideModel.id == ride.id, RideModel.status == expected)
            .values(status=status, updated_at=datetime.now(timezone.utc), **values)
            .execution_options(synchronize_session=False)
        )
        await self.session.refresh(ride)
        return result.rowcount == 1


# ── Notification sink ─────────────────────────────────────────────────


class NotificationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def publish(self, records: list[NotificationRecord]) -> int:
        """Insert *records* as one batch.  All-or-nothing: any database
        error surfaces as a single ``NotificationPublishFailure``."""
        if not records:
            return 0
        ride_id = records[0].ride_id
        models = [
            NotificationModel(
                user_id=r.driver_user_id,
                ride_id=r.ride_id,
                type=r.type,
                title=r.title,
                message=r.message,
                data=r.payload,
                status=r.status,
            )
            for r in records
        ]
        try:
            self.session.add_all(models)
            await self.session.flush()
        except SQLAlchemyError as exc:
            logger.error(
                "Notification batch for ride %s failed (%d records): %s",
                ride_id,
                len(records),
                exc,
            )
            raise NotificationPublishFailure(ride_id, len(records), str(exc)) from exc
        logger.info("Published %d notifications for ride %s", len(models), ride_id)
        return len(models)

    async def cancel_ride_requests(
        self, ride_id: str, except_user_id: Optional[str] = None
    ) -> int:
        """Mark outstanding ride-request notifications as cancelled."""
        stmt = (
            update(NotificationModel)
            .where(
                NotificationModel.ride_id == ride_id,
                NotificationModel.type == "ride_request",
                NotificationModel.status != NotificationStatus.CANCELLED,
            )
            .values(
                status=NotificationStatus.CANCELLED,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        if except_user_id is not None:
            stmt = stmt.where(NotificationModel.user_id != except_user_id)
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def has_ride_requests(self, ride_id: str) -> bool:
        result = await self.session.execute(
            select(
                exists().where(
                    NotificationModel.ride_id == ride_id,
                    NotificationModel.type == "ride_request",
                )
            )
        )
        return bool(result.scalar())

    async def list_for_ride(self, ride_id: str) -> list[NotificationModel]:
        result = await self.session.execute(
            select(NotificationModel).where(NotificationModel.ride_id == ride_id)
        )
        return list(result.scalars().all())


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: str) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)
