"""Repository tests against the in-memory SQLite schema."""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError

from ridecore.domain.entities import Coordinate, NotificationRecord
from ridecore.domain.enums import BookingType, DriverStatus, NotificationStatus, RideStatus
from ridecore.domain.exceptions import NotificationPublishFailure
from ridecore.infrastructure.models import (
    DriverModel,
    FareMatrixModel,
    UserModel,
    ZoneModel,
)
from ridecore.infrastructure.repositories import (
    RIDE_CODE_ALPHABET,
    DriverRepository,
    FareConfigRepository,
    NotificationRepository,
    RideRepository,
    ZoneRepository,
    generate_ride_code,
)
from tests.conftest import seed_reference_data


async def _create_ride(session, ids, **kwargs):
    params = dict(
        customer_id=ids["customer"],
        pickup=Coordinate(12.7402, 77.8240),
        destination=Coordinate(12.80, 77.85),
        vehicle_type="sedan",
    )
    params.update(kwargs)
    return await RideRepository(session).create_ride(**params)


def _record(user_id, ride_id):
    return NotificationRecord(
        driver_user_id=user_id,
        ride_id=ride_id,
        distance_km=1.0,
        eta_min=2,
        message="Pickup: Test • 1.0km away",
    )


class TestRideCode:
    def test_six_alphanumerics(self):
        code = generate_ride_code()
        assert len(code) == 6
        assert set(code) <= set(RIDE_CODE_ALPHABET)


class TestZoneRepository:
    @pytest.mark.asyncio
    async def test_only_active_named_zones(self, db_session):
        await seed_reference_data(db_session)
        db_session.add(
            ZoneModel(
                name="Outer Ring",
                center_latitude=0,
                center_longitude=0,
                radius_km=1,
                is_active=False,
            )
        )
        await db_session.flush()

        zones = await ZoneRepository(db_session).get_active_zones(
            ["Inner Ring", "Outer Ring"]
        )
        assert sorted(z.name for z in zones) == ["Inner Ring", "Outer Ring"]
        assert all(z.is_active for z in zones)


class TestFareConfigRepository:
    @pytest.mark.asyncio
    async def test_lookup_is_case_insensitive(self, db_session):
        await seed_reference_data(db_session)
        config = await FareConfigRepository(db_session).get_fare_config(
            " Sedan ", BookingType.REGULAR
        )
        assert config is not None
        assert config.base_fare == 50
        assert config.booking_type is BookingType.REGULAR

    @pytest.mark.asyncio
    async def test_missing_pair_returns_none(self, db_session):
        await seed_reference_data(db_session)
        repo = FareConfigRepository(db_session)
        assert await repo.get_fare_config("suv", BookingType.REGULAR) is None
        assert await repo.get_fare_config("sedan", BookingType.AIRPORT) is None

    @pytest.mark.asyncio
    async def test_inactive_rows_ignored(self, db_session):
        db_session.add(
            FareMatrixModel(
                vehicle_type="bike",
                booking_type=BookingType.REGULAR,
                base_fare=20,
                per_km_rate=5,
                minimum_fare=25,
                is_active=False,
            )
        )
        await db_session.flush()
        repo = FareConfigRepository(db_session)
        assert await repo.get_fare_config("bike", BookingType.REGULAR) is None


class TestDriverRepository:
    @pytest.mark.asyncio
    async def test_lists_online_verified_with_location(self, db_session):
        ids = await seed_reference_data(db_session)

        offline = UserModel(full_name="Offline Driver")
        no_loc = UserModel(full_name="No Location")
        db_session.add_all([offline, no_loc])
        await db_session.flush()
        db_session.add_all(
            [
                DriverModel(
                    user_id=offline.id,
                    status=DriverStatus.OFFLINE,
                    is_verified=True,
                    vehicle_type="sedan",
                ),
                DriverModel(
                    user_id=no_loc.id,
                    status=DriverStatus.ONLINE,
                    is_verified=True,
                    vehicle_type="sedan",
                ),
            ]
        )
        await db_session.flush()

        drivers = await DriverRepository(db_session).list_drivers()
        by_user = {d.user_id: d for d in drivers}

        assert offline.id not in by_user
        assert by_user[no_loc.id].location is None
        sedan = by_user[ids["sedan_user"]]
        assert sedan.full_name == "Driver sedan"
        assert sedan.location.updated_at.tzinfo is not None
        assert sedan.location.coordinate == Coordinate(12.7410, 77.8250)


class TestRideRepository:
    @pytest.mark.asyncio
    async def test_create_ride(self, db_session):
        ids = await seed_reference_data(db_session)
        ride = await _create_ride(db_session, ids, vehicle_type=" SUV ")

        assert ride.status == RideStatus.REQUESTED
        assert ride.vehicle_type == "suv"
        assert len(ride.ride_code) == 6
        assert ride.customer.full_name == "Test Customer"

    @pytest.mark.asyncio
    async def test_undispatched_skips_notified_and_manual(self, db_session):
        ids = await seed_reference_data(db_session)
        pending = await _create_ride(db_session, ids)
        notified = await _create_ride(db_session, ids)
        await _create_ride(db_session, ids, booking_type=BookingType.RENTAL)
        await NotificationRepository(db_session).publish(
            [_record(ids["sedan_user"], notified.id)]
        )

        rides = await RideRepository(db_session).get_undispatched()
        assert [r.id for r in rides] == [pending.id]

    @pytest.mark.asyncio
    async def test_set_status(self, db_session):
        ids = await seed_reference_data(db_session)
        ride = await _create_ride(db_session, ids)
        await RideRepository(db_session).set_status(ride, RideStatus.CANCELLED)

        reloaded = await RideRepository(db_session).get_by_id(
            ride.id, populate_existing=True
        )
        assert reloaded.status == RideStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_compare_and_set_only_first_writer_wins(self, db_session):
        ids = await seed_reference_data(db_session)
        ride = await _create_ride(db_session, ids)
        repo = RideRepository(db_session)

        # Both callers read the ride while it was still REQUESTED
        first = await repo.compare_and_set_status(
            ride, RideStatus.REQUESTED, RideStatus.ACCEPTED, driver_id=ids["sedan"]
        )
        second = await repo.compare_and_set_status(
            ride, RideStatus.REQUESTED, RideStatus.ACCEPTED, driver_id=ids["suv"]
        )

        assert first is True
        assert second is False
        assert ride.status == RideStatus.ACCEPTED
        assert ride.driver_id == ids["sedan"]


class TestNotificationRepository:
    @pytest.mark.asyncio
    async def test_publish_batch(self, db_session):
        ids = await seed_reference_data(db_session)
        ride = await _create_ride(db_session, ids)
        repo = NotificationRepository(db_session)

        count = await repo.publish(
            [_record(ids["sedan_user"], ride.id), _record(ids["suv_user"], ride.id)]
        )

        assert count == 2
        assert await repo.has_ride_requests(ride.id)
        rows = await repo.list_for_ride(ride.id)
        assert {r.status for r in rows} == {NotificationStatus.UNREAD}
        assert {r.title for r in rows} == {"New Ride Request"}

    @pytest.mark.asyncio
    async def test_publish_empty_is_noop(self, db_session):
        assert await NotificationRepository(db_session).publish([]) == 0

    @pytest.mark.asyncio
    async def test_publish_failure_is_wrapped(self, db_session):
        repo = NotificationRepository(db_session)
        with patch.object(
            db_session, "flush", side_effect=IntegrityError("INSERT", {}, Exception())
        ):
            with pytest.raises(NotificationPublishFailure) as exc_info:
                await repo.publish([_record("u1", "r1"), _record("u2", "r1")])
        assert exc_info.value.ride_id == "r1"
        assert exc_info.value.attempted == 2

    @pytest.mark.asyncio
    async def test_cancel_ride_requests_except_winner(self, db_session):
        ids = await seed_reference_data(db_session)
        ride = await _create_ride(db_session, ids)
        repo = NotificationRepository(db_session)
        await repo.publish(
            [
                _record(ids["sedan_user"], ride.id),
                _record(ids["sedan_ac_user"], ride.id),
                _record(ids["suv_user"], ride.id),
            ]
        )

        cancelled = await repo.cancel_ride_requests(
            ride.id, except_user_id=ids["sedan_user"]
        )
        assert cancelled == 2

        db_session.expire_all()
        rows = {r.user_id: r.status for r in await repo.list_for_ride(ride.id)}
        assert rows[ids["sedan_user"]] == NotificationStatus.UNREAD
        assert rows[ids["suv_user"]] == NotificationStatus.CANCELLED

        # Already-cancelled rows are not counted again
        assert await repo.cancel_ride_requests(ride.id) == 1
