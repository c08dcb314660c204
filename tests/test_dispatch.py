"""Unit tests for the dispatch notifier (no I/O)."""

from datetime import timedelta

import pytest

from ridecore.domain.dispatch import DispatchNotifier, DispatchPolicy
from ridecore.domain.distance import distance_km
from ridecore.domain.entities import Coordinate, Ride
from ridecore.domain.enums import BookingType, DispatchOutcome
from tests.conftest import NOW, make_driver


def _ride(**kwargs) -> Ride:
    defaults = dict(
        id="ride-1",
        ride_code="AB12CD",
        customer_id="cust-1",
        customer_name="Asha",
        customer_phone="+910000000001",
        pickup=Coordinate(12.7402, 77.8240),
        destination=Coordinate(12.80, 77.85),
        pickup_address="Hosur Bus Stand",
        destination_address="Zuzuvadi",
        vehicle_type="sedan",
        fare_amount=180.0,
    )
    defaults.update(kwargs)
    return Ride(**defaults)


class TestPlan:
    def setup_method(self):
        self.notifier = DispatchNotifier()

    @pytest.mark.parametrize(
        "booking_type",
        [BookingType.RENTAL, BookingType.OUTSTATION, BookingType.AIRPORT],
    )
    def test_manual_booking_types(self, booking_type):
        pool = [make_driver(f"d{i}") for i in range(5)]
        result = self.notifier.plan(_ride(booking_type=booking_type), pool, now=NOW)
        assert result.outcome is DispatchOutcome.MANUAL_ALLOCATION_REQUIRED
        assert result.drivers_notified == 0
        assert "require admin allocation" in result.reason

    def test_empty_pool(self):
        result = self.notifier.plan(_ride(), [], now=NOW)
        assert result.outcome is DispatchOutcome.NO_DRIVERS_AVAILABLE
        assert result.records == []

    def test_only_incompatible_drivers(self):
        pool = [make_driver("d1", "sedan")]
        result = self.notifier.plan(_ride(vehicle_type="sedan_ac"), pool, now=NOW)
        assert result.outcome is DispatchOutcome.NO_DRIVERS_AVAILABLE

    def test_one_record_per_eligible_driver(self):
        pool = [
            make_driver("d1", "sedan"),
            make_driver("d2", "sedan_ac"),
            make_driver("d3", "suv"),
            make_driver("d4", "sedan", age=timedelta(minutes=10)),
        ]
        result = self.notifier.plan(_ride(), pool, now=NOW)
        assert result.outcome is DispatchOutcome.DISPATCHED
        assert {r.driver_user_id for r in result.records} == {"user-d1", "user-d2"}
        assert result.reason == "2 drivers notified"


class TestDispatch:
    def setup_method(self):
        self.notifier = DispatchNotifier()

    def test_manual_wins_over_eligible_list(self):
        result = self.notifier.dispatch(
            _ride(booking_type=BookingType.RENTAL), [make_driver()]
        )
        assert result.outcome is DispatchOutcome.MANUAL_ALLOCATION_REQUIRED
        assert result.records == []

    def test_record_metrics(self):
        ride = _ride()
        driver = make_driver(lat=12.7852, lng=77.8240)
        [record] = self.notifier.dispatch(ride, [driver]).records

        expected = distance_km(ride.pickup, driver.location.coordinate)
        assert record.distance_km == pytest.approx(expected)
        assert record.eta_min == round(expected * 2)
        assert not record.distance_estimated
        assert record.ride_id == "ride-1"
        assert record.title == "New Ride Request"
        assert record.type == "ride_request"

    def test_missing_location_uses_default_distance(self):
        driver = make_driver(with_location=False)
        [record] = self.notifier.dispatch(_ride(), [driver]).records
        assert record.distance_km == 5.0
        assert record.eta_min == 10
        assert record.distance_estimated

    def test_message_format(self):
        driver = make_driver(with_location=False)
        [record] = self.notifier.dispatch(_ride(), [driver]).records
        assert record.message == "Pickup: Hosur Bus Stand • 5.0km away"

    def test_message_falls_back_to_coordinates(self):
        driver = make_driver(with_location=False)
        [record] = self.notifier.dispatch(_ride(pickup_address=""), [driver]).records
        assert record.message.startswith("Pickup: 12.74020, 77.82400")

    def test_payload(self):
        driver = make_driver(with_location=False)
        [record] = self.notifier.dispatch(_ride(), [driver]).records
        payload = record.payload
        assert payload["ride_code"] == "AB12CD"
        assert payload["customer_name"] == "Asha"
        assert payload["pickup_coords"] == {"latitude": 12.7402, "longitude": 77.8240}
        assert payload["booking_type"] == "regular"
        assert payload["fare_amount"] == 180.0
        assert payload["distance"] == 5.0
        assert payload["eta"] == 10

    def test_payload_defaults_customer_name(self):
        driver = make_driver(with_location=False)
        [record] = self.notifier.dispatch(_ride(customer_name=None), [driver]).records
        assert record.payload["customer_name"] == "Customer"

    def test_invalid_driver_location_gets_sentinel(self):
        driver = make_driver(lat=float("nan"))
        [record] = self.notifier.dispatch(_ride(), [driver]).records
        assert record.distance_km == 999.0
        assert not record.distance_estimated

    def test_custom_policy(self):
        notifier = DispatchNotifier(
            DispatchPolicy(eta_minutes_per_km=3.0, default_distance_km=2.0)
        )
        [record] = notifier.dispatch(_ride(), [make_driver(with_location=False)]).records
        assert record.distance_km == 2.0
        assert record.eta_min == 6
