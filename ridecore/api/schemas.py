"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from ridecore.domain.entities import Coordinate, Ride, RideRequest
from ridecore.domain.enums import BookingType, DispatchOutcome, RideStatus, ZoneClass

MAX_ROUTED_DISTANCE_KM = 5000
MAX_ROUTED_DURATION_MIN = 6000


# ── Requests ──────────────────────────────────────────────────────────


class FareQuoteRequest(BaseModel):
    pickup_latitude: float = Field(..., ge=-90, le=90)
    pickup_longitude: float = Field(..., ge=-180, le=180)
    destination_latitude: float = Field(..., ge=-90, le=90)
    destination_longitude: float = Field(..., ge=-180, le=180)
    vehicle_type: str = Field(..., min_length=1, max_length=30)
    booking_type: BookingType = BookingType.REGULAR
    distance_km: Optional[float] = Field(
        None,
        gt=0,
        le=MAX_ROUTED_DISTANCE_KM,
        allow_inf_nan=False,
        description="Routed distance; defaults to Haversine.",
    )
    duration_minutes: Optional[float] = Field(
        None,
        gt=0,
        le=MAX_ROUTED_DURATION_MIN,
        allow_inf_nan=False,
        description="Routed duration; defaults to 30 km/h estimate.",
    )

    def to_ride_request(self) -> RideRequest:
        return RideRequest(
            pickup=Coordinate(self.pickup_latitude, self.pickup_longitude),
            destination=Coordinate(
                self.destination_latitude, self.destination_longitude
            ),
            vehicle_type=self.vehicle_type.strip().lower(),
            booking_type=self.booking_type,
        )


class RideCreateRequest(BaseModel):
    customer_id: str = Field(..., min_length=1, max_length=36)
    pickup_address: str = Field("", max_length=255)
    pickup_latitude: float = Field(..., ge=-90, le=90)
    pickup_longitude: float = Field(..., ge=-180, le=180)
    destination_address: str = Field("", max_length=255)
    destination_latitude: float = Field(..., ge=-90, le=90)
    destination_longitude: float = Field(..., ge=-180, le=180)
    vehicle_type: str = Field(..., min_length=1, max_length=30)
    booking_type: BookingType = BookingType.REGULAR
    fare_amount: Optional[float] = Field(
        None,
        ge=0,
        allow_inf_nan=False,
        description="Quoted fare; computed server-side when omitted.",
    )


class AcceptRideRequest(BaseModel):
    driver_id: str = Field(..., min_length=1, max_length=36)


class RideStatusUpdateRequest(BaseModel):
    driver_id: str = Field(..., min_length=1, max_length=36)
    status: RideStatus = Field(
        ..., description="driver_arrived, in_progress or completed"
    )


class NearbyDriversRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    vehicle_type: str = Field(..., min_length=1, max_length=30)
    radius_km: Optional[float] = Field(None, gt=0, le=100)


# ── Responses ─────────────────────────────────────────────────────────


def _camel(name: str, alias: str):
    """Accept either spelling on input, emit the camelCase key."""
    return Field(
        validation_alias=AliasChoices(name, alias), serialization_alias=alias
    )


class FareBreakdownResponse(BaseModel):
    base_fare: float = _camel("base_fare", "baseFare")
    distance_fare: float = _camel("distance_fare", "distanceFare")
    time_fare: float = _camel("time_fare", "timeFare")
    surge_fare: float = _camel("surge_fare", "surgeFare")
    platform_fee: float = _camel("platform_fee", "platformFee")
    deadhead_charge: float = _camel("deadhead_charge", "deadheadCharge")
    deadhead_distance_km: float = _camel("deadhead_distance_km", "deadheadDistance")
    total_fare: float = _camel("total_fare", "totalFare")
    distance_km: float = _camel("distance_km", "distance")
    duration_min: float = _camel("duration_min", "duration")

    model_config = {"from_attributes": True}


class FareConfigResponse(BaseModel):
    vehicle_type: str
    booking_type: BookingType
    base_fare: float
    per_km_rate: float
    minimum_fare: float
    surge_multiplier: float

    model_config = {"from_attributes": True}


class DeadheadInfo(BaseModel):
    applied: bool
    reason: str
    zone_status: str
    deadhead_distance: float
    deadhead_charge: float


class FareQuoteResponse(BaseModel):
    success: bool = True
    fare_breakdown: FareBreakdownResponse = _camel("fare_breakdown", "fareBreakdown")
    config: FareConfigResponse
    zone_class: Optional[ZoneClass] = None
    deadhead_info: DeadheadInfo = _camel("deadhead_info", "deadheadInfo")


class RideResponse(BaseModel):
    id: str
    ride_code: Optional[str] = None
    customer_id: Optional[str] = None
    pickup_address: str
    pickup_latitude: float
    pickup_longitude: float
    destination_address: str
    destination_latitude: float
    destination_longitude: float
    vehicle_type: str
    booking_type: BookingType
    fare_amount: Optional[float] = None
    status: RideStatus
    driver_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_ride(cls, ride: Ride) -> "RideResponse":
        return cls(
            id=ride.id,
            ride_code=ride.ride_code,
            customer_id=ride.customer_id,
            pickup_address=ride.pickup_address,
            pickup_latitude=ride.pickup.latitude,
            pickup_longitude=ride.pickup.longitude,
            destination_address=ride.destination_address,
            destination_latitude=ride.destination.latitude,
            destination_longitude=ride.destination.longitude,
            vehicle_type=ride.vehicle_type,
            booking_type=ride.booking_type,
            fare_amount=ride.fare_amount,
            status=ride.status,
            driver_id=ride.driver_id,
            created_at=ride.created_at,
        )


class NotificationResponse(BaseModel):
    driver_user_id: str
    distance_km: float
    eta_min: int
    distance_estimated: bool
    message: str

    model_config = {"from_attributes": True}


class DispatchResponse(BaseModel):
    ride_id: str
    outcome: DispatchOutcome
    drivers_notified: int
    reason: str
    notifications: list[NotificationResponse] = []


class NearbyDriverResponse(BaseModel):
    id: str
    user_id: str
    full_name: Optional[str] = None
    vehicle_type: Optional[str] = None
    rating: Optional[float] = None
    distance_km: float
    latitude: float
    longitude: float
    last_location_update: datetime


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
