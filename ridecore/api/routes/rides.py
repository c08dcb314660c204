"""
Ride endpoints
==============

POST  /api/v1/rides                      -- create a ride request (201)
GET   /api/v1/rides/{ride_id}            -- ride status and fare
POST  /api/v1/rides/{ride_id}/dispatch   -- notify compatible drivers
POST  /api/v1/rides/{ride_id}/accept     -- a driver accepts the ride
PATCH /api/v1/rides/{ride_id}/status     -- driver reports arrival, start, completion
POST  /api/v1/rides/{ride_id}/rerequest  -- retry a ride that found no drivers
PATCH /api/v1/rides/{ride_id}/cancel     -- cancel a ride
"""

import logging

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ridecore.api.dependencies import (
    get_db,
    get_dispatch_notifier,
    get_fare_engine,
    get_lock_client,
)
from ridecore.api.middleware import limiter
from ridecore.api.routes.fares import price_ride
from ridecore.api.schemas import (
    AcceptRideRequest,
    DispatchResponse,
    ErrorResponse,
    NotificationResponse,
    RideCreateRequest,
    RideResponse,
    RideStatusUpdateRequest,
)
from ridecore.config import settings
from ridecore.domain.dispatch import DispatchNotifier
from ridecore.domain.entities import Coordinate, RideRequest
from ridecore.domain.enums import (
    DRIVER_PROGRESS_STATUSES,
    DriverStatus,
    RideStatus,
)
from ridecore.domain.exceptions import (
    InvalidStateTransition,
    NotificationPublishFailure,
)
from ridecore.domain.pricing import FareEngine
from ridecore.infrastructure.locks import DistributedLock, LockNotAcquired
from ridecore.infrastructure.models import RideModel
from ridecore.infrastructure.repositories import (
    DriverRepository,
    NotificationRepository,
    RideRepository,
    UserRepository,
    to_ride,
)
from ridecore.workers.dispatcher import dispatch_ride

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rides", tags=["rides"])


async def _get_ride_or_404(repo: RideRepository, ride_id: str) -> RideModel:
    ride = await repo.get_by_id(ride_id)
    if not ride:
        raise HTTPException(status_code=404, detail="Ride not found")
    return ride


async def _move(
    repo: RideRepository, ride_model: RideModel, status: RideStatus, **values
) -> None:
    """Apply a state-machine transition as a conditional update (409 on
    an illegal move or when another request changed the ride first)."""
    ride = to_ride(ride_model)
    expected = ride.status
    try:
        ride.transition_to(status)
    except InvalidStateTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if not await repo.compare_and_set_status(ride_model, expected, status, **values):
        logger.warning(
            "Ride %s left %s before it could move to %s",
            ride_model.id,
            expected.value,
            status.value,
        )
        raise HTTPException(
            status_code=409, detail="Ride was updated by another request"
        )


async def _release_driver(db: AsyncSession, driver_id: str) -> None:
    driver = await DriverRepository(db).get_by_id(driver_id)
    if driver and driver.status == DriverStatus.BUSY:
        driver.status = DriverStatus.ONLINE


@router.post(
    "",
    status_code=201,
    response_model=RideResponse,
    summary="Create a ride request",
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def create_ride(
    request: Request,
    body: RideCreateRequest,
    db: AsyncSession = Depends(get_db),
    engine: FareEngine = Depends(get_fare_engine),
):
    if not await UserRepository(db).get_by_id(body.customer_id):
        raise HTTPException(status_code=404, detail="Customer not found")

    pickup = Coordinate(body.pickup_latitude, body.pickup_longitude)
    destination = Coordinate(body.destination_latitude, body.destination_longitude)
    fare_amount = body.fare_amount
    if fare_amount is None:
        quote, _ = await price_ride(
            db,
            engine,
            RideRequest(
                pickup=pickup,
                destination=destination,
                vehicle_type=body.vehicle_type.strip().lower(),
                booking_type=body.booking_type,
            ),
        )
        fare_amount = quote.breakdown.total_fare

    ride = await RideRepository(db).create_ride(
        customer_id=body.customer_id,
        pickup=pickup,
        destination=destination,
        vehicle_type=body.vehicle_type,
        booking_type=body.booking_type,
        pickup_address=body.pickup_address,
        destination_address=body.destination_address,
        fare_amount=fare_amount,
    )
    logger.info("Ride %s (%s) requested", ride.id, ride.ride_code)
    return RideResponse.from_ride(to_ride(ride))


@router.get(
    "/{ride_id}",
    response_model=RideResponse,
    summary="Get ride status and fare",
)
@limiter.limit(settings.rate_limit)
async def get_ride(
    request: Request,
    ride_id: str,
    db: AsyncSession = Depends(get_db),
):
    ride = await _get_ride_or_404(RideRepository(db), ride_id)
    return RideResponse.from_ride(to_ride(ride))


@router.post(
    "/{ride_id}/dispatch",
    response_model=DispatchResponse,
    summary="Notify compatible drivers about a ride",
    description=(
        "Filters online, verified drivers with a compatible vehicle and a "
        "location fresher than 5 minutes, then publishes one ride-request "
        "notification per driver.  Rental, outstation and airport bookings "
        "are reported as requiring manual allocation."
    ),
    responses={
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse, "description": "Notification sink failed"},
    },
)
@limiter.limit(settings.rate_limit)
async def dispatch(
    request: Request,
    ride_id: str,
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_lock_client),
    notifier: DispatchNotifier = Depends(get_dispatch_notifier),
):
    ride = await _get_ride_or_404(RideRepository(db), ride_id)
    lock = DistributedLock.for_ride(
        redis, ride_id, settings.dispatch_lock_ttl_seconds
    )
    try:
        async with lock:
            result = await dispatch_ride(db, ride, notifier)
    except LockNotAcquired as exc:
        raise HTTPException(
            status_code=409, detail="Dispatch already in progress"
        ) from exc
    except InvalidStateTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except NotificationPublishFailure as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return DispatchResponse(
        ride_id=ride_id,
        outcome=result.outcome,
        drivers_notified=result.drivers_notified,
        reason=result.reason,
        notifications=[
            NotificationResponse.model_validate(r) for r in result.records
        ],
    )


@router.post(
    "/{ride_id}/accept",
    response_model=RideResponse,
    summary="Accept a ride as a driver",
    description=(
        "Assigns the driver, marks them busy and cancels the ride-request "
        "notifications sent to every other driver.  Only one of several "
        "concurrent accepts can win; the others get 409."
    ),
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def accept_ride(
    request: Request,
    ride_id: str,
    body: AcceptRideRequest,
    db: AsyncSession = Depends(get_db),
):
    ride_repo = RideRepository(db)
    ride_model = await _get_ride_or_404(ride_repo, ride_id)
    driver = await DriverRepository(db).get_by_id(body.driver_id)
    if not driver:
        raise HTTPException(status_code=404, detail="Driver not found")

    await _move(ride_repo, ride_model, RideStatus.ACCEPTED, driver_id=driver.id)
    driver.status = DriverStatus.BUSY
    cancelled = await NotificationRepository(db).cancel_ride_requests(
        ride_id, except_user_id=driver.user_id
    )
    logger.info(
        "Ride %s accepted by driver %s; %d competing requests cancelled",
        ride_id,
        driver.id,
        cancelled,
    )
    return RideResponse.from_ride(to_ride(ride_model))


@router.patch(
    "/{ride_id}/status",
    response_model=RideResponse,
    summary="Report trip progress as the assigned driver",
    description=(
        "Moves an accepted ride through driver_arrived, in_progress and "
        "completed.  Completing a ride puts the driver back online."
    ),
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
@limiter.limit(settings.rate_limit)
async def update_ride_status(
    request: Request,
    ride_id: str,
    body: RideStatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    if body.status not in DRIVER_PROGRESS_STATUSES:
        raise HTTPException(
            status_code=422,
            detail=f"Drivers cannot set status {body.status.value}",
        )
    ride_repo = RideRepository(db)
    ride_model = await _get_ride_or_404(ride_repo, ride_id)
    if ride_model.driver_id != body.driver_id:
        raise HTTPException(
            status_code=403, detail="Ride is not assigned to this driver"
        )

    await _move(ride_repo, ride_model, body.status)
    if body.status is RideStatus.COMPLETED:
        await _release_driver(db, ride_model.driver_id)
    logger.info("Ride %s is now %s", ride_id, body.status.value)
    return RideResponse.from_ride(to_ride(ride_model))


@router.post(
    "/{ride_id}/rerequest",
    response_model=RideResponse,
    summary="Request a ride again after no drivers were found",
    description=(
        "Returns a ride marked no_drivers_available to requested so the "
        "dispatch worker picks it up on its next cycle."
    ),
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def rerequest_ride(
    request: Request,
    ride_id: str,
    db: AsyncSession = Depends(get_db),
):
    ride_repo = RideRepository(db)
    ride_model = await _get_ride_or_404(ride_repo, ride_id)
    await _move(ride_repo, ride_model, RideStatus.REQUESTED)
    logger.info("Ride %s re-requested", ride_id)
    return RideResponse.from_ride(to_ride(ride_model))


@router.patch(
    "/{ride_id}/cancel",
    response_model=RideResponse,
    summary="Cancel a ride",
    description=(
        "Cancels a ride that has not started yet and withdraws any "
        "outstanding ride-request notifications."
    ),
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def cancel_ride(
    request: Request,
    ride_id: str,
    db: AsyncSession = Depends(get_db),
):
    ride_repo = RideRepository(db)
    ride_model = await _get_ride_or_404(ride_repo, ride_id)

    await _move(ride_repo, ride_model, RideStatus.CANCELLED)
    await NotificationRepository(db).cancel_ride_requests(ride_id)
    if ride_model.driver_id:
        await _release_driver(db, ride_model.driver_id)
    return RideResponse.from_ride(to_ride(ride_model))
