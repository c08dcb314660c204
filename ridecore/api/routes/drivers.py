"""
Driver endpoints
================

POST /api/v1/drivers/nearby -- compatible drivers near a pickup, nearest first
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ridecore.api.dependencies import get_db
from ridecore.api.middleware import limiter
from ridecore.api.schemas import NearbyDriverResponse, NearbyDriversRequest
from ridecore.config import settings
from ridecore.domain.entities import Coordinate
from ridecore.domain.matching import find_nearby
from ridecore.domain.pricing import round_half_up
from ridecore.infrastructure.repositories import DriverRepository

router = APIRouter(prefix="/drivers", tags=["drivers"])


@router.post(
    "/nearby",
    response_model=list[NearbyDriverResponse],
    summary="Find nearby drivers for a vehicle type",
)
@limiter.limit(settings.rate_limit)
async def nearby_drivers(
    request: Request,
    body: NearbyDriversRequest,
    db: AsyncSession = Depends(get_db),
):
    pool = await DriverRepository(db).list_drivers()
    policy = settings.dispatch_policy()
    nearby = find_nearby(
        Coordinate(body.latitude, body.longitude),
        body.vehicle_type,
        pool,
        radius_km=body.radius_km or settings.nearby_radius_km,
        now=datetime.now(timezone.utc),
        window=policy.freshness_window,
        sentinel_km=policy.invalid_distance_km,
    )
    return [
        NearbyDriverResponse(
            id=n.driver.id,
            user_id=n.driver.user_id,
            full_name=n.driver.full_name,
            vehicle_type=n.driver.vehicle_type,
            rating=n.driver.rating,
            distance_km=round_half_up(n.distance_km, 2),
            latitude=n.driver.location.coordinate.latitude,
            longitude=n.driver.location.coordinate.longitude,
            last_location_update=n.driver.location.updated_at,
        )
        for n in nearby
    ]
