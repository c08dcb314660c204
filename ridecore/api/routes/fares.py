"""
Fare endpoints
==============

POST /api/v1/fares/quote -- price a trip (base, distance, surge, deadhead)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ridecore.api.dependencies import get_db, get_fare_engine
from ridecore.api.middleware import limiter
from ridecore.api.schemas import (
    DeadheadInfo,
    ErrorResponse,
    FareBreakdownResponse,
    FareConfigResponse,
    FareQuoteRequest,
    FareQuoteResponse,
)
from ridecore.config import settings
from ridecore.domain.entities import FareConfig, RideRequest
from ridecore.domain.enums import BookingType
from ridecore.domain.exceptions import (
    InvalidCoordinate,
    InvalidFareInput,
    MissingFareConfig,
)
from ridecore.domain.pricing import FareEngine, FareQuote
from ridecore.domain.zones import pick_rings
from ridecore.infrastructure.repositories import (
    FareConfigRepository,
    ZoneRepository,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/fares", tags=["fares"])


async def price_ride(
    db: AsyncSession,
    engine: FareEngine,
    req: RideRequest,
    distance_km: Optional[float] = None,
    duration_min: Optional[float] = None,
) -> tuple[FareQuote, FareConfig]:
    """Load pricing inputs for *req* and run the fare engine.

    Raises ``HTTPException`` 404 when no active fare config exists and 422
    for an invalid destination or non-finite distance or duration.
    """
    config = await FareConfigRepository(db).get_fare_config(
        req.vehicle_type, req.booking_type
    )
    inner = outer = None
    if req.booking_type is BookingType.REGULAR:
        zones = await ZoneRepository(db).get_active_zones(
            [settings.inner_ring_name, settings.outer_ring_name]
        )
        inner, outer = pick_rings(
            zones, settings.inner_ring_name, settings.outer_ring_name
        )
    try:
        quote = engine.quote(
            req,
            config,
            inner,
            outer,
            distance_km=distance_km,
            duration_min=duration_min,
        )
    except MissingFareConfig as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (InvalidCoordinate, InvalidFareInput) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return quote, config


@router.post(
    "/quote",
    response_model=FareQuoteResponse,
    summary="Calculate a fare quote",
    responses={404: {"model": ErrorResponse, "description": "Pricing unavailable"}},
)
@limiter.limit(settings.rate_limit)
async def quote_fare(
    request: Request,
    body: FareQuoteRequest,
    db: AsyncSession = Depends(get_db),
    engine: FareEngine = Depends(get_fare_engine),
):
    quote, config = await price_ride(
        db,
        engine,
        body.to_ride_request(),
        distance_km=body.distance_km,
        duration_min=body.duration_minutes,
    )
    breakdown = quote.breakdown
    zone_status = (
        quote.zone.status_label
        if quote.zone
        else f"N/A for {body.booking_type.value}"
    )
    return FareQuoteResponse(
        fare_breakdown=FareBreakdownResponse.model_validate(breakdown),
        config=FareConfigResponse.model_validate(config),
        zone_class=quote.zone_class,
        deadhead_info=DeadheadInfo(
            applied=quote.deadhead_applied,
            reason=quote.deadhead_reason,
            zone_status=zone_status,
            deadhead_distance=breakdown.deadhead_distance_km,
            deadhead_charge=breakdown.deadhead_charge,
        ),
    )
