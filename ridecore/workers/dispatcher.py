"""
Background Dispatch Worker
==========================

Runs every ``DISPATCH_INTERVAL_SECONDS`` (default 10 s).

Concurrency safety
------------------
* **Redis distributed lock** (``dispatch:cycle``) ensures only one
  instance scans for undispatched rides at a time.
* **Per-ride lock** (``dispatch:ride:<id>``) is shared with the API's
  manual dispatch endpoint, so a ride is never fanned out twice.

Algorithm per cycle
-------------------
1. Fetch REQUESTED regular rides that have no notifications yet.
2. Snapshot the driver directory (online, verified, with vehicle).
3. For each ride: filter compatible drivers, build notification records,
   publish them as one batch, or mark the ride ``no_drivers_available``.
4. Commit per ride; a failed publish rolls back that ride only.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ridecore.config import settings
from ridecore.domain.dispatch import DispatchNotifier, DispatchResult
from ridecore.domain.entities import Driver
from ridecore.domain.enums import DispatchOutcome, RideStatus
from ridecore.domain.exceptions import (
    InvalidStateTransition,
    NotificationPublishFailure,
)
from ridecore.infrastructure.database import async_session_factory
from ridecore.infrastructure.locks import DistributedLock
from ridecore.infrastructure.models import RideModel
from ridecore.infrastructure.redis_client import get_redis
from ridecore.infrastructure.repositories import (
    DriverRepository,
    NotificationRepository,
    RideRepository,
    to_ride,
)

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Dispatch of a single ride ─────────────────────────────────────────


async def dispatch_ride(
    session: AsyncSession,
    ride_model: RideModel,
    notifier: Optional[DispatchNotifier] = None,
    drivers: Optional[list[Driver]] = None,
    now: Optional[datetime] = None,
) -> DispatchResult:
    """Run filter -> notifier -> sink for one ride and record the outcome.

    Raises ``InvalidStateTransition`` if the ride is not REQUESTED and
    ``NotificationPublishFailure`` if the batch insert fails; in the
    latter case the ride status is left untouched.
    """
    notifier = notifier or DispatchNotifier(settings.dispatch_policy())
    ride = to_ride(ride_model)
    if ride.status is not RideStatus.REQUESTED:
        raise InvalidStateTransition(
            f"Cannot dispatch ride {ride.id} in status {ride.status.value}"
        )

    if await NotificationRepository(session).has_ride_requests(ride.id):
        raise InvalidStateTransition(f"Ride {ride.id} has already been dispatched")

    if drivers is None:
        drivers = await DriverRepository(session).list_drivers()
    result = notifier.plan(ride, drivers, now=now or datetime.now(timezone.utc))

    if result.outcome is DispatchOutcome.DISPATCHED:
        await NotificationRepository(session).publish(result.records)
    elif result.outcome is DispatchOutcome.NO_DRIVERS_AVAILABLE:
        ride.transition_to(RideStatus.NO_DRIVERS_AVAILABLE)
        await RideRepository(session).set_status(ride_model, ride.status)

    logger.info(
        "Ride %s dispatch outcome=%s notified=%d",
        ride.id,
        result.outcome.value,
        result.drivers_notified,
    )
    return result


# ── Public API ────────────────────────────────────────────────────────


async def start_dispatch_loop() -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop())
    logger.info(
        "Dispatch worker started (interval=%ds)", settings.dispatch_interval_seconds
    )


async def stop_dispatch_loop() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    logger.info("Dispatch worker stopped")


# ── Internals ─────────────────────────────────────────────────────────


async def _loop() -> None:
    """Periodic loop: run a dispatch cycle then sleep."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await run_dispatch_cycle()
        except Exception:
            logger.exception("Unhandled error in dispatch cycle")
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.dispatch_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass  # next cycle


async def run_dispatch_cycle() -> int:
    """Execute one dispatch cycle.  Returns the number of drivers notified."""
    redis = await get_redis()
    ttl = settings.dispatch_lock_ttl_seconds
    cycle_lock = DistributedLock(redis, "dispatch:cycle", ttl_seconds=ttl)

    if not await cycle_lock.acquire():
        logger.debug("Lock held by another worker - skipping cycle")
        return 0

    notified = 0
    notifier = DispatchNotifier(settings.dispatch_policy())
    try:
        async with async_session_factory() as session:
            pending = await RideRepository(session).get_undispatched()
            if not pending:
                return 0
            drivers = await DriverRepository(session).list_drivers()
            ride_ids = [r.id for r in pending]
            await session.commit()

            for ride_id in ride_ids:
                ride_lock = DistributedLock.for_ride(redis, ride_id, ttl)
                if not await ride_lock.acquire():
                    continue
                try:
                    ride_model = await RideRepository(session).get_by_id(
                        ride_id, populate_existing=True
                    )
                    if ride_model is None:
                        continue
                    result = await dispatch_ride(
                        session, ride_model, notifier, drivers=drivers
                    )
                    await session.commit()
                    notified += result.drivers_notified
                except (NotificationPublishFailure, InvalidStateTransition) as exc:
                    await session.rollback()
                    logger.error("Dispatch of ride %s failed: %s", ride_id, exc)
                finally:
                    await ride_lock.release()

        if notified:
            logger.info("Dispatch cycle: %d drivers notified", notified)
    except Exception:
        logger.exception("Error in dispatch cycle")
    finally:
        await cycle_lock.release()

    return notified
