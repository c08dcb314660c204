"""FastAPI dependency injection helpers."""

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession

from ridecore.config import settings
from ridecore.domain.dispatch import DispatchNotifier
from ridecore.domain.pricing import FareEngine
from ridecore.infrastructure.database import async_session_factory
from ridecore.infrastructure.redis_client import get_redis


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_lock_client() -> aioredis.Redis:
    return await get_redis()


def get_fare_engine() -> FareEngine:
    return FareEngine(settings.fare_policy())


def get_dispatch_notifier() -> DispatchNotifier:
    return DispatchNotifier(settings.dispatch_policy())
