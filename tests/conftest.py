"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  The production models carry no
PostgreSQL-only column types, so the real metadata is created directly.
A ``StaticPool`` keeps the single in-memory database alive across
sessions.
"""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from ridecore.domain.entities import Coordinate, Driver, DriverLocation, Zone
from ridecore.domain.enums import BookingType, DriverStatus
from ridecore.infrastructure.database import Base
from ridecore.infrastructure.models import (
    DriverModel,
    FareMatrixModel,
    LiveLocationModel,
    UserModel,
    ZoneModel,
)

# ── Test DB (SQLite in-memory) ────────────────────────────────────────

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(
    TEST_DB_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionFactory = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)

HUB = Coordinate(12.7402, 77.8240)
NOW = datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc)


# ── Domain builders ───────────────────────────────────────────────────


def make_driver(
    driver_id: str = "d1",
    vehicle_type: str = "sedan",
    lat: float = 12.7410,
    lng: float = 77.8250,
    age: timedelta = timedelta(minutes=1),
    status: DriverStatus = DriverStatus.ONLINE,
    is_verified: bool = True,
    with_location: bool = True,
) -> Driver:
    location = None
    if with_location:
        location = DriverLocation(Coordinate(lat, lng), NOW - age)
    return Driver(
        id=driver_id,
        user_id=f"user-{driver_id}",
        status=status,
        is_verified=is_verified,
        vehicle_type=vehicle_type,
        location=location,
    )


@pytest.fixture
def rings() -> tuple[Zone, Zone]:
    """Inner Ring (8 km) and Outer Ring (25 km) around the hub."""
    return Zone("Inner Ring", HUB, 8.0), Zone("Outer Ring", HUB, 25.0)


# ── DB fixtures ───────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield a session, then drop everything."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionFactory() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


async def seed_reference_data(session: AsyncSession) -> dict[str, str]:
    """Zones, fare rows, one customer and three drivers near the hub.

    Returns the ids the tests refer to.
    """
    session.add_all(
        [
            ZoneModel(
                name="Inner Ring",
                center_latitude=HUB.latitude,
                center_longitude=HUB.longitude,
                radius_km=8.0,
            ),
            ZoneModel(
                name="Outer Ring",
                center_latitude=HUB.latitude,
                center_longitude=HUB.longitude,
                radius_km=25.0,
            ),
            FareMatrixModel(
                vehicle_type="sedan",
                booking_type=BookingType.REGULAR,
                base_fare=50,
                per_km_rate=12,
                minimum_fare=80,
            ),
            FareMatrixModel(
                vehicle_type="sedan",
                booking_type=BookingType.RENTAL,
                base_fare=900,
                per_km_rate=12,
                minimum_fare=900,
            ),
        ]
    )

    customer = UserModel(full_name="Test Customer", phone_number="+910000000001")
    session.add(customer)

    now = datetime.now(timezone.utc)
    drivers = {}
    for key, vtype, lat in (
        ("sedan", "sedan", 12.7410),
        ("sedan_ac", "sedan_ac", 12.7500),
        ("suv", "suv", 12.7420),
    ):
        user = UserModel(full_name=f"Driver {key}")
        session.add(user)
        await session.flush()
        driver = DriverModel(
            user_id=user.id,
            status=DriverStatus.ONLINE,
            is_verified=True,
            vehicle_type=vtype,
        )
        session.add(driver)
        session.add(
            LiveLocationModel(
                user_id=user.id,
                latitude=lat,
                longitude=77.8250,
                updated_at=now - timedelta(minutes=1),
            )
        )
        await session.flush()
        drivers[key] = driver.id
        drivers[f"{key}_user"] = user.id

    await session.commit()
    return {"customer": customer.id, **drivers}


# ── API client ────────────────────────────────────────────────────────


@pytest.fixture
def lock_redis() -> AsyncMock:
    """Mock Redis that always grants the lock."""
    mock_redis = AsyncMock()
    mock_redis.set = AsyncMock(return_value=True)
    mock_redis.eval = AsyncMock(return_value=1)
    return mock_redis


@pytest_asyncio.fixture
async def seeded() -> AsyncGenerator[dict[str, str], None]:
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionFactory() as session:
        ids = await seed_reference_data(session)

    yield ids

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest_asyncio.fixture
async def client(seeded, lock_redis) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient backed by SQLite and a mocked lock client."""
    with (
        patch(
            "ridecore.workers.dispatcher.start_dispatch_loop",
            new_callable=AsyncMock,
        ),
        patch(
            "ridecore.workers.dispatcher.stop_dispatch_loop",
            new_callable=AsyncMock,
        ),
    ):
        # DB session dependency
        async def _test_db():
            async with TestSessionFactory() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise

        async def _test_lock_client():
            return lock_redis

        from ridecore.api.app import create_app
        from ridecore.api.dependencies import get_db, get_lock_client
        from ridecore.api.middleware import limiter

        limiter.enabled = False
        app = create_app()
        app.dependency_overrides[get_db] = _test_db
        app.dependency_overrides[get_lock_client] = _test_lock_client

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac

        limiter.enabled = True
