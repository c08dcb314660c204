"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - Inner Ring (8 km) and Outer Ring (25 km) around the Hosur hub
  - fare matrix rows for every vehicle type (regular) plus sedan/suv
    rental, outstation and airport rows
  - 3 customers
  - 10 drivers with fresh live locations (one stale, one offline,
    one unverified, to exercise the filter)
"""

import asyncio
from datetime import datetime, timedelta, timezone

from sqlalchemy import text

from ridecore.config import settings
from ridecore.domain.enums import BookingType, DriverStatus
from ridecore.infrastructure.database import async_session_factory, engine
from ridecore.infrastructure.models import (
    DriverModel,
    FareMatrixModel,
    LiveLocationModel,
    UserModel,
    ZoneModel,
)

HUB_LAT, HUB_LNG = settings.reference_hub_lat, settings.reference_hub_lng

ZONES = [
    {"name": settings.inner_ring_name, "radius_km": 8.0},
    {"name": settings.outer_ring_name, "radius_km": 25.0},
]

# vehicle_type: (base_fare, per_km_rate, minimum_fare)
REGULAR_FARES = {
    "bike": (25, 6, 30),
    "auto": (35, 10, 40),
    "hatchback": (50, 12, 60),
    "hatchback_ac": (60, 14, 70),
    "sedan": (60, 14, 75),
    "sedan_ac": (70, 16, 85),
    "suv": (80, 18, 100),
    "suv_ac": (95, 20, 120),
}

SPECIAL_FARES = {
    BookingType.RENTAL: {"sedan": (900, 12, 900), "suv": (1200, 15, 1200)},
    BookingType.OUTSTATION: {"sedan": (300, 11, 1500), "suv": (400, 14, 2000)},
    BookingType.AIRPORT: {"sedan": (450, 13, 800), "suv": (600, 16, 1000)},
}

CUSTOMERS = [
    {"full_name": "Aarav Sharma", "phone_number": "+919800000001"},
    {"full_name": "Priya Patel", "phone_number": "+919800000002"},
    {"full_name": "Rohan Mehta", "phone_number": "+919800000003"},
]

# (name, vehicle_type, status, verified, lat offset, lng offset, minutes since fix)
DRIVERS = [
    ("Ravi Kumar", "sedan", DriverStatus.ONLINE, True, 0.005, 0.004, 1),
    ("Suresh Babu", "sedan_ac", DriverStatus.ONLINE, True, -0.010, 0.008, 2),
    ("Manoj Reddy", "suv", DriverStatus.ONLINE, True, 0.020, -0.015, 1),
    ("Anil Gowda", "suv_ac", DriverStatus.ONLINE, True, -0.004, -0.006, 3),
    ("Kiran Rao", "hatchback", DriverStatus.ONLINE, True, 0.012, 0.011, 0),
    ("Deepak Nair", "auto", DriverStatus.ONLINE, True, 0.002, -0.002, 1),
    ("Vinod Shetty", "bike", DriverStatus.ONLINE, True, -0.001, 0.003, 2),
    ("Mahesh Iyer", "sedan", DriverStatus.ONLINE, True, 0.030, 0.020, 45),
    ("Ganesh Pillai", "sedan", DriverStatus.OFFLINE, True, 0.003, 0.003, 1),
    ("Naveen Joshi", "sedan", DriverStatus.ONLINE, False, -0.006, 0.001, 1),
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM zones"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Zones ─────────────────────────────────────────────────────
        for z in ZONES:
            session.add(
                ZoneModel(
                    name=z["name"],
                    center_latitude=HUB_LAT,
                    center_longitude=HUB_LNG,
                    radius_km=z["radius_km"],
                    is_active=True,
                )
            )
        print(f"  Created {len(ZONES)} zones")

        # ── Fare matrix ───────────────────────────────────────────────
        rows = 0
        tables = {BookingType.REGULAR: REGULAR_FARES, **SPECIAL_FARES}
        for booking_type, fares in tables.items():
            for vehicle_type, (base, per_km, minimum) in fares.items():
                session.add(
                    FareMatrixModel(
                        vehicle_type=vehicle_type,
                        booking_type=booking_type,
                        base_fare=base,
                        per_km_rate=per_km,
                        minimum_fare=minimum,
                        surge_multiplier=1.0,
                        is_active=True,
                    )
                )
                rows += 1
        print(f"  Created {rows} fare matrix rows")

        # ── Customers ─────────────────────────────────────────────────
        for c in CUSTOMERS:
            session.add(UserModel(**c))
        print(f"  Created {len(CUSTOMERS)} customers")

        # ── Drivers + live locations ──────────────────────────────────
        now = datetime.now(timezone.utc)
        for i, (name, vtype, status, verified, dlat, dlng, age) in enumerate(DRIVERS):
            user = UserModel(full_name=name, phone_number=f"+919900000{i:03d}")
            session.add(user)
            await session.flush()
            session.add(
                DriverModel(
                    user_id=user.id,
                    status=status,
                    is_verified=verified,
                    vehicle_type=vtype,
                    rating=4.5,
                )
            )
            session.add(
                LiveLocationModel(
                    user_id=user.id,
                    latitude=HUB_LAT + dlat,
                    longitude=HUB_LNG + dlng,
                    updated_at=now - timedelta(minutes=age),
                )
            )
        await session.flush()
        print(f"  Created {len(DRIVERS)} drivers")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
