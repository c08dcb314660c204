"""
FastAPI application factory.

* Registers routes for fares, rides, drivers and admin.
* Starts / stops the background dispatch worker via lifespan events.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from ridecore.api.middleware import limiter
from ridecore.api.routes import admin, drivers, fares, rides
from ridecore.infrastructure.database import dispose_engine
from ridecore.infrastructure.redis_client import close_redis
from ridecore.workers import dispatcher as _dispatcher

logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the dispatch worker on startup; stop it and release pools on
    shutdown."""
    await _dispatcher.start_dispatch_loop()
    yield
    await _dispatcher.stop_dispatch_loop()
    await close_redis()
    await dispose_engine()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Ride Fare & Dispatch API",
        description=(
            "Quotes ride fares with zone-based deadhead charges and "
            "dispatches ride requests to compatible, nearby drivers."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Routers
    app.include_router(fares.router, prefix="/api/v1")
    app.include_router(rides.router, prefix="/api/v1")
    app.include_router(drivers.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
