import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import (
    routes_bookings,
    routes_crowd,
    routes_events,
    routes_health,
    routes_journeys,
    routes_locations,
    routes_notifications,
    routes_payments,
    routes_price_alerts,
    routes_pricing,
    routes_recommendations,
    routes_reviews,
    routes_services,
)
from app.core.config import Settings, settings as default_settings
from app.core.logging import configure_logging
from app.services.scheduler import Scheduler
from app.storage.repository import InMemoryRepository
from app.storage.seed import seed_demo_data

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = app.state.scheduler
    if scheduler:
        await scheduler.start()
    yield
    if scheduler:
        await scheduler.stop()
    logger.info("%s shutdown complete", app.title)


def create_app(
    settings: Optional[Settings] = None, repository: Optional[InMemoryRepository] = None
) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.log_level)
    app = FastAPI(title=settings.app_name, version="0.2.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if repository is None:
        repository = InMemoryRepository()
        if settings.seed_demo_data:
            seed_demo_data(repository)
            logger.info("Seeded demo catalogue")

    app.include_router(routes_health.router, tags=["health"])
    app.include_router(routes_locations.router, prefix="/locations", tags=["locations"])
    app.include_router(routes_services.router, prefix="/services", tags=["services"])
    app.include_router(routes_events.router, prefix="/events", tags=["events"])
    app.include_router(routes_bookings.router, prefix="/bookings", tags=["bookings"])
    app.include_router(routes_payments.router, prefix="/payments", tags=["payments"])
    app.include_router(routes_reviews.router, prefix="/reviews", tags=["reviews"])
    app.include_router(routes_crowd.router, prefix="/crowd", tags=["crowd"])
    app.include_router(
        routes_recommendations.router, prefix="/recommendations", tags=["recommendations"]
    )
    app.include_router(routes_pricing.router, prefix="/pricing", tags=["pricing"])
    app.include_router(
        routes_price_alerts.router, prefix="/advanced-booking", tags=["advanced-booking"]
    )
    app.include_router(routes_journeys.router, prefix="/journeys", tags=["journeys"])
    app.include_router(
        routes_notifications.router, prefix="/notifications", tags=["notifications"]
    )

    # Inject repository into state for dependencies
    app.state.repository = repository
    app.state.settings = settings
    app.state.scheduler = Scheduler(repository, settings) if settings.scheduler_enabled else None
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
