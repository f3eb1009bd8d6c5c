from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.observability.logging import configure_logging
from app.db.session import engine, Base, SessionLocal, is_memory_sqlite
from sqlalchemy import text
from app.api.routes_health import router as health_router
from app.api.routes_vehicles import router as vehicles_router
from app.api.routes_telemetry import router as telemetry_router
from app.api.routes_simulation import router as simulation_router
from app.api.routes_ws import router as ws_router
from app.services.distributor import TelemetryDistributor
from app.services.telemetry_store import TelemetryStore
from app.services.tick_scheduler import TickScheduler
from app.services.vehicle_registry import VehicleRegistry

configure_logging()
logger = logging.getLogger("app")


def init_database(max_retries: int = 5, retry_delay: int = 2):
    """
    Initialize database with retry logic.
    Hosted databases may take a moment to be ready.
    """
    for attempt in range(max_retries):
        try:
            # Test connection
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))

            # Create all tables
            Base.metadata.create_all(bind=engine)
            logger.info("Database initialized")
            return True

        except Exception as e:
            logger.warning(f"Database connection attempt {attempt + 1}/{max_retries} failed: {e}")
            if attempt < max_retries - 1:
                time.sleep(retry_delay)
            else:
                logger.error("Failed to connect to database after all retries")
                # Don't crash - allow app to start, ticks will skip until the store is back
                return False
    return False


def build_scheduler(distributor: TelemetryDistributor) -> TickScheduler:
    workers = settings.sim_worker_pool_size
    if workers > 1 and is_memory_sqlite(settings.database_url):
        logger.warning("In-memory database: running telemetry workers on 1 thread (asked for %d)", workers)
        workers = 1
    return TickScheduler(
        registry=VehicleRegistry(SessionLocal),
        store=TelemetryStore(SessionLocal),
        distributor=distributor,
        interval_s=settings.sim_tick_interval_s,
        worker_pool_size=workers,
        random_seed=settings.sim_random_seed,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    logger.info("Starting Fleet Telemetry API")
    logger.info(f"   Environment: {settings.environment}")
    logger.info(f"   Simulation: {'enabled' if settings.sim_enabled else 'disabled'}")

    init_database()

    distributor = TelemetryDistributor(queue_size=settings.subscriber_queue_size)
    scheduler = build_scheduler(distributor)
    app.state.distributor = distributor
    app.state.store = scheduler.store
    app.state.scheduler = scheduler
    if settings.sim_enabled:
        scheduler.start()

    yield

    # Shutdown
    logger.info("Shutting down...")
    await scheduler.stop(timeout=max(settings.sim_tick_interval_s, settings.store_timeout_s) * 2)
    await scheduler.aclose()
    distributor.close()


app = FastAPI(
    title="Fleet Telemetry API",
    version="0.1.0",
    lifespan=lifespan
)


@app.get("/")
def root():
    return {
        "name": "Fleet Telemetry API",
        "status": "ok",
        "docs": "/docs",
        "health": "/health"
    }


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(health_router)
app.include_router(vehicles_router)
app.include_router(telemetry_router)
app.include_router(simulation_router)
app.include_router(ws_router)
