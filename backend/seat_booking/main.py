"""
Seat Reservation API - Main Application Entry Point

Employees reserve one seat per day from a fixed pool, check in on the day
and cancel inside the allowed window; administrators manage seats and
employees. Highlights:
- At most one active booking per seat per day and per employee per day,
  enforced by partial unique indexes
- Compare-and-set lifecycle transitions (cancel / check-in / expiry)
- Background expiry sweeper driven by the server clock
- Redis view caching with per-date / per-employee invalidation
- Structured logging with request correlation
"""

import asyncio
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from seat_booking.api.middleware import RequestLoggingMiddleware, RequestTimeoutMiddleware
from seat_booking.api.router import api_router
from seat_booking.core.clock import get_clock
from seat_booking.core.config import get_settings
from seat_booking.core.exceptions import register_exception_handlers
from seat_booking.core.logging import get_logger, setup_logging
from seat_booking.core.metrics import metrics_endpoint
from seat_booking.db.session import SessionLocal
from seat_booking.services.cache_service import close_redis, get_cache_stats, get_redis
from seat_booking.services.expiry_sweeper import run_sweeper

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache")

    sweeper_task = None
    if settings.SWEEPER_ENABLED:
        sweeper_task = asyncio.create_task(
            run_sweeper(SessionLocal, get_clock(), settings.SWEEPER_INTERVAL_SECONDS)
        )
        logger.info("expiry_sweeper_started", interval_seconds=settings.SWEEPER_INTERVAL_SECONDS)

    yield

    if sweeper_task:
        sweeper_task.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper_task
    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Daily seat reservation API with concurrency-safe booking and check-in",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestTimeoutMiddleware, timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS)
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await get_cache_stats()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": cache_stats,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
