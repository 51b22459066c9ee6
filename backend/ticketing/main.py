"""
Bus Ticketing Seat Inventory API - Main Application Entry Point

Seat inventory core for a bus fleet ticketing app:
- Per-trip seat map with reserve / disable / release
- Bookings guarded by database constraints and compare-and-swap writes
- Append-only activity log doubling as a pollable change feed
- Structured logging with request correlation
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ticketing.api.exception_handlers import register_exception_handlers
from ticketing.api.middleware import RequestLoggingMiddleware
from ticketing.api.router import api_router
from ticketing.core.config import get_settings
from ticketing.core.logging import get_logger, setup_logging
from ticketing.core.metrics import metrics_endpoint
from ticketing.services.cache_service import close_redis, get_cache_stats, get_redis

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

    # Redis is optional; without it there is no capacity cache or seat fan-out
    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache or seat notifications")

    yield

    # Cleanup
    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Seat inventory API for bus trips with concurrency-safe bookings",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request id and access logging
app.add_middleware(RequestLoggingMiddleware)

# Typed errors -> {"detail", "code"}
register_exception_handlers(app)

# Routes
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
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
