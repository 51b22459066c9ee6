"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter

from ticketing.api.routes import admin, bookings, seats, trips

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(seats.router)
api_router.include_router(trips.router)
api_router.include_router(bookings.router)
api_router.include_router(admin.router)
