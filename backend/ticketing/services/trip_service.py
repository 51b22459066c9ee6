"""
Trip master data as seen by the seat inventory.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.exceptions import TripClosedError, TripNotFoundError
from ticketing.models.trip import OPEN_TRIP_STATUSES, Trip
from ticketing.services.cache_service import get_cached_capacity, set_cached_capacity


async def get_trip(db: AsyncSession, trip_id: int) -> Trip:
    result = await db.execute(
        select(Trip).where(Trip.id == trip_id).execution_options(populate_existing=True)
    )
    trip = result.scalar_one_or_none()
    if not trip:
        raise TripNotFoundError(trip_id)
    return trip


async def get_trip_capacity(db: AsyncSession, trip_id: int) -> int:
    """Seat capacity, served from Redis when possible since it never changes."""
    cached = await get_cached_capacity(trip_id)
    if cached is not None:
        return cached

    trip = await get_trip(db, trip_id)
    await set_cached_capacity(trip_id, trip.seat_capacity)
    return trip.seat_capacity


async def get_trip_status(db: AsyncSession, trip_id: int) -> str:
    trip = await get_trip(db, trip_id)
    return trip.status


async def ensure_trip_open(db: AsyncSession, trip_id: int) -> int:
    """Raise unless the trip still accepts reservations and bookings. Returns its capacity."""
    status = await get_trip_status(db, trip_id)
    if status not in OPEN_TRIP_STATUSES:
        raise TripClosedError(f"Trip {trip_id} is {status}; seats can no longer be taken")
    return await get_trip_capacity(db, trip_id)
