"""
Per-trip read endpoints: passenger list and activity feed.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.security import Actor, get_current_actor, get_current_admin
from ticketing.db.session import get_db
from ticketing.schemas.activity import ActivityEntryResponse, ActivityFeedResponse
from ticketing.schemas.booking import BookingResponse
from ticketing.services import activity_service, booking_service, trip_service

router = APIRouter(prefix="/trips", tags=["Trips"])


@router.get("/{trip_id}/bookings", response_model=list[BookingResponse])
async def list_trip_bookings(
    trip_id: int,
    include_cancelled: bool = Query(False),
    admin: Actor = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Passenger list ordered by seat. Admin only."""
    return await booking_service.list_trip_bookings(db, trip_id, admin, include_cancelled)


@router.get("/{trip_id}/activity", response_model=ActivityFeedResponse)
async def trip_activity(
    trip_id: int,
    after_id: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=activity_service.MAX_FEED_PAGE),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """
    Change feed for a trip's seats. Poll with the returned next_after_id to
    receive only entries committed since the previous call.
    """
    await trip_service.get_trip(db, trip_id)
    entries = await activity_service.list_trip_activity(db, trip_id, after_id, limit)
    return ActivityFeedResponse(
        trip_id=trip_id,
        entries=[ActivityEntryResponse.model_validate(entry) for entry in entries],
        next_after_id=entries[-1].id if entries else after_id,
    )
