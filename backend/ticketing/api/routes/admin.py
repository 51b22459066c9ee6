"""
Administrative booking endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.security import Actor, get_current_admin
from ticketing.db.session import get_db
from ticketing.schemas.booking import BookingCancelResponse, BookingPurgeResponse
from ticketing.services import cancellation_service

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/bookings/{booking_id}/cancel", response_model=BookingCancelResponse)
async def cancel_booking_as_admin(
    booking_id: int,
    admin: Actor = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Cancel any booking regardless of who created it."""
    booking = await cancellation_service.cancel_booking_by_admin(db, booking_id, admin)
    return BookingCancelResponse(
        message="Booking cancelled by admin",
        booking_id=booking.id,
        status=booking.status,
    )


@router.delete("/bookings/{booking_id}", response_model=BookingPurgeResponse)
async def purge_booking(
    booking_id: int,
    admin: Actor = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Permanently delete a booking and free its seat."""
    await cancellation_service.purge_booking(db, booking_id, admin)
    return BookingPurgeResponse(message="Booking purged", booking_id=booking_id)
