"""
Booking endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.security import Actor, get_current_actor
from ticketing.db.session import get_db
from ticketing.schemas.booking import BookingCancelResponse, BookingCreate, BookingResponse
from ticketing.services import booking_service, cancellation_service

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """
    Book a seat for a passenger.

    Works on an available seat or converts the caller's own reservation.
    409 seat_already_booked / seat_unavailable when another caller got the
    seat first; pick another seat.
    """
    return await booking_service.create_booking(
        db,
        booking_data.trip_id,
        booking_data.seat_number,
        booking_data.passenger,
        booking_data.amount_paid,
        actor,
        ticket_id=booking_data.ticket_id,
        note=booking_data.note,
    )


@router.get("/", response_model=list[BookingResponse])
async def list_my_bookings(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Bookings created by the caller, newest first."""
    return await booking_service.list_user_bookings(db, actor)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.get_booking(db, booking_id, actor)


@router.post("/{booking_id}/cancel", response_model=BookingCancelResponse)
async def cancel_booking(
    booking_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking and free its seat. The booking record is kept."""
    booking = await cancellation_service.cancel_booking(db, booking_id, actor)
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        booking_id=booking.id,
        status=booking.status,
    )


@router.post("/{booking_id}/check-in", response_model=BookingResponse)
async def check_in_booking(
    booking_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.check_in_booking(db, booking_id, actor)
