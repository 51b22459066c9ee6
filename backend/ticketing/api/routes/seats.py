"""
Seat map endpoints: snapshot, reserve, disable, release.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.security import Actor, get_current_actor, get_current_admin
from ticketing.db.session import get_db
from ticketing.schemas.seat import (
    AvailableSeatResponse,
    ReleaseSeatRequest,
    ReserveSeatRequest,
    SeatReleaseResponse,
    SeatSlotResponse,
    SeatStatusResponse,
    SeatSummary,
    SweepResponse,
)
from ticketing.services import reservation_service, seat_ledger

router = APIRouter(prefix="/trips/{trip_id}/seats", tags=["Seats"])


def _seat_entry(view: seat_ledger.SeatView):
    if seat_ledger.is_available(view):
        return AvailableSeatResponse(seat_number=view.seat_number)
    return SeatSlotResponse.model_validate(view)


@router.get("", response_model=SeatStatusResponse)
async def get_seat_status(trip_id: int, db: AsyncSession = Depends(get_db)):
    """
    Every seat of the trip. Seats without a ledger entry, with an expired
    hold, or with a slot whose booking was cancelled come back as available.
    Never cached: clients poll this (or follow the activity feed) for changes.
    """
    snapshot = await seat_ledger.get_seat_status(db, trip_id)
    seats = [_seat_entry(view) for view in snapshot.values()]

    summary = SeatSummary()
    for seat in seats:
        setattr(summary, seat.status, getattr(summary, seat.status) + 1)

    return SeatStatusResponse(
        trip_id=trip_id,
        seat_capacity=len(seats),
        summary=summary,
        seats=seats,
    )


@router.post("/sweep", response_model=SweepResponse)
async def sweep_expired_reservations(
    trip_id: int,
    admin: Actor = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete this trip's expired reservation rows. Optional housekeeping."""
    released = await reservation_service.sweep_expired_reservations(db, admin, trip_id=trip_id)
    return SweepResponse(released=released)


@router.post("/{seat_number}/reserve", response_model=SeatSlotResponse)
async def reserve_seat(
    trip_id: int,
    seat_number: int,
    request: Optional[ReserveSeatRequest] = None,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Hold a seat. 409 if it is not available."""
    return await reservation_service.reserve_seat(
        db, trip_id, seat_number, actor, hold_minutes=request.hold_minutes if request else None
    )


@router.post("/{seat_number}/disable", response_model=SeatSlotResponse)
async def disable_seat(
    trip_id: int,
    seat_number: int,
    admin: Actor = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Take a seat out of sale. Admin only."""
    return await reservation_service.disable_seat(db, trip_id, seat_number, admin)


@router.post("/{seat_number}/release", response_model=SeatReleaseResponse)
async def release_seat(
    trip_id: int,
    seat_number: int,
    request: ReleaseSeatRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """
    Unreserve (expected_status=reserved) or enable (expected_status=disabled)
    a seat. 409 concurrent_modification if the seat is no longer in the
    expected status; re-read the seat map before retrying.
    """
    await reservation_service.release_seat(db, trip_id, seat_number, request.expected_status, actor)
    return SeatReleaseResponse(
        message="Seat released",
        trip_id=trip_id,
        seat_number=seat_number,
    )
