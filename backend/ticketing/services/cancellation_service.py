"""
Cancellation engine: reverses bookings and frees their seats.

The booking row is the durable record of whether a seat is truly taken, so
cancellation commits the booking status change (and its audit entry) first.
Clearing the seat's ledger row happens afterwards as best-effort cleanup: if
it fails, the request still succeeds and the leftover 'booked' row is an
orphan that every availability check treats as free (see seat_ledger).

The cleanup only deletes the ledger row while it still points at the
cancelled booking, so a seat re-booked in the meantime is never freed by a
late cleanup.
"""

from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.exceptions import (
    BookingAlreadyCancelledError,
    ConcurrentModificationError,
    ForbiddenError,
)
from ticketing.core.logging import get_logger
from ticketing.core.metrics import record_seat_operation
from ticketing.core.security import Actor, ensure_actor, ensure_admin
from ticketing.models.booking import Booking
from ticketing.services import seat_ledger
from ticketing.services.activity_service import record_activity
from ticketing.services.booking_service import ensure_owner_or_admin, load_booking
from ticketing.services.cache_service import publish_seat_event

logger = get_logger(__name__)


async def cancel_booking(db: AsyncSession, booking_id: int, actor: Actor) -> Booking:
    """Cancel a booking the caller created (admins may cancel any)."""
    actor = ensure_actor(actor)
    return await _cancel(db, booking_id, actor, by_admin=False)


async def cancel_booking_by_admin(db: AsyncSession, booking_id: int, actor: Actor) -> Booking:
    """Cancel any booking, skipping the ownership check. Admin only."""
    actor = ensure_admin(actor)
    return await _cancel(db, booking_id, actor, by_admin=True)


async def _cancel(db: AsyncSession, booking_id: int, actor: Actor, by_admin: bool) -> Booking:
    booking = await load_booking(db, booking_id)
    if not by_admin:
        ensure_owner_or_admin(booking, actor)

    if booking.status == "cancelled":
        raise BookingAlreadyCancelledError("Booking is already cancelled")
    if booking.status == "checked_in" and not actor.is_admin:
        raise ForbiddenError("Checked-in bookings can only be cancelled by an admin")

    previous_status = booking.status
    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.status == previous_status)
        .values(status="cancelled", updated_at=seat_ledger.utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        record_seat_operation("cancel", "conflict")
        raise ConcurrentModificationError("Booking changed while cancelling. Please refresh.")

    record_activity(
        db,
        "booking_cancelled",
        actor.id,
        trip_id=booking.trip_id,
        booking_id=booking.id,
        details={
            "seat_number": booking.seat_number,
            "ticket_id": booking.ticket_id,
            "previous_status": previous_status,
            "by_admin": by_admin,
        },
    )
    await db.commit()

    trip_id, seat_number = booking.trip_id, booking.seat_number
    await _clear_booked_slot(db, trip_id, seat_number, booking_id)
    await db.refresh(booking)

    record_seat_operation("cancel", "success")
    logger.info(
        "booking_cancelled",
        booking_id=booking_id,
        trip_id=trip_id,
        seat_number=seat_number,
        actor_id=actor.id,
        by_admin=by_admin,
    )
    await publish_seat_event(
        trip_id,
        "booking_cancelled",
        seat_number=seat_number,
        status="available",
        booking_id=booking_id,
        actor_id=actor.id,
    )
    return booking


async def _clear_booked_slot(db: AsyncSession, trip_id: int, seat_number: int, booking_id: int) -> None:
    try:
        deleted = await seat_ledger.delete_slot(
            db, trip_id, seat_number, "booked", booking_id=booking_id
        )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning(
            "seat_slot_cleanup_failed",
            trip_id=trip_id,
            seat_number=seat_number,
            booking_id=booking_id,
            error=str(e),
        )
        return

    if deleted == 0:
        logger.info(
            "seat_slot_cleanup_skipped",
            trip_id=trip_id,
            seat_number=seat_number,
            booking_id=booking_id,
            reason="slot no longer references this booking",
        )


async def purge_booking(db: AsyncSession, booking_id: int, actor: Actor) -> None:
    """Hard-delete a booking and free its seat. Admin only; the audit trail keeps a record."""
    actor = ensure_admin(actor)
    booking = await load_booking(db, booking_id)
    trip_id, seat_number = booking.trip_id, booking.seat_number

    await seat_ledger.delete_slot(db, trip_id, seat_number, "booked", booking_id=booking_id)
    await db.execute(
        delete(Booking)
        .where(Booking.id == booking_id)
        .execution_options(synchronize_session=False)
    )
    record_activity(
        db,
        "booking_purged",
        actor.id,
        trip_id=trip_id,
        booking_id=booking_id,
        details={
            "seat_number": seat_number,
            "ticket_id": booking.ticket_id,
            "previous_status": booking.status,
        },
    )
    await db.commit()
    db.expunge(booking)

    record_seat_operation("purge", "success")
    logger.info("booking_purged", booking_id=booking_id, trip_id=trip_id, admin_id=actor.id)
    await publish_seat_event(
        trip_id, "booking_purged", seat_number=seat_number, status="available", booking_id=booking_id
    )
