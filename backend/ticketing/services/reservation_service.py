"""
Reservation engine: holds, disables and releases seats.

State machine per seat (absence of a ledger row = available):

    available --reserve--> reserved
    available --disable--> disabled      (admin)
    reserved  --release(expected=reserved)--> available
    disabled  --release(expected=disabled)--> available   (admin)
    reserved  --book--> booked           (booking_service)

CONCURRENCY STRATEGY: Compare-and-swap on the ledger row
=========================================================

Taking a seat:
  1. Read the seat's effective state (lazy expiry applied)
  2. Reject unless it is available
  3. Write with the version we observed as the guard:
       - no row seen      -> insert only if the row is still absent
       - stale row seen   -> overwrite only if its version is unchanged
  4. Guard rejected -> someone else got there first -> SeatUnavailable

Releasing a seat:
  DELETE ... WHERE status = :expected AND version = :observed
  0 rows -> the seat changed under us -> ConcurrentModification, no write.

No locks are taken in-process; separate API instances collide in the
database, which is the only place that can arbitrate between them.

Reservations may carry expires_at. Expiry is evaluated at read time, so an
expired hold never blocks anyone even if the sweeper never runs.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.config import get_settings
from ticketing.core.exceptions import (
    ConcurrentModificationError,
    ForbiddenError,
    InputValidationError,
    SeatUnavailableError,
)
from ticketing.core.logging import get_logger
from ticketing.core.metrics import record_seat_operation
from ticketing.core.security import Actor, ensure_actor, ensure_admin
from ticketing.models.seat_slot import SeatSlot
from ticketing.services import seat_ledger
from ticketing.services.activity_service import record_activity
from ticketing.services.cache_service import publish_seat_event
from ticketing.services.trip_service import ensure_trip_open, get_trip_capacity

logger = get_logger(__name__)
settings = get_settings()

RELEASABLE_STATUSES = ("reserved", "disabled")
MAX_HOLD_MINUTES = 7 * 24 * 60


async def _take_seat(
    db: AsyncSession,
    trip_id: int,
    seat_number: int,
    status: str,
    actor: Actor,
    *,
    operation: str,
    expires_at: Optional[datetime] = None,
) -> SeatSlot:
    capacity = await ensure_trip_open(db, trip_id)
    seat_ledger.validate_seat_number(seat_number, capacity)

    now = seat_ledger.utcnow()
    view = await seat_ledger.get_seat(db, trip_id, seat_number, now=now)
    if not seat_ledger.is_available(view):
        record_seat_operation(operation, "conflict")
        logger.warning(
            "seat_take_rejected",
            operation=operation,
            trip_id=trip_id,
            seat_number=seat_number,
            current_status=view.status,
        )
        raise SeatUnavailableError(f"Seat {seat_number} is {view.status}. Please choose another seat.")

    expected_version = view.stale_slot.version if view.stale_slot is not None else None
    slot = await seat_ledger.upsert_slot(
        db,
        trip_id,
        seat_number,
        status,
        actor.id,
        expires_at=expires_at,
        expected_version=expected_version,
        now=now,
    )
    if slot is None:
        await db.rollback()
        record_seat_operation(operation, "conflict")
        logger.info(
            "seat_take_lost_race",
            operation=operation,
            trip_id=trip_id,
            seat_number=seat_number,
        )
        raise SeatUnavailableError(
            f"Seat {seat_number} was just taken by someone else. Please choose another seat."
        )
    return slot


async def reserve_seat(
    db: AsyncSession,
    trip_id: int,
    seat_number: int,
    actor: Actor,
    hold_minutes: Optional[int] = None,
) -> SeatSlot:
    """Hold an available seat for `actor`. Without a hold time it is held until released."""
    actor = ensure_actor(actor)
    if hold_minutes is None:
        hold_minutes = settings.RESERVATION_HOLD_MINUTES
    if hold_minutes is not None and not 0 < hold_minutes <= MAX_HOLD_MINUTES:
        raise InputValidationError(f"Hold time must be between 1 and {MAX_HOLD_MINUTES} minutes")

    expires_at = seat_ledger.utcnow() + timedelta(minutes=hold_minutes) if hold_minutes else None
    slot = await _take_seat(
        db, trip_id, seat_number, "reserved", actor, operation="reserve", expires_at=expires_at
    )

    record_activity(
        db,
        "seat_reserved",
        actor.id,
        trip_id=trip_id,
        details={
            "seat_number": seat_number,
            "expires_at": expires_at.isoformat() if expires_at else None,
        },
    )
    await db.commit()

    record_seat_operation("reserve", "success")
    logger.info(
        "seat_reserved",
        trip_id=trip_id,
        seat_number=seat_number,
        holder_id=actor.id,
        expires_at=expires_at,
    )
    await publish_seat_event(
        trip_id, "seat_reserved", seat_number=seat_number, status="reserved", actor_id=actor.id
    )
    return slot


async def disable_seat(db: AsyncSession, trip_id: int, seat_number: int, actor: Actor) -> SeatSlot:
    """Take an available seat out of sale. Admin only."""
    actor = ensure_admin(actor)
    slot = await _take_seat(db, trip_id, seat_number, "disabled", actor, operation="disable")

    record_activity(
        db, "seat_disabled", actor.id, trip_id=trip_id, details={"seat_number": seat_number}
    )
    await db.commit()

    record_seat_operation("disable", "success")
    logger.info("seat_disabled", trip_id=trip_id, seat_number=seat_number, admin_id=actor.id)
    await publish_seat_event(
        trip_id, "seat_disabled", seat_number=seat_number, status="disabled", actor_id=actor.id
    )
    return slot


async def release_seat(
    db: AsyncSession,
    trip_id: int,
    seat_number: int,
    expected_status: str,
    actor: Actor,
) -> None:
    """
    Return a reserved or disabled seat to available.

    The caller states which status it believes the seat has. If the seat has
    moved on (booked, released, re-reserved) nothing is written and
    ConcurrentModificationError tells the caller to re-read.
    """
    actor = ensure_actor(actor)
    if expected_status not in RELEASABLE_STATUSES:
        raise InputValidationError(
            "Only reserved or disabled seats can be released; cancel the booking instead"
        )
    if expected_status == "disabled":
        ensure_admin(actor)

    capacity = await get_trip_capacity(db, trip_id)
    seat_ledger.validate_seat_number(seat_number, capacity)

    slot = await seat_ledger.get_slot(db, trip_id, seat_number)
    if slot is None or slot.status != expected_status:
        record_seat_operation("release", "conflict")
        logger.warning(
            "seat_release_stale",
            trip_id=trip_id,
            seat_number=seat_number,
            expected_status=expected_status,
            current_status=slot.status if slot else "available",
        )
        raise ConcurrentModificationError(
            f"Seat {seat_number} is no longer {expected_status}. Refresh the seat map and try again."
        )

    if (
        expected_status == "reserved"
        and slot.holder_id != actor.id
        and not actor.is_admin
        and not seat_ledger.is_expired(slot, seat_ledger.utcnow())
    ):
        raise ForbiddenError("Only the holder or an admin can release this reservation")

    deleted = await seat_ledger.delete_slot(
        db, trip_id, seat_number, expected_status, expected_version=slot.version
    )
    if deleted == 0:
        await db.rollback()
        record_seat_operation("release", "conflict")
        logger.info("seat_release_lost_race", trip_id=trip_id, seat_number=seat_number)
        raise ConcurrentModificationError(
            f"Seat {seat_number} changed while releasing it. Refresh the seat map and try again."
        )

    action = "seat_unreserved" if expected_status == "reserved" else "seat_enabled"
    record_activity(
        db,
        action,
        actor.id,
        trip_id=trip_id,
        details={"seat_number": seat_number, "previous_holder": slot.holder_id},
    )
    await db.commit()

    record_seat_operation("release", "success")
    logger.info(action, trip_id=trip_id, seat_number=seat_number, actor_id=actor.id)
    await publish_seat_event(
        trip_id, action, seat_number=seat_number, status="available", actor_id=actor.id
    )


async def sweep_expired_reservations(
    db: AsyncSession,
    actor: Actor,
    trip_id: Optional[int] = None,
) -> int:
    """
    Eagerly delete expired reservations. Optional housekeeping: every read
    path already treats expired holds as available.
    """
    actor = ensure_admin(actor)
    freed = await seat_ledger.sweep_expired(db, trip_id=trip_id)

    for freed_trip_id, seat_number in freed:
        record_activity(
            db,
            "reservation_expired",
            actor.id,
            trip_id=freed_trip_id,
            details={"seat_number": seat_number},
        )
    await db.commit()

    logger.info("reservations_swept", trip_id=trip_id, freed=len(freed))
    for freed_trip_id, seat_number in freed:
        await publish_seat_event(
            freed_trip_id, "reservation_expired", seat_number=seat_number, status="available"
        )
    return len(freed)
