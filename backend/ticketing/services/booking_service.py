"""
Booking engine: turns a seat into a confirmed passenger booking.

CONCURRENCY STRATEGY: one transaction, two database guards
===========================================================

Problem:
  Two agents book seat 12 at the same moment. Both read "available", both
  insert a booking, both mark the seat booked. One passenger has no seat.

Solution:
  Everything happens in a single transaction, and each write is guarded by
  the database rather than by the earlier read:

  1. INSERT the booking. A partial unique index on (trip_id, seat_number)
     WHERE status IN ('booked', 'checked_in') means only one active booking
     per seat can ever commit. The loser gets IntegrityError ->
     SeatAlreadyBooked.
  2. Read the seat's ledger row and decide whether this actor may take it
     (free, expired hold, orphaned slot, or their own reservation).
  3. Upsert the ledger row to 'booked' guarded by the version observed in
     step 2. Guard rejected -> SeatUnavailable.
  4. Append 'booking_created' to the activity log.
  5. COMMIT. Any failure before this rolls back 1-4 together, so there is
     never a booking without its seat slot or the other way round.

A reservation converts straight into a booking: step 3 overwrites the
'reserved' row in place.
"""

import secrets
import time
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.config import get_settings
from ticketing.core.exceptions import (
    BookingAlreadyCancelledError,
    BookingNotFoundError,
    ConcurrentModificationError,
    ForbiddenError,
    InputValidationError,
    SeatAlreadyBookedError,
    SeatUnavailableError,
)
from ticketing.core.logging import get_logger
from ticketing.core.metrics import booking_latency, record_seat_operation
from ticketing.core.security import Actor, ensure_actor, ensure_admin
from ticketing.models.booking import Booking
from ticketing.models.seat_slot import SeatSlot
from ticketing.schemas.booking import PassengerInfo
from ticketing.services import seat_ledger
from ticketing.services.activity_service import record_activity
from ticketing.services.cache_service import publish_seat_event
from ticketing.services.trip_service import ensure_trip_open, get_trip

logger = get_logger(__name__)
settings = get_settings()

MIN_PHONE_LENGTH = 10
TICKET_ID_ATTEMPTS = 5


def generate_ticket_id() -> str:
    """PREFIX + last 6 digits of the millisecond clock + 2 random digits, e.g. FG48213307."""
    millis = str(int(time.time() * 1000))[-6:]
    return f"{settings.TICKET_ID_PREFIX}{millis}{secrets.randbelow(100):02d}"


def validate_booking_input(passenger: PassengerInfo, amount_paid: Decimal) -> None:
    if not passenger.name or not passenger.name.strip():
        raise InputValidationError("Passenger name is required")
    if not passenger.phone or not passenger.phone.strip():
        raise InputValidationError("Passenger phone number is required")
    if len(passenger.phone.strip()) < MIN_PHONE_LENGTH:
        raise InputValidationError("Please enter a valid phone number")
    if amount_paid is None or Decimal(amount_paid) <= 0:
        raise InputValidationError("Amount paid must be greater than zero")


def _may_take_slot(slot: Optional[SeatSlot], actor: Actor) -> bool:
    """
    Whether a booking by `actor` may overwrite the seat's current ledger row.
    Called after our booking row is inserted, so a 'booked' row here can only
    belong to a booking that is no longer active.
    """
    if slot is None or slot.status == "booked":
        return True
    if slot.status == "reserved":
        return (
            slot.holder_id == actor.id
            or actor.is_admin
            or seat_ledger.is_expired(slot, seat_ledger.utcnow())
        )
    return False


async def _unused_ticket_id(db: AsyncSession) -> str:
    for _ in range(TICKET_ID_ATTEMPTS):
        candidate = generate_ticket_id()
        existing = await db.execute(select(Booking.id).where(Booking.ticket_id == candidate))
        if existing.scalar_one_or_none() is None:
            return candidate
    raise ConcurrentModificationError("Could not allocate a ticket id. Please try again.")


async def _insert_booking(
    db: AsyncSession,
    trip_id: int,
    seat_number: int,
    passenger: PassengerInfo,
    amount_paid: Decimal,
    actor: Actor,
    ticket_id: Optional[str],
    note: Optional[str],
) -> Booking:
    """
    Step 1: INSERT the booking row, guarded by uq_bookings_active_seat.

    A generated ticket id that collides with a concurrent booking is replaced
    and the insert retried; nothing else has been written at that point.
    """
    supplied_ticket = ticket_id
    for _ in range(TICKET_ID_ATTEMPTS):
        booking = Booking(
            trip_id=trip_id,
            seat_number=seat_number,
            passenger_name=passenger.name.strip(),
            passenger_phone=passenger.phone.strip(),
            passenger_id_number=passenger.id_number or None,
            emergency_contact_name=passenger.emergency_contact_name or None,
            emergency_contact_phone=passenger.emergency_contact_phone or None,
            note=note or None,
            ticket_id=supplied_ticket or await _unused_ticket_id(db),
            amount_paid=Decimal(amount_paid),
            status="booked",
            created_by=actor.id,
        )
        attempted_ticket = booking.ticket_id
        db.add(booking)
        try:
            await db.flush()
            return booking
        except IntegrityError:
            await db.rollback()

        if await seat_ledger.find_active_booking(db, trip_id, seat_number):
            record_seat_operation("book", "conflict")
            logger.info("booking_lost_race", trip_id=trip_id, seat_number=seat_number)
            raise SeatAlreadyBookedError(
                f"Seat {seat_number} was just booked by someone else. Please choose another seat."
            )
        if supplied_ticket:
            raise InputValidationError(f"Ticket id {supplied_ticket} is already in use")
        logger.info("ticket_id_collision", ticket_id=attempted_ticket)

    raise ConcurrentModificationError("Could not allocate a ticket id. Please try again.")


async def create_booking(
    db: AsyncSession,
    trip_id: int,
    seat_number: int,
    passenger: PassengerInfo,
    amount_paid: Decimal,
    actor: Actor,
    ticket_id: Optional[str] = None,
    note: Optional[str] = None,
) -> Booking:
    actor = ensure_actor(actor)
    validate_booking_input(passenger, amount_paid)
    started = time.perf_counter()

    capacity = await ensure_trip_open(db, trip_id)
    seat_ledger.validate_seat_number(seat_number, capacity)

    # Fast path; the unique index below is what actually decides races
    if await seat_ledger.find_active_booking(db, trip_id, seat_number):
        record_seat_operation("book", "conflict")
        raise SeatAlreadyBookedError(
            f"Seat {seat_number} has already been booked. Please select another seat."
        )

    if ticket_id:
        taken = await db.execute(select(Booking.id).where(Booking.ticket_id == ticket_id))
        if taken.scalar_one_or_none() is not None:
            raise InputValidationError(f"Ticket id {ticket_id} is already in use")

    booking = await _insert_booking(
        db, trip_id, seat_number, passenger, amount_paid, actor, ticket_id, note
    )
    ticket_id = booking.ticket_id

    # Step 2 + 3: move the ledger row to booked, guarded by its version.
    # Rollback expires ORM state, so keep plain copies of what we report.
    slot = await seat_ledger.get_slot(db, trip_id, seat_number)
    current_status = slot.status if slot is not None else "available"
    holder_id = slot.holder_id if slot is not None else None
    expected_version = slot.version if slot is not None else None
    converted = current_status == "reserved"

    if not _may_take_slot(slot, actor):
        await db.rollback()
        record_seat_operation("book", "conflict")
        logger.warning(
            "booking_rejected_seat_held",
            trip_id=trip_id,
            seat_number=seat_number,
            current_status=current_status,
            holder_id=holder_id,
        )
        raise SeatUnavailableError(f"Seat {seat_number} is {current_status}. Please choose another seat.")

    written = await seat_ledger.upsert_slot(
        db,
        trip_id,
        seat_number,
        "booked",
        actor.id,
        booking_id=booking.id,
        expected_version=expected_version,
    )
    if written is None:
        await db.rollback()
        record_seat_operation("book", "conflict")
        logger.info("booking_slot_lost_race", trip_id=trip_id, seat_number=seat_number)
        raise SeatUnavailableError(
            f"Seat {seat_number} was just taken by someone else. Please choose another seat."
        )

    # Step 4: audit entry, same transaction
    record_activity(
        db,
        "booking_created",
        actor.id,
        trip_id=trip_id,
        booking_id=booking.id,
        amount=booking.amount_paid,
        details={
            "seat_number": seat_number,
            "passenger_name": booking.passenger_name,
            "passenger_phone": booking.passenger_phone,
            "ticket_id": ticket_id,
            "amount_paid": str(booking.amount_paid),
            "converted_reservation": converted,
        },
    )

    # Step 5
    await db.commit()
    await db.refresh(booking)

    booking_latency.observe(time.perf_counter() - started)
    record_seat_operation("book", "success")
    logger.info(
        "booking_created",
        booking_id=booking.id,
        trip_id=trip_id,
        seat_number=seat_number,
        ticket_id=ticket_id,
        created_by=actor.id,
    )
    await publish_seat_event(
        trip_id,
        "booking_created",
        seat_number=seat_number,
        status="booked",
        booking_id=booking.id,
        actor_id=actor.id,
    )
    return booking


async def load_booking(db: AsyncSession, booking_id: int) -> Booking:
    result = await db.execute(
        select(Booking).where(Booking.id == booking_id).execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise BookingNotFoundError(booking_id)
    return booking


def ensure_owner_or_admin(booking: Booking, actor: Actor) -> None:
    if booking.created_by != actor.id and not actor.is_admin:
        raise ForbiddenError("You can only manage bookings you created")


async def get_booking(db: AsyncSession, booking_id: int, actor: Actor) -> Booking:
    actor = ensure_actor(actor)
    booking = await load_booking(db, booking_id)
    ensure_owner_or_admin(booking, actor)
    return booking


async def list_user_bookings(db: AsyncSession, actor: Actor) -> list[Booking]:
    actor = ensure_actor(actor)
    result = await db.execute(
        select(Booking)
        .where(Booking.created_by == actor.id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())


async def list_trip_bookings(
    db: AsyncSession,
    trip_id: int,
    actor: Actor,
    include_cancelled: bool = False,
) -> list[Booking]:
    """Passenger list for a trip, by seat."""
    ensure_admin(actor)
    await get_trip(db, trip_id)

    query = select(Booking).where(Booking.trip_id == trip_id)
    if not include_cancelled:
        query = query.where(Booking.status != "cancelled")
    result = await db.execute(query.order_by(Booking.seat_number.asc(), Booking.id.asc()))
    return list(result.scalars().all())


async def check_in_booking(db: AsyncSession, booking_id: int, actor: Actor) -> Booking:
    """booked -> checked_in."""
    actor = ensure_actor(actor)
    booking = await load_booking(db, booking_id)
    ensure_owner_or_admin(booking, actor)

    if booking.status == "cancelled":
        raise BookingAlreadyCancelledError("Booking is cancelled and cannot be checked in")
    if booking.status == "checked_in":
        raise InputValidationError("Booking is already checked in")

    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.status == "booked")
        .values(status="checked_in", updated_at=seat_ledger.utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise ConcurrentModificationError("Booking changed while checking in. Please refresh.")

    record_activity(
        db,
        "booking_checked_in",
        actor.id,
        trip_id=booking.trip_id,
        booking_id=booking.id,
        details={"seat_number": booking.seat_number, "ticket_id": booking.ticket_id},
    )
    await db.commit()
    await db.refresh(booking)

    record_seat_operation("check_in", "success")
    logger.info("booking_checked_in", booking_id=booking.id, trip_id=booking.trip_id)
    await publish_seat_event(
        booking.trip_id,
        "booking_checked_in",
        seat_number=booking.seat_number,
        status="booked",
        booking_id=booking.id,
    )
    return booking
