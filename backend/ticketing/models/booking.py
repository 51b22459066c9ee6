"""
Booking: a confirmed passenger on a seat.

Key design decisions:
- Partial unique index on (trip_id, seat_number) for active bookings: a second
  concurrent insert for the same seat fails at the database, whichever
  process it comes from
- Status moves to 'cancelled' instead of deleting, so the record survives
- ticket_id is unique across all bookings
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    text,
)
from sqlalchemy.orm import relationship

from ticketing.db.base import Base, TimestampMixin

BOOKING_STATUSES = ("booked", "checked_in", "cancelled")
ACTIVE_BOOKING_STATUSES = ("booked", "checked_in")

_ACTIVE_SEAT_PREDICATE = text("status IN ('booked', 'checked_in')")


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    seat_number = Column(Integer, nullable=False)

    passenger_name = Column(String(255), nullable=False)
    passenger_phone = Column(String(32), nullable=False)
    passenger_id_number = Column(String(64), nullable=True)
    emergency_contact_name = Column(String(255), nullable=True)
    emergency_contact_phone = Column(String(32), nullable=True)
    note = Column(String(1000), nullable=True)

    ticket_id = Column(String(32), nullable=False, unique=True)
    amount_paid = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default="booked")
    created_by = Column(String(64), nullable=False, index=True)

    trip = relationship("Trip", back_populates="bookings")

    __table_args__ = (
        Index(
            "uq_bookings_active_seat",
            "trip_id",
            "seat_number",
            unique=True,
            postgresql_where=_ACTIVE_SEAT_PREDICATE,
            sqlite_where=_ACTIVE_SEAT_PREDICATE,
        ),
        CheckConstraint("seat_number > 0", name="check_booking_seat_number_positive"),
        CheckConstraint("amount_paid > 0", name="check_booking_amount_positive"),
        CheckConstraint("status IN ('booked', 'checked_in', 'cancelled')", name="check_booking_status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_BOOKING_STATUSES

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, trip={self.trip_id}, seat={self.seat_number}, status={self.status})>"
