"""
Trip master data, as far as the seat inventory needs it.

Trips are created and edited by the fleet administration screens; the
inventory only reads `seat_capacity` (immutable once the trip exists) and
`status`.
"""

from sqlalchemy import CheckConstraint, Column, DateTime, Index, Integer, Numeric, String
from sqlalchemy.orm import relationship

from ticketing.db.base import Base, TimestampMixin

TRIP_STATUSES = ("scheduled", "boarding", "departed", "arrived", "cancelled", "completed")
# Seats can only be taken while the trip is still selling
OPEN_TRIP_STATUSES = ("scheduled", "boarding")


class Trip(Base, TimestampMixin):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True)
    origin = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    departure_time = Column(DateTime(timezone=True), nullable=False)
    price = Column(Numeric(10, 2), nullable=True)
    seat_capacity = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="scheduled")

    seat_slots = relationship("SeatSlot", back_populates="trip", lazy="noload")
    bookings = relationship("Booking", back_populates="trip", lazy="noload")

    __table_args__ = (
        CheckConstraint("seat_capacity > 0", name="check_trip_seat_capacity_positive"),
        CheckConstraint(
            "status IN ('scheduled', 'boarding', 'departed', 'arrived', 'cancelled', 'completed')",
            name="check_trip_status",
        ),
        Index("ix_trips_departure_time", "departure_time"),
    )

    def __repr__(self) -> str:
        return f"<Trip(id={self.id}, {self.origin}->{self.destination}, seats={self.seat_capacity}, status={self.status})>"
