"""Initial schema: trips, bookings, seat_slots, activity_logs.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_SEAT = sa.text("status IN ('booked', 'checked_in')")


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Trips table (owned by fleet administration; read-only to the inventory)
    op.create_table(
        "trips",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("origin", sa.String(255), nullable=False),
        sa.Column("destination", sa.String(255), nullable=False),
        sa.Column("departure_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=True),
        sa.Column("seat_capacity", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'scheduled'")),
        *_timestamps(),
        sa.CheckConstraint("seat_capacity > 0", name="check_trip_seat_capacity_positive"),
        sa.CheckConstraint(
            "status IN ('scheduled', 'boarding', 'departed', 'arrived', 'cancelled', 'completed')",
            name="check_trip_status",
        ),
    )
    op.create_index("ix_trips_id", "trips", ["id"])
    op.create_index("ix_trips_departure_time", "trips", ["departure_time"])

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("trip_id", sa.Integer(), sa.ForeignKey("trips.id", ondelete="CASCADE"), nullable=False),
        sa.Column("seat_number", sa.Integer(), nullable=False),
        sa.Column("passenger_name", sa.String(255), nullable=False),
        sa.Column("passenger_phone", sa.String(32), nullable=False),
        sa.Column("passenger_id_number", sa.String(64), nullable=True),
        sa.Column("emergency_contact_name", sa.String(255), nullable=True),
        sa.Column("emergency_contact_phone", sa.String(32), nullable=True),
        sa.Column("note", sa.String(1000), nullable=True),
        sa.Column("ticket_id", sa.String(32), nullable=False),
        sa.Column("amount_paid", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'booked'")),
        sa.Column("created_by", sa.String(64), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("ticket_id"),
        sa.CheckConstraint("seat_number > 0", name="check_booking_seat_number_positive"),
        sa.CheckConstraint("amount_paid > 0", name="check_booking_amount_positive"),
        sa.CheckConstraint("status IN ('booked', 'checked_in', 'cancelled')", name="check_booking_status"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_trip_id", "bookings", ["trip_id"])
    op.create_index("ix_bookings_created_by", "bookings", ["created_by"])
    # ONE ACTIVE BOOKING PER SEAT: the second concurrent insert for a seat
    # fails here. Cancelled bookings are outside the index so the seat can
    # be sold again.
    op.create_index(
        "uq_bookings_active_seat",
        "bookings",
        ["trip_id", "seat_number"],
        unique=True,
        postgresql_where=ACTIVE_SEAT,
        sqlite_where=ACTIVE_SEAT,
    )

    # Seat ledger: one row per seat that is not available
    op.create_table(
        "seat_slots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("trip_id", sa.Integer(), sa.ForeignKey("trips.id", ondelete="CASCADE"), nullable=False),
        sa.Column("seat_number", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("holder_id", sa.String(64), nullable=True),
        sa.Column("reserved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.UniqueConstraint("trip_id", "seat_number", name="uq_seat_slot_trip_seat"),
        sa.CheckConstraint("seat_number > 0", name="check_seat_slot_number_positive"),
        sa.CheckConstraint("status IN ('reserved', 'booked', 'disabled')", name="check_seat_slot_status"),
    )
    op.create_index("ix_seat_slots_id", "seat_slots", ["id"])
    op.create_index("ix_seat_slots_trip_id", "seat_slots", ["trip_id"])

    # Activity log (append-only)
    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("trip_id", sa.Integer(), nullable=True),
        sa.Column("booking_id", sa.Integer(), nullable=True),
        sa.Column("amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("actor_id", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_id", "activity_logs", ["id"])
    op.create_index("ix_activity_logs_trip_id_id", "activity_logs", ["trip_id", "id"])


def downgrade() -> None:
    op.drop_table("activity_logs")
    op.drop_table("seat_slots")
    op.drop_index("uq_bookings_active_seat", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("trips")
