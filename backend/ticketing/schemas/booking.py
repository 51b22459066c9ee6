"""
Pydantic schemas for booking-related request/response validation.

Business rules (non-empty name, positive amount, seat within capacity) are
enforced by the booking engine so direct callers get the same errors.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class PassengerInfo(BaseModel):
    name: str = Field(..., max_length=255)
    phone: str = Field(..., max_length=32)
    id_number: Optional[str] = Field(None, max_length=64)
    emergency_contact_name: Optional[str] = Field(None, max_length=255)
    emergency_contact_phone: Optional[str] = Field(None, max_length=32)


class BookingCreate(BaseModel):
    trip_id: int
    seat_number: int
    passenger: PassengerInfo
    amount_paid: Decimal
    ticket_id: Optional[str] = Field(None, min_length=1, max_length=32)
    note: Optional[str] = Field(None, max_length=1000)


class BookingResponse(BaseModel):
    id: int
    trip_id: int
    seat_number: int
    passenger_name: str
    passenger_phone: str
    passenger_id_number: Optional[str]
    emergency_contact_name: Optional[str]
    emergency_contact_phone: Optional[str]
    note: Optional[str]
    ticket_id: str
    amount_paid: Decimal
    status: str
    created_by: str
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
    status: str


class BookingPurgeResponse(BaseModel):
    message: str
    booking_id: int
