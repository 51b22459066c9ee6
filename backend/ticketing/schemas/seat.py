"""
Pydantic schemas for the seat map.

A seat is either a stored ledger slot or implicitly available. The two are
distinct types tagged by `kind` so clients can't mistake one for the other.
"""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


class ReserveSeatRequest(BaseModel):
    hold_minutes: Optional[int] = None


class ReleaseSeatRequest(BaseModel):
    expected_status: str


class SeatSlotResponse(BaseModel):
    kind: Literal["slot"] = "slot"
    trip_id: int
    seat_number: int
    status: str
    holder_id: Optional[str]
    reserved_at: Optional[datetime]
    expires_at: Optional[datetime]
    booking_id: Optional[int]
    version: int

    model_config = {"from_attributes": True}


class AvailableSeatResponse(BaseModel):
    kind: Literal["available"] = "available"
    seat_number: int
    status: Literal["available"] = "available"


SeatEntry = Annotated[Union[SeatSlotResponse, AvailableSeatResponse], Field(discriminator="kind")]


class SeatSummary(BaseModel):
    available: int = 0
    reserved: int = 0
    booked: int = 0
    disabled: int = 0


class SeatStatusResponse(BaseModel):
    trip_id: int
    seat_capacity: int
    summary: SeatSummary
    seats: list[SeatEntry]


class SeatReleaseResponse(BaseModel):
    message: str
    trip_id: int
    seat_number: int
    status: str = "available"


class SweepResponse(BaseModel):
    released: int
