"""
Pydantic schemas for the activity feed.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel


class ActivityEntryResponse(BaseModel):
    id: int
    action: str
    details: dict[str, Any]
    trip_id: Optional[int]
    booking_id: Optional[int]
    amount: Optional[Decimal]
    actor_id: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ActivityFeedResponse(BaseModel):
    trip_id: int
    entries: list[ActivityEntryResponse]
    # Pass back as after_id to fetch only newer entries
    next_after_id: int
