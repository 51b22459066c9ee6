"""
Append-only activity log.

Entries are added inside the caller's transaction so they commit (or roll
back) together with the change they describe. The per-trip listing, ordered
by id, is the pollable change feed for seat map clients.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.models.activity_log import ActivityLog

MAX_FEED_PAGE = 500


def record_activity(
    db: AsyncSession,
    action: str,
    actor_id: str,
    *,
    details: Optional[dict] = None,
    trip_id: Optional[int] = None,
    booking_id: Optional[int] = None,
    amount: Optional[Decimal] = None,
) -> ActivityLog:
    entry = ActivityLog(
        action=action,
        actor_id=actor_id,
        details=details or {},
        trip_id=trip_id,
        booking_id=booking_id,
        amount=amount,
    )
    db.add(entry)
    return entry


async def list_trip_activity(
    db: AsyncSession,
    trip_id: int,
    after_id: int = 0,
    limit: int = 100,
) -> list[ActivityLog]:
    result = await db.execute(
        select(ActivityLog)
        .where(ActivityLog.trip_id == trip_id, ActivityLog.id > after_id)
        .order_by(ActivityLog.id.asc())
        .limit(min(limit, MAX_FEED_PAGE))
    )
    return list(result.scalars().all())
