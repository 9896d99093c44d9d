"""
Seat status query: read-only projection of the live seat map of a trip.
"""

from datetime import datetime

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import utcnow
from app.models.booking import Booking, BookingStatus, SeatAllocation
from app.models.user import User


async def get_reserved_seats(
    db: AsyncSession,
    trip_id: int,
    now: datetime | None = None,
) -> list[tuple[int, str]]:
    """
    (seat_number, gender) for every seat under a live booking, by seat number.

    Holds that have lapsed but were not swept yet are already free here.
    Gender is informational for the client's seat map; it is not a rule.
    """
    now = now or utcnow()
    result = await db.execute(
        select(SeatAllocation.seat_number, func.coalesce(User.gender, "none"))
        .join(Booking, Booking.id == SeatAllocation.booking_id)
        .join(User, User.id == Booking.user_id)
        .where(
            SeatAllocation.trip_id == trip_id,
            or_(
                Booking.status.in_([BookingStatus.CONFIRMED, BookingStatus.USED]),
                and_(
                    Booking.status == BookingStatus.HELD,
                    Booking.hold_expires_at > now,
                ),
            ),
        )
        .order_by(SeatAllocation.seat_number)
    )
    rows = [(seat_number, gender) for seat_number, gender in result.all()]
    # Read-only: end the implicit transaction right away.
    await db.rollback()
    return rows
