"""
Confirmation service: promotes a live hold to a confirmed booking.

The liveness check and the status flip are one conditional UPDATE, evaluated
against a single clock reading. If the reaper (or a cancellation) released
the booking first, the status guard no longer matches and nothing changes;
if we flip first, the reaper's guard no longer matches instead.
"""

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import utcnow
from app.core.exceptions import HoldNotConfirmableError
from app.core.logging import get_logger
from app.core.metrics import record_confirm_attempt
from app.db.session import atomic
from app.models.booking import Booking, BookingStatus

logger = get_logger(__name__)


async def confirm_booking(
    db: AsyncSession,
    booking_id: int,
    owner_id: int,
    now: datetime | None = None,
) -> Booking:
    """
    Confirm the caller's held booking while its hold is still live.

    Raises HoldNotConfirmableError when the booking does not exist, belongs
    to someone else, is no longer held, or its hold has lapsed (even if no
    reaper cycle has run yet).
    """
    now = now or utcnow()

    async with atomic(db):
        result = await db.execute(
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.user_id == owner_id,
                Booking.status == BookingStatus.HELD,
                Booking.hold_expires_at > now,
            )
            .values(status=BookingStatus.CONFIRMED)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            record_confirm_attempt(False)
            logger.warning("confirm_rejected", booking_id=booking_id, user_id=owner_id)
            raise HoldNotConfirmableError()

        booking = await db.get(Booking, booking_id, populate_existing=True)

    record_confirm_attempt(True)
    logger.info("booking_confirmed", booking_id=booking_id, user_id=owner_id)
    return booking
