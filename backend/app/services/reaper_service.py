"""
Expiry reaper: returns seats of unconfirmed holds to the pool.

The release path is shared by three callers:
  - the background ExpiryReaper task (every REAPER_INTERVAL_SECONDS),
  - the hold manager, inline, before it checks for seat conflicts,
  - explicit hold cancellation.

Releasing is a conditional status flip (held -> released) followed by
deleting the allocation rows of released bookings. Because the status guard
is part of the UPDATE, a booking confirmed concurrently is never released,
and only allocations of bookings that really are released get deleted.
"""

import asyncio
import time
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.clock import utcnow
from app.core.logging import get_logger
from app.core.metrics import reaper_failures, reaper_last_sweep, reaper_released
from app.db.session import atomic
from app.models.booking import Booking, BookingStatus, SeatAllocation

logger = get_logger(__name__)


async def release_expired_holds(
    db: AsyncSession,
    now: datetime,
    trip_id: int | None = None,
) -> int:
    """
    Release held bookings whose hold has lapsed. Runs inside the caller's
    transaction and returns the number of bookings released.
    """
    stmt = (
        update(Booking)
        .where(
            Booking.status == BookingStatus.HELD,
            Booking.hold_expires_at <= now,
        )
        .values(status=BookingStatus.RELEASED)
        .execution_options(synchronize_session=False)
    )
    if trip_id is not None:
        stmt = stmt.where(Booking.trip_id == trip_id)

    result = await db.execute(stmt)
    released = result.rowcount or 0
    if released:
        await _free_released_seats(db, trip_id)
    return released


async def release_booking(db: AsyncSession, booking_id: int, owner_id: int) -> bool:
    """Force-release one live hold. Runs inside the caller's transaction."""
    result = await db.execute(
        update(Booking)
        .where(
            Booking.id == booking_id,
            Booking.user_id == owner_id,
            Booking.status == BookingStatus.HELD,
        )
        .values(status=BookingStatus.RELEASED)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return False
    await db.execute(
        delete(SeatAllocation)
        .where(SeatAllocation.booking_id == booking_id)
        .execution_options(synchronize_session=False)
    )
    return True


async def _free_released_seats(db: AsyncSession, trip_id: int | None) -> None:
    released_ids = select(Booking.id).where(Booking.status == BookingStatus.RELEASED)
    stmt = delete(SeatAllocation).where(SeatAllocation.booking_id.in_(released_ids))
    if trip_id is not None:
        stmt = stmt.where(SeatAllocation.trip_id == trip_id)
    await db.execute(stmt.execution_options(synchronize_session=False))


async def sweep(db: AsyncSession, now: datetime | None = None) -> int:
    """Release every expired hold, across all trips, as one transaction."""
    now = now or utcnow()
    async with atomic(db):
        released = await release_expired_holds(db, now)

    if released:
        reaper_released.inc(released)
        logger.info("reaper_sweep", released=released)
    reaper_last_sweep.set(time.time())
    return released


class ExpiryReaper:
    """
    Background task that sweeps expired holds on a fixed period.

    Owned by the application lifespan: start() at boot, stop() at shutdown.
    A failing cycle is logged and retried on the next tick.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], interval: float):
        self.session_factory = session_factory
        self.interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="expiry-reaper")
        logger.info("reaper_started", interval_seconds=self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("reaper_stopped")

    async def run_once(self) -> int:
        """One sweep cycle. Never raises except on cancellation."""
        try:
            async with self.session_factory() as db:
                return await sweep(db)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            reaper_failures.inc()
            logger.error("reaper_sweep_failed", error=str(e), exc_info=True)
            return 0

    async def _run(self) -> None:
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval)
