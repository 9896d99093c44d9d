"""
Confirmation service tests.
"""

import asyncio
from datetime import timedelta

import pytest

from app.core.clock import utcnow
from app.core.exceptions import HoldNotConfirmableError
from app.models.booking import Booking, BookingStatus
from app.services.confirmation_service import confirm_booking
from app.services.hold_service import cancel_hold, create_hold
from app.services.reaper_service import sweep


async def hold(session_factory, user, trip, seats, now=None):
    async with session_factory() as db:
        return await create_hold(db, user.id, trip.id, "Irbid Station", "Main Gate", seats, now=now)


async def confirm(session_factory, booking_id, user_id, now=None):
    async with session_factory() as db:
        return await confirm_booking(db, booking_id, user_id, now=now)


async def status_of(session_factory, booking_id):
    async with session_factory() as db:
        return (await db.get(Booking, booking_id)).status


@pytest.mark.asyncio
async def test_confirm_live_hold(session_factory, test_user, test_trip):
    booking = await hold(session_factory, test_user, test_trip, [3, 4])

    confirmed = await confirm(session_factory, booking.id, test_user.id)

    assert confirmed.status == BookingStatus.CONFIRMED
    assert confirmed.ticket_token == booking.ticket_token
    assert confirmed.total_price == booking.total_price


@pytest.mark.asyncio
async def test_expired_hold_cannot_be_confirmed_before_any_sweep(session_factory, test_user, test_trip):
    booking = await hold(
        session_factory, test_user, test_trip, [3, 4], now=utcnow() - timedelta(minutes=5)
    )

    with pytest.raises(HoldNotConfirmableError):
        await confirm(session_factory, booking.id, test_user.id)

    # No mutation: still held, just lapsed.
    assert await status_of(session_factory, booking.id) == BookingStatus.HELD


@pytest.mark.asyncio
async def test_expiry_boundary_is_exclusive(session_factory, test_user, test_trip):
    now = utcnow()
    booking = await hold(session_factory, test_user, test_trip, [1], now=now)

    with pytest.raises(HoldNotConfirmableError):
        await confirm(session_factory, booking.id, test_user.id, now=booking.hold_expires_at)


@pytest.mark.asyncio
async def test_cannot_confirm_someone_elses_hold(session_factory, test_user, other_user, test_trip):
    booking = await hold(session_factory, test_user, test_trip, [3])

    with pytest.raises(HoldNotConfirmableError):
        await confirm(session_factory, booking.id, other_user.id)

    assert await status_of(session_factory, booking.id) == BookingStatus.HELD


@pytest.mark.asyncio
async def test_unknown_booking(session_factory, test_user, test_trip):
    with pytest.raises(HoldNotConfirmableError):
        await confirm(session_factory, 424242, test_user.id)


@pytest.mark.asyncio
async def test_confirm_is_not_repeatable(session_factory, test_user, test_trip):
    booking = await hold(session_factory, test_user, test_trip, [3])
    await confirm(session_factory, booking.id, test_user.id)

    with pytest.raises(HoldNotConfirmableError):
        await confirm(session_factory, booking.id, test_user.id)


@pytest.mark.asyncio
async def test_released_hold_cannot_be_confirmed(session_factory, test_user, test_trip):
    booking = await hold(
        session_factory, test_user, test_trip, [3], now=utcnow() - timedelta(minutes=5)
    )
    async with session_factory() as db:
        assert await sweep(db) == 1

    with pytest.raises(HoldNotConfirmableError):
        # Even with a clock that would still consider the hold live.
        await confirm(session_factory, booking.id, test_user.id, now=booking.hold_expires_at - timedelta(seconds=1))

    assert await status_of(session_factory, booking.id) == BookingStatus.RELEASED


@pytest.mark.asyncio
async def test_cancelled_hold_cannot_be_confirmed(session_factory, test_user, test_trip):
    booking = await hold(session_factory, test_user, test_trip, [3])
    async with session_factory() as db:
        await cancel_hold(db, booking.id, test_user.id)

    with pytest.raises(HoldNotConfirmableError):
        await confirm(session_factory, booking.id, test_user.id)


@pytest.mark.asyncio
async def test_confirm_racing_reaper_never_confirms_a_freed_seat(session_factory, test_user, test_trip):
    # Hold is live for confirm's clock but expired for the reaper's.
    now = utcnow()
    booking = await hold(session_factory, test_user, test_trip, [8], now=now)
    reaper_now = booking.hold_expires_at + timedelta(seconds=1)

    async def run_sweep():
        async with session_factory() as db:
            return await sweep(db, now=reaper_now)

    results = await asyncio.gather(
        confirm(session_factory, booking.id, test_user.id, now=now),
        run_sweep(),
        return_exceptions=True,
    )

    final = await status_of(session_factory, booking.id)
    if final == BookingStatus.CONFIRMED:
        assert results[1] == 0
    else:
        assert final == BookingStatus.RELEASED
        assert isinstance(results[0], HoldNotConfirmableError)
