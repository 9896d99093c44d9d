"""
Hold manager: time-bounded seat reservations.

CONCURRENCY STRATEGY: Declared Uniqueness + Check-then-Insert
=============================================================

Problem:
  Two passengers pick seat 5 on the same trip at the same moment.
  Both read "seat 5 is free", both insert, both walk away with a ticket.

Solution:
  seat_allocations carries UNIQUE (trip_id, seat_number), and allocation
  rows only exist for live bookings. That constraint is the rule; every
  hold runs as one transaction:

  1. Reclaim expired holds on the trip (status flip + allocation delete),
     so a lapsed hold never blocks a new one.
  2. SELECT the requested seats already allocated on the trip. If any,
     abort with no mutation and report exactly those seats.
  3. INSERT the booking (status=held, hold_expires_at=now+TTL) and one
     allocation row per seat.
  4. COMMIT.

  If a concurrent hold slips in between steps 2 and 3, the unique index
  makes the second INSERT wait for the first transaction and then fail with
  an IntegrityError. Nothing of the losing transaction becomes visible; we
  roll back, re-read which seats are now taken, and report a conflict.
"""

import secrets
import time
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import utcnow
from app.core.config import get_settings
from app.core.exceptions import (
    BookingNotCancellableError,
    NotFoundError,
    SeatConflictError,
    TransientStoreError,
    ValidationError,
)
from app.core.logging import get_logger
from app.core.metrics import hold_latency, record_hold_attempt
from app.db.session import atomic
from app.models.booking import Booking, BookingStatus, SeatAllocation
from app.models.trip import Trip
from app.services.reaper_service import release_booking, release_expired_holds

logger = get_logger(__name__)
settings = get_settings()


def generate_ticket_token() -> str:
    # Tokens double as boarding credentials: CSPRNG only.
    return secrets.token_urlsafe(32)


def compute_total_price(seat_count: int) -> Decimal:
    return (settings.SEAT_PRICE * seat_count).quantize(Decimal("0.01"))


def _validate_hold_request(pickup: str, dropoff: str, seat_numbers: Iterable[int]) -> list[int]:
    seats = list(seat_numbers)
    if not seats:
        raise ValidationError("Seats are required")
    if len(set(seats)) != len(seats):
        raise ValidationError("Seat numbers must be distinct")
    if any(isinstance(s, bool) or not isinstance(s, int) or s < 1 for s in seats):
        raise ValidationError("Seat numbers must be positive integers")
    if len(seats) > settings.MAX_SEATS_PER_HOLD:
        raise ValidationError(f"At most {settings.MAX_SEATS_PER_HOLD} seats per hold")
    if not (pickup or "").strip() or not (dropoff or "").strip():
        raise ValidationError("Missing trip data")
    return sorted(seats)


async def _taken_seats(db: AsyncSession, trip_id: int, seats: list[int]) -> list[int]:
    result = await db.execute(
        select(SeatAllocation.seat_number).where(
            SeatAllocation.trip_id == trip_id,
            SeatAllocation.seat_number.in_(seats),
        )
    )
    return sorted(result.scalars().all())


async def create_hold(
    db: AsyncSession,
    owner_id: int,
    trip_id: int,
    pickup: str,
    dropoff: str,
    seat_numbers: Iterable[int],
    now: datetime | None = None,
) -> Booking:
    """
    Hold seats on a trip for HOLD_TTL_SECONDS.

    Returns the new held Booking (with ticket_token and hold_expires_at).
    Raises SeatConflictError naming the seats that are already taken.
    """
    seats = _validate_hold_request(pickup, dropoff, seat_numbers)
    now = now or utcnow()
    start = time.perf_counter()

    try:
        async with atomic(db):
            trip = await db.get(Trip, trip_id)
            if trip is None:
                raise NotFoundError(f"Trip {trip_id} not found")
            out_of_range = [s for s in seats if s > trip.seat_count]
            if out_of_range:
                raise ValidationError(
                    f"Seats {out_of_range} do not exist on this trip (1-{trip.seat_count})"
                )

            reclaimed = await release_expired_holds(db, now, trip_id=trip_id)
            if reclaimed:
                logger.info("expired_holds_reclaimed", trip_id=trip_id, released=reclaimed)

            taken = await _taken_seats(db, trip_id, seats)
            if taken:
                raise SeatConflictError(taken)

            booking = Booking(
                user_id=owner_id,
                trip_id=trip_id,
                pickup_location=pickup.strip(),
                dropoff_location=dropoff.strip(),
                total_price=compute_total_price(len(seats)),
                ticket_token=generate_ticket_token(),
                status=BookingStatus.HELD,
                hold_expires_at=now + timedelta(seconds=settings.HOLD_TTL_SECONDS),
                seats=[SeatAllocation(trip_id=trip_id, seat_number=s) for s in seats],
            )
            db.add(booking)
            await db.flush()

    except SeatConflictError as e:
        record_hold_attempt("conflict")
        logger.warning("hold_conflict", trip_id=trip_id, user_id=owner_id, seats=e.seats)
        raise
    except IntegrityError as e:
        # Lost the race on the unique seat index.
        async with atomic(db):
            taken = await _taken_seats(db, trip_id, seats)
        if not taken:
            record_hold_attempt("error")
            raise TransientStoreError() from e
        record_hold_attempt("conflict")
        logger.warning(
            "hold_conflict", trip_id=trip_id, user_id=owner_id, seats=taken, reason="concurrent_insert"
        )
        raise SeatConflictError(taken) from e
    except (NotFoundError, ValidationError):
        raise
    except Exception:
        record_hold_attempt("error")
        raise
    finally:
        hold_latency.observe(time.perf_counter() - start)

    record_hold_attempt("success")
    logger.info(
        "hold_created",
        booking_id=booking.id,
        user_id=owner_id,
        trip_id=trip_id,
        seats=seats,
        hold_expires_at=booking.hold_expires_at.isoformat(),
    )
    return booking


async def cancel_hold(db: AsyncSession, booking_id: int, owner_id: int) -> None:
    """Release the caller's own live hold right away."""
    async with atomic(db):
        released = await release_booking(db, booking_id, owner_id)
        if not released:
            raise BookingNotCancellableError()

    logger.info("hold_cancelled", booking_id=booking_id, user_id=owner_id)


async def get_user_bookings(db: AsyncSession, user_id: int) -> list[Booking]:
    """Get all bookings for a user, newest first."""
    result = await db.execute(
        select(Booking)
        .where(Booking.user_id == user_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())
