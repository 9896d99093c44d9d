"""
Booking endpoints: hold seats, confirm a hold, cancel a hold, list bookings.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user_id
from app.db.session import get_db
from app.models.booking import Booking, BookingStatus
from app.schemas.booking import (
    BookingResponse,
    CancelResponse,
    ConfirmRequest,
    ConfirmResponse,
    HoldCreate,
    HoldResponse,
)
from app.services.confirmation_service import confirm_booking
from app.services.hold_service import cancel_hold, create_hold, get_user_bookings

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def _to_response(booking: Booking) -> BookingResponse:
    return BookingResponse(
        booking_id=booking.id,
        trip_id=booking.trip_id,
        pickup=booking.pickup_location,
        dropoff=booking.dropoff_location,
        seats=booking.seat_numbers,
        total_price=booking.total_price,
        status=booking.status,
        hold_expires_at=booking.hold_expires_at if booking.status == BookingStatus.HELD else None,
        # The token is the boarding pass; only hand it out once it can be used.
        ticket_token=booking.ticket_token
        if booking.status in (BookingStatus.CONFIRMED, BookingStatus.USED)
        else None,
        created_at=booking.created_at,
    )


@router.post("/hold", response_model=HoldResponse)
async def hold_seats(
    hold_data: HoldCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Hold seats on a trip for a few minutes.

    Returns 409 with the list of conflicting seats if any requested seat is
    already held or booked; the caller can retry with a different selection.
    """
    booking = await create_hold(
        db,
        owner_id=user_id,
        trip_id=hold_data.trip_id,
        pickup=hold_data.pickup,
        dropoff=hold_data.dropoff,
        seat_numbers=hold_data.seats,
    )
    return HoldResponse(
        booking_id=booking.id,
        hold_expires_at=booking.hold_expires_at,
        seats=booking.seat_numbers,
        total_price=booking.total_price,
    )


@router.post("/confirm", response_model=ConfirmResponse)
async def confirm(
    confirm_data: ConfirmRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Confirm a live hold. 409 if it expired or is not yours."""
    booking = await confirm_booking(db, confirm_data.booking_id, user_id)
    return ConfirmResponse(booking_id=booking.id, ticket_token=booking.ticket_token)


@router.delete("/{booking_id}", response_model=CancelResponse)
async def cancel(
    booking_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Release your own hold before it expires."""
    await cancel_hold(db, booking_id, user_id)
    return CancelResponse(booking_id=booking_id)


@router.get("/", response_model=list[BookingResponse])
async def list_user_bookings(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Get all bookings for the authenticated user."""
    bookings = await get_user_bookings(db, user_id)
    return [_to_response(b) for b in bookings]
