"""
Ticket validator: consumes a confirmed booking's ticket exactly once.

The confirmed -> used flip is a conditional UPDATE keyed on the ticket
token. Under concurrent scans of one token only one UPDATE can match the
'confirmed' guard; every other scan sees zero rows and is rejected. The
scan log row is written in the same transaction, so a rolled-back scan
leaves neither the status change nor the log entry behind.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import TicketNotFoundError
from app.core.logging import get_logger
from app.core.metrics import record_ticket_scan
from app.db.session import atomic
from app.models.booking import Booking, BookingStatus, ScanRecord

logger = get_logger(__name__)


@dataclass(frozen=True)
class ScanResult:
    valid: bool
    booking_id: int
    reason: Optional[str] = None


async def scan_ticket(
    db: AsyncSession,
    ticket_token: str,
    scanned_by: Optional[int] = None,
) -> ScanResult:
    """
    Validate and consume a ticket.

    Returns a valid ScanResult the first time a confirmed ticket is scanned,
    a rejected one (reason "already_used" or "not_confirmed") afterwards or
    for tickets that were never confirmed. Raises TicketNotFoundError for
    unknown tokens.
    """
    async with atomic(db):
        consumed = await db.execute(
            update(Booking)
            .where(
                Booking.ticket_token == ticket_token,
                Booking.status == BookingStatus.CONFIRMED,
            )
            .values(status=BookingStatus.USED)
            .execution_options(synchronize_session=False)
        )

        row = (
            await db.execute(
                select(Booking.id, Booking.status).where(Booking.ticket_token == ticket_token)
            )
        ).one_or_none()

        if row is None:
            record_ticket_scan("invalid")
            logger.warning("ticket_scan_invalid")
            raise TicketNotFoundError()

        booking_id, status = row
        if consumed.rowcount == 1:
            db.add(ScanRecord(booking_id=booking_id, scanned_by=scanned_by))
            result = ScanResult(valid=True, booking_id=booking_id)
        else:
            reason = "already_used" if status == BookingStatus.USED else "not_confirmed"
            result = ScanResult(valid=False, booking_id=booking_id, reason=reason)

    if result.valid:
        record_ticket_scan("valid")
        logger.info("ticket_scanned", booking_id=result.booking_id, scanned_by=scanned_by)
    else:
        record_ticket_scan("rejected")
        logger.warning(
            "ticket_scan_rejected", booking_id=result.booking_id, reason=result.reason
        )
    return result
