"""
Boarding endpoint: drivers scan a passenger's ticket token once.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import role_required
from app.db.session import get_db
from app.models.user import User
from app.schemas.ticket import ScanRequest, ScanResponse
from app.services.ticket_service import scan_ticket

router = APIRouter(prefix="/tickets", tags=["Tickets"])

REJECTION_MESSAGES = {
    "already_used": "Ticket already used",
    "not_confirmed": "Ticket not confirmed or cancelled",
}


@router.post("/scan", response_model=ScanResponse, response_model_exclude_none=True)
async def scan(
    scan_data: ScanRequest,
    driver: User = Depends(role_required("driver", "admin")),
    db: AsyncSession = Depends(get_db),
):
    """
    Validate and consume a ticket.

    200 valid=true the first time; 200 valid=false with a reason for used or
    unconfirmed tickets; 404 for tokens that never existed.
    """
    result = await scan_ticket(db, scan_data.ticket_token, scanned_by=driver.id)
    return ScanResponse(
        valid=result.valid,
        booking_id=result.booking_id,
        reason=result.reason,
        message="Ticket valid" if result.valid else REJECTION_MESSAGES[result.reason],
    )
