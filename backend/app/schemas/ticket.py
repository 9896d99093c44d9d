"""
Pydantic schemas for boarding scans.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class ScanRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    ticket_token: str = Field(..., alias="ticketToken", min_length=1, max_length=64)


class ScanResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    valid: bool
    booking_id: int = Field(..., alias="bookingId")
    reason: Optional[str] = None
    message: str
