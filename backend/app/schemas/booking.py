"""
Pydantic schemas for hold, confirmation and booking responses.

Wire format is camelCase (tripId, bookingId, holdExpiresAt); fields keep
snake_case names in Python and accept either spelling on input.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class HoldCreate(CamelModel):
    trip_id: int = Field(..., alias="tripId", gt=0)
    pickup: str = Field(..., min_length=1, max_length=255)
    dropoff: str = Field(..., min_length=1, max_length=255)
    seats: list[StrictInt] = Field(..., min_length=1)

    @field_validator("seats")
    @classmethod
    def seats_must_be_distinct_positive(cls, v: list[int]) -> list[int]:
        if len(set(v)) != len(v):
            raise ValueError("seat numbers must be distinct")
        if any(seat < 1 for seat in v):
            raise ValueError("seat numbers must be positive")
        return v


class HoldResponse(CamelModel):
    booking_id: int = Field(..., alias="bookingId")
    hold_expires_at: datetime = Field(..., alias="holdExpiresAt")
    seats: list[int]
    total_price: Decimal = Field(..., alias="totalPrice")


class ConfirmRequest(CamelModel):
    booking_id: int = Field(..., alias="bookingId", gt=0)


class ConfirmResponse(CamelModel):
    success: bool = True
    booking_id: int = Field(..., alias="bookingId")
    ticket_token: str = Field(..., alias="ticketToken")


class CancelResponse(CamelModel):
    success: bool = True
    booking_id: int = Field(..., alias="bookingId")


class BookingResponse(CamelModel):
    booking_id: int = Field(..., alias="bookingId")
    trip_id: int = Field(..., alias="tripId")
    pickup: str
    dropoff: str
    seats: list[int]
    total_price: Decimal = Field(..., alias="totalPrice")
    status: str
    hold_expires_at: Optional[datetime] = Field(None, alias="holdExpiresAt")
    ticket_token: Optional[str] = Field(None, alias="ticketToken")
    created_at: datetime = Field(..., alias="createdAt")
