"""
Pydantic schemas for the trip catalog.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class TripCreate(BaseModel):
    from_city: str = Field(..., min_length=1, max_length=128)
    to_city: str = Field(..., min_length=1, max_length=128)
    pickup_location: Optional[str] = Field(None, max_length=255)
    dropoff_location: Optional[str] = Field(None, max_length=255)
    trip_date: date
    departure_time: datetime
    arrival_time: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(None, gt=0)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    seat_count: int = Field(..., gt=0, le=100)


class TripResponse(BaseModel):
    id: int
    from_city: str
    to_city: str
    pickup_location: Optional[str]
    dropoff_location: Optional[str]
    trip_date: date
    departure_time: datetime
    arrival_time: Optional[datetime]
    duration_minutes: Optional[int]
    price: Decimal
    seat_count: int

    model_config = {"from_attributes": True}


class ReservedSeat(BaseModel):
    seat_number: int
    gender: str


class SeatStatusResponse(BaseModel):
    reservedSeats: list[ReservedSeat]
