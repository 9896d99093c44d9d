from app.schemas.user import (
    UserCreate, UserResponse, UserLogin, Token, ProfileUpdate, PasswordChange, MessageResponse,
)
from app.schemas.trip import TripCreate, TripResponse, SeatStatusResponse
from app.schemas.booking import HoldCreate, HoldResponse, ConfirmRequest, ConfirmResponse, BookingResponse
from app.schemas.ticket import ScanRequest, ScanResponse

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token", "ProfileUpdate", "PasswordChange", "MessageResponse",
    "TripCreate", "TripResponse", "SeatStatusResponse",
    "HoldCreate", "HoldResponse", "ConfirmRequest", "ConfirmResponse", "BookingResponse",
    "ScanRequest", "ScanResponse",
]
