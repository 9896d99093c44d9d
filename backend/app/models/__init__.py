from app.models.user import User
from app.models.trip import Trip
from app.models.booking import Booking, BookingStatus, SeatAllocation, ScanRecord

__all__ = ["User", "Trip", "Booking", "BookingStatus", "SeatAllocation", "ScanRecord"]
