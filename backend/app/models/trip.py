"""
Trip model: one scheduled departure of a bus with numbered seats 1..seat_count.

Key design decisions:
- Seat availability is NOT denormalized here; it is derived from live
  seat allocations so holds never have to update the trip row.
- Composite index on (from_city, to_city, trip_date) serves the search query.
"""

from sqlalchemy import Column, Integer, String, Date, DateTime, Numeric, Index, CheckConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class Trip(Base, TimestampMixin):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True)
    from_city = Column(String(128), nullable=False)
    to_city = Column(String(128), nullable=False)
    pickup_location = Column(String(255), nullable=True)
    dropoff_location = Column(String(255), nullable=True)
    trip_date = Column(Date, nullable=False)
    departure_time = Column(DateTime(timezone=True), nullable=False)
    arrival_time = Column(DateTime(timezone=True), nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    seat_count = Column(Integer, nullable=False)

    bookings = relationship("Booking", back_populates="trip")

    __table_args__ = (
        CheckConstraint("seat_count > 0", name="check_trip_seat_count_positive"),
        Index("ix_trips_route_date", "from_city", "to_city", "trip_date"),
    )

    def __repr__(self) -> str:
        return f"<Trip(id={self.id}, {self.from_city}->{self.to_city}, date={self.trip_date})>"
