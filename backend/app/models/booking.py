"""
Booking, seat allocation and scan log models.

Key design decisions:
- Unique constraint on (trip_id, seat_number) is THE seat exclusivity rule.
  Allocation rows exist only while their booking is live (held, confirmed,
  used); releasing a booking deletes them in the same transaction.
- Status moves one way only: held -> confirmed -> used, or held -> released.
- ticket_token is unique and never updated after insert.
- Index on (status, hold_expires_at) keeps the expiry sweep cheap.
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base, TimestampMixin


class BookingStatus:
    HELD = "held"
    CONFIRMED = "confirmed"
    USED = "used"
    RELEASED = "released"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    pickup_location = Column(String(255), nullable=False)
    dropoff_location = Column(String(255), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    ticket_token = Column(String(64), nullable=False, unique=True)
    status = Column(String(20), nullable=False, default=BookingStatus.HELD)
    hold_expires_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    user = relationship("User", back_populates="bookings")
    trip = relationship("Trip", back_populates="bookings")
    seats = relationship(
        "SeatAllocation",
        back_populates="booking",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="SeatAllocation.seat_number",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('held', 'confirmed', 'used', 'released')",
            name="check_booking_status",
        ),
        CheckConstraint("total_price >= 0", name="check_booking_total_price_non_negative"),
        Index("ix_bookings_status_hold_expires_at", "status", "hold_expires_at"),
    )

    @property
    def seat_numbers(self) -> list[int]:
        return [seat.seat_number for seat in self.seats]

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, user={self.user_id}, trip={self.trip_id}, status={self.status})>"


class SeatAllocation(Base):
    __tablename__ = "seat_allocations"

    id = Column(Integer, primary_key=True)
    booking_id = Column(
        Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False)
    seat_number = Column(Integer, nullable=False)

    booking = relationship("Booking", back_populates="seats")

    __table_args__ = (
        UniqueConstraint("trip_id", "seat_number", name="uq_trip_seat_number"),
        CheckConstraint("seat_number > 0", name="check_seat_number_positive"),
    )

    def __repr__(self) -> str:
        return f"<SeatAllocation(trip={self.trip_id}, seat={self.seat_number}, booking={self.booking_id})>"


class ScanRecord(Base):
    """Append-only audit log of successful boarding scans."""

    __tablename__ = "scan_records"

    id = Column(Integer, primary_key=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    scanned_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    scanned_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
