"""Initial schema: users, trips, bookings, seat allocations, scan log.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(15), nullable=True),
        sa.Column("gender", sa.String(10), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'passenger'")),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.UniqueConstraint("phone", name="uq_users_phone"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "trips",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("from_city", sa.String(128), nullable=False),
        sa.Column("to_city", sa.String(128), nullable=False),
        sa.Column("pickup_location", sa.String(255), nullable=True),
        sa.Column("dropoff_location", sa.String(255), nullable=True),
        sa.Column("trip_date", sa.Date(), nullable=False),
        sa.Column("departure_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("arrival_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("seat_count", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("seat_count > 0", name="check_trip_seat_count_positive"),
    )
    op.create_index("ix_trips_id", "trips", ["id"])
    # Search is always by route and day.
    op.create_index("ix_trips_route_date", "trips", ["from_city", "to_city", "trip_date"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("trip_id", sa.Integer(), sa.ForeignKey("trips.id"), nullable=False),
        sa.Column("pickup_location", sa.String(255), nullable=False),
        sa.Column("dropoff_location", sa.String(255), nullable=False),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("ticket_token", sa.String(64), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'held'")),
        sa.Column("hold_expires_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("ticket_token", name="uq_bookings_ticket_token"),
        sa.CheckConstraint(
            "status IN ('held', 'confirmed', 'used', 'released')",
            name="check_booking_status",
        ),
        sa.CheckConstraint("total_price >= 0", name="check_booking_total_price_non_negative"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_trip_id", "bookings", ["trip_id"])
    # The reaper's predicate: status = 'held' AND hold_expires_at < now()
    op.create_index("ix_bookings_status_hold_expires_at", "bookings", ["status", "hold_expires_at"])

    op.create_table(
        "seat_allocations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "booking_id",
            sa.Integer(),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("trip_id", sa.Integer(), sa.ForeignKey("trips.id"), nullable=False),
        sa.Column("seat_number", sa.Integer(), nullable=False),
        # One live claim per seat: rows are deleted when their booking is released.
        sa.UniqueConstraint("trip_id", "seat_number", name="uq_trip_seat_number"),
        sa.CheckConstraint("seat_number > 0", name="check_seat_number_positive"),
    )
    op.create_index("ix_seat_allocations_booking_id", "seat_allocations", ["booking_id"])

    op.create_table(
        "scan_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("scanned_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("scanned_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_scan_records_booking_id", "scan_records", ["booking_id"])


def downgrade() -> None:
    op.drop_table("scan_records")
    op.drop_table("seat_allocations")
    op.drop_table("bookings")
    op.drop_table("trips")
    op.drop_table("users")
