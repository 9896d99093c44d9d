"""
Trip catalog: search, origin cities and trip creation.
"""

from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.core.logging import get_logger
from app.db.session import atomic
from app.models.trip import Trip
from app.schemas.trip import TripCreate

logger = get_logger(__name__)


async def create_trip(db: AsyncSession, trip_data: TripCreate) -> Trip:
    """Create a new trip. Seats 1..seat_count become holdable immediately."""
    if trip_data.arrival_time and trip_data.arrival_time <= trip_data.departure_time:
        raise ValidationError("Arrival must be after departure")

    trip = Trip(**trip_data.model_dump())
    async with atomic(db):
        db.add(trip)
        await db.flush()
        await db.refresh(trip)

    logger.info("trip_created", trip_id=trip.id, route=f"{trip.from_city}->{trip.to_city}")
    return trip


async def get_trip(db: AsyncSession, trip_id: int) -> Trip:
    trip = await db.get(Trip, trip_id)
    if not trip:
        raise NotFoundError(f"Trip {trip_id} not found")
    return trip


async def search_trips(
    db: AsyncSession,
    from_city: str,
    to_city: str,
    trip_date: date,
) -> list[Trip]:
    """Trips on a route and day, by departure. Uses ix_trips_route_date."""
    result = await db.execute(
        select(Trip)
        .where(
            Trip.from_city == from_city,
            Trip.to_city == to_city,
            Trip.trip_date == trip_date,
        )
        .order_by(Trip.departure_time.asc())
    )
    return list(result.scalars().all())


async def list_cities(db: AsyncSession) -> list[str]:
    result = await db.execute(
        select(Trip.from_city).distinct().order_by(Trip.from_city)
    )
    return list(result.scalars().all())
