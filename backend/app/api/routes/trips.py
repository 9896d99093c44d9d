"""
Trip catalog endpoints with Redis caching on search, plus the live seat map.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import role_required
from app.core.logging import get_logger
from app.db.session import get_db
from app.schemas.trip import ReservedSeat, SeatStatusResponse, TripCreate, TripResponse
from app.services.cache_service import (
    CITIES_KEY,
    get_cached,
    invalidate_trip_cache,
    make_trip_search_key,
    set_cached,
)
from app.services.seat_status_service import get_reserved_seats
from app.services.trip_service import create_trip, get_trip, list_cities, search_trips

logger = get_logger(__name__)
router = APIRouter(prefix="/trips", tags=["Trips"])


@router.post(
    "/",
    response_model=TripResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(role_required("admin"))],
)
async def create_trip_endpoint(trip_data: TripCreate, db: AsyncSession = Depends(get_db)):
    """Create a new trip. Admins only."""
    trip = await create_trip(db, trip_data)
    await invalidate_trip_cache()
    return trip


@router.get("/", response_model=list[TripResponse])
async def search_trips_endpoint(
    from_city: str = Query(..., alias="from", min_length=1),
    to_city: str = Query(..., alias="to", min_length=1),
    trip_date: date = Query(..., alias="date"),
    db: AsyncSession = Depends(get_db),
):
    """
    Search trips on a route for one day, ordered by departure.
    Results are cached in Redis; seat availability is not part of them.
    """
    key = make_trip_search_key(from_city, to_city, trip_date.isoformat())
    cached = await get_cached(key)
    if cached is not None:
        logger.info("trip_search_cache_hit", key=key)
        return cached

    trips = await search_trips(db, from_city, to_city, trip_date)
    response_data = [TripResponse.model_validate(t).model_dump(mode="json") for t in trips]
    await set_cached(key, response_data)
    return response_data


@router.get("/cities", response_model=list[str])
async def list_cities_endpoint(db: AsyncSession = Depends(get_db)):
    """Distinct origin cities."""
    cached = await get_cached(CITIES_KEY)
    if cached is not None:
        return cached

    cities = await list_cities(db)
    await set_cached(CITIES_KEY, cities)
    return cities


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip_endpoint(trip_id: int, db: AsyncSession = Depends(get_db)):
    return await get_trip(db, trip_id)


@router.get("/{trip_id}/seats", response_model=SeatStatusResponse)
async def seat_status_endpoint(trip_id: int, db: AsyncSession = Depends(get_db)):
    """
    Seats currently held or booked on a trip, with the holder's declared
    gender. Never cached. No authentication required.
    """
    rows = await get_reserved_seats(db, trip_id)
    return SeatStatusResponse(
        reservedSeats=[ReservedSeat(seat_number=seat, gender=gender) for seat, gender in rows]
    )
