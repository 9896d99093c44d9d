"""
Booking flow over HTTP: hold, confirm, cancel, seat map and boarding scan.
"""

import asyncio
from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import update

from app.core.clock import utcnow
from app.models.booking import Booking


def hold_payload(trip, seats):
    return {
        "tripId": trip.id,
        "pickup": "Irbid Station",
        "dropoff": "Main Gate",
        "seats": seats,
    }


async def expire_hold(session_factory, booking_id):
    async with session_factory() as db:
        await db.execute(
            update(Booking)
            .where(Booking.id == booking_id)
            .values(hold_expires_at=utcnow() - timedelta(seconds=1))
        )
        await db.commit()


@pytest.mark.asyncio
async def test_hold_confirm_scan_flow(client: AsyncClient, auth_headers, driver_headers, test_trip):
    response = await client.post(
        "/api/v1/bookings/hold", json=hold_payload(test_trip, [4, 3]), headers=auth_headers
    )
    assert response.status_code == 200
    hold = response.json()
    assert hold["seats"] == [3, 4]
    assert hold["totalPrice"] == "5.00"
    assert "holdExpiresAt" in hold
    assert "ticketToken" not in hold

    response = await client.post(
        "/api/v1/bookings/confirm", json={"bookingId": hold["bookingId"]}, headers=auth_headers
    )
    assert response.status_code == 200
    confirmed = response.json()
    assert confirmed["success"] is True
    assert confirmed["bookingId"] == hold["bookingId"]
    token = confirmed["ticketToken"]

    response = await client.post(
        "/api/v1/tickets/scan", json={"ticketToken": token}, headers=driver_headers
    )
    assert response.status_code == 200
    assert response.json() == {
        "valid": True,
        "bookingId": hold["bookingId"],
        "message": "Ticket valid",
    }

    response = await client.post(
        "/api/v1/tickets/scan", json={"ticketToken": token}, headers=driver_headers
    )
    assert response.status_code == 200
    body = response.json()
    assert body["valid"] is False
    assert body["reason"] == "already_used"


@pytest.mark.asyncio
async def test_expired_hold_confirm_then_rehold(
    client: AsyncClient, session_factory, auth_headers, other_headers, test_trip
):
    response = await client.post(
        "/api/v1/bookings/hold", json=hold_payload(test_trip, [3]), headers=auth_headers
    )
    booking_id = response.json()["bookingId"]
    await expire_hold(session_factory, booking_id)

    response = await client.post(
        "/api/v1/bookings/confirm", json={"bookingId": booking_id}, headers=auth_headers
    )
    assert response.status_code == 409
    assert response.json()["message"] == "Hold expired or booking not found"

    # No reaper has run; the new hold reclaims the seat itself.
    response = await client.post(
        "/api/v1/bookings/hold", json=hold_payload(test_trip, [3]), headers=other_headers
    )
    assert response.status_code == 200
    assert response.json()["seats"] == [3]


@pytest.mark.asyncio
async def test_simultaneous_holds_on_one_seat(client: AsyncClient, auth_headers, other_headers, test_trip):
    responses = await asyncio.gather(
        client.post("/api/v1/bookings/hold", json=hold_payload(test_trip, [5]), headers=auth_headers),
        client.post("/api/v1/bookings/hold", json=hold_payload(test_trip, [5]), headers=other_headers),
    )

    codes = sorted(r.status_code for r in responses)
    assert codes == [200, 409]
    loser = next(r for r in responses if r.status_code == 409)
    assert loser.json() == {"message": "Seats already booked", "seats": [5]}


@pytest.mark.asyncio
async def test_conflict_lists_only_taken_seats(client: AsyncClient, auth_headers, other_headers, test_trip):
    await client.post("/api/v1/bookings/hold", json=hold_payload(test_trip, [3, 4]), headers=auth_headers)

    response = await client.post(
        "/api/v1/bookings/hold", json=hold_payload(test_trip, [2, 4, 3]), headers=other_headers
    )

    assert response.status_code == 409
    assert response.json()["seats"] == [3, 4]


@pytest.mark.parametrize(
    "payload",
    [
        {"tripId": 1, "pickup": "A", "dropoff": "B", "seats": []},
        {"tripId": 1, "pickup": "A", "dropoff": "B", "seats": [3, 3]},
        {"tripId": 1, "pickup": "A", "dropoff": "B", "seats": [0]},
        {"tripId": 1, "pickup": "", "dropoff": "B", "seats": [1]},
        {"tripId": 1, "pickup": "A", "seats": [1]},
        {"pickup": "A", "dropoff": "B", "seats": [1]},
        {"tripId": 1, "pickup": "A", "dropoff": "B", "seats": [True]},
        {"tripId": 1, "pickup": "A", "dropoff": "B", "seats": [3.0]},
        {"tripId": 1, "pickup": "A", "dropoff": "B", "seats": ["4"]},
        {"tripId": 1, "pickup": "A", "dropoff": "B", "seats": "3"},
    ],
)
@pytest.mark.asyncio
async def test_malformed_hold_rejected(client: AsyncClient, auth_headers, test_trip, payload):
    response = await client.post("/api/v1/bookings/hold", json=payload, headers=auth_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_hold_on_unknown_trip(client: AsyncClient, auth_headers, test_trip):
    payload = hold_payload(test_trip, [1])
    payload["tripId"] = test_trip.id + 100
    response = await client.post("/api/v1/bookings/hold", json=payload, headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_booking_endpoints_require_auth(client: AsyncClient, test_trip):
    response = await client.post("/api/v1/bookings/hold", json=hold_payload(test_trip, [1]))
    assert response.status_code == 401

    response = await client.post("/api/v1/bookings/confirm", json={"bookingId": 1})
    assert response.status_code == 401

    response = await client.get("/api/v1/bookings/")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_seat_map(client: AsyncClient, session_factory, auth_headers, other_headers, test_trip):
    await client.post("/api/v1/bookings/hold", json=hold_payload(test_trip, [3, 4]), headers=auth_headers)
    response = await client.post(
        "/api/v1/bookings/hold", json=hold_payload(test_trip, [10]), headers=other_headers
    )
    lapsed = await client.post(
        "/api/v1/bookings/hold", json=hold_payload(test_trip, [20]), headers=other_headers
    )
    await expire_hold(session_factory, lapsed.json()["bookingId"])

    response = await client.get(f"/api/v1/trips/{test_trip.id}/seats")

    assert response.status_code == 200
    assert response.json() == {
        "reservedSeats": [
            {"seat_number": 3, "gender": "female"},
            {"seat_number": 4, "gender": "female"},
            {"seat_number": 10, "gender": "none"},
        ]
    }


@pytest.mark.asyncio
async def test_seat_map_of_empty_trip(client: AsyncClient, test_trip):
    response = await client.get(f"/api/v1/trips/{test_trip.id}/seats")
    assert response.status_code == 200
    assert response.json() == {"reservedSeats": []}


@pytest.mark.asyncio
async def test_cancel_hold_frees_seats(client: AsyncClient, auth_headers, other_headers, test_trip):
    response = await client.post(
        "/api/v1/bookings/hold", json=hold_payload(test_trip, [6]), headers=auth_headers
    )
    booking_id = response.json()["bookingId"]

    # Not someone else's to cancel.
    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=other_headers)
    assert response.status_code == 409

    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"success": True, "bookingId": booking_id}

    response = await client.post(
        "/api/v1/bookings/hold", json=hold_payload(test_trip, [6]), headers=other_headers
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_list_bookings(client: AsyncClient, auth_headers, test_trip):
    first = (
        await client.post("/api/v1/bookings/hold", json=hold_payload(test_trip, [1]), headers=auth_headers)
    ).json()
    second = (
        await client.post("/api/v1/bookings/hold", json=hold_payload(test_trip, [2]), headers=auth_headers)
    ).json()
    await client.post(
        "/api/v1/bookings/confirm", json={"bookingId": first["bookingId"]}, headers=auth_headers
    )

    response = await client.get("/api/v1/bookings/", headers=auth_headers)

    assert response.status_code == 200
    bookings = {b["bookingId"]: b for b in response.json()}
    assert bookings[first["bookingId"]]["status"] == "confirmed"
    assert bookings[first["bookingId"]]["ticketToken"]
    assert bookings[first["bookingId"]]["holdExpiresAt"] is None
    assert bookings[second["bookingId"]]["status"] == "held"
    assert bookings[second["bookingId"]]["ticketToken"] is None
    assert bookings[second["bookingId"]]["tripId"] == test_trip.id


@pytest.mark.asyncio
async def test_scan_requires_driver(client: AsyncClient, auth_headers, test_trip):
    response = await client.post(
        "/api/v1/tickets/scan", json={"ticketToken": "whatever"}, headers=auth_headers
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_scan_unknown_ticket(client: AsyncClient, driver_headers, test_trip):
    response = await client.post(
        "/api/v1/tickets/scan", json={"ticketToken": "not-a-ticket"}, headers=driver_headers
    )
    assert response.status_code == 404
    assert response.json() == {"valid": False, "reason": "invalid_ticket", "message": "Invalid ticket"}


@pytest.mark.asyncio
async def test_scan_held_ticket(client: AsyncClient, session_factory, auth_headers, driver_headers, test_trip):
    response = await client.post(
        "/api/v1/bookings/hold", json=hold_payload(test_trip, [9]), headers=auth_headers
    )
    booking_id = response.json()["bookingId"]
    async with session_factory() as db:
        token = (await db.get(Booking, booking_id)).ticket_token

    response = await client.post(
        "/api/v1/tickets/scan", json={"ticketToken": token}, headers=driver_headers
    )
    assert response.status_code == 200
    assert response.json()["reason"] == "not_confirmed"
