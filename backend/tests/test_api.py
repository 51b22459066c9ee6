"""
HTTP surface: routing, auth, and error mapping.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient


def booking_payload(trip_id, seat_number, **overrides):
    payload = {
        "trip_id": trip_id,
        "seat_number": seat_number,
        "passenger": {"name": "Jane Wanjiru", "phone": "0712345678"},
        "amount_paid": "500.00",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["cache"] == {"status": "disabled"}


@pytest.mark.asyncio
async def test_metrics(client: AsyncClient):
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "seat_operations_total" in response.text


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "trace-123"})
    assert response.headers["X-Request-ID"] == "trace-123"
    assert response.headers["X-Response-Time"].endswith("ms")


@pytest.mark.asyncio
async def test_seat_map(client: AsyncClient, test_trip):
    response = await client.get(f"/api/v1/trips/{test_trip.id}/seats")

    assert response.status_code == 200
    data = response.json()
    assert data["seat_capacity"] == 4
    assert data["summary"] == {"available": 4, "reserved": 0, "booked": 0, "disabled": 0}
    assert [seat["kind"] for seat in data["seats"]] == ["available"] * 4
    assert [seat["seat_number"] for seat in data["seats"]] == [1, 2, 3, 4]


@pytest.mark.asyncio
async def test_seat_map_unknown_trip(client: AsyncClient):
    response = await client.get("/api/v1/trips/99999/seats")
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


@pytest.mark.asyncio
async def test_reserve_requires_auth(client: AsyncClient, test_trip):
    response = await client.post(f"/api/v1/trips/{test_trip.id}/seats/1/reserve")
    assert response.status_code == 401
    assert response.json()["code"] == "unauthorized"
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_bad_token(client: AsyncClient, test_trip):
    response = await client.post(
        f"/api/v1/trips/{test_trip.id}/seats/1/reserve",
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_reserve_and_conflict(client: AsyncClient, auth_headers, other_headers, test_trip):
    response = await client.post(
        f"/api/v1/trips/{test_trip.id}/seats/2/reserve",
        json={"hold_minutes": 10},
        headers=auth_headers,
    )
    assert response.status_code == 200
    slot = response.json()
    assert slot["kind"] == "slot"
    assert slot["status"] == "reserved"
    assert slot["holder_id"] == "agent-1"
    assert slot["expires_at"] is not None

    conflict = await client.post(
        f"/api/v1/trips/{test_trip.id}/seats/2/reserve", headers=other_headers
    )
    assert conflict.status_code == 409
    assert conflict.json()["code"] == "seat_unavailable"

    seat_map = (await client.get(f"/api/v1/trips/{test_trip.id}/seats")).json()
    assert seat_map["summary"]["reserved"] == 1
    assert seat_map["seats"][1]["kind"] == "slot"


@pytest.mark.asyncio
async def test_reserve_outside_capacity(client: AsyncClient, auth_headers, test_trip):
    response = await client.post(f"/api/v1/trips/{test_trip.id}/seats/9/reserve", headers=auth_headers)
    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"


@pytest.mark.asyncio
async def test_reserve_on_departed_trip(client: AsyncClient, auth_headers, departed_trip):
    response = await client.post(
        f"/api/v1/trips/{departed_trip.id}/seats/1/reserve", headers=auth_headers
    )
    assert response.status_code == 409
    assert response.json()["code"] == "trip_closed"


@pytest.mark.asyncio
async def test_release_stale(client: AsyncClient, auth_headers, test_trip):
    response = await client.post(
        f"/api/v1/trips/{test_trip.id}/seats/1/release",
        json={"expected_status": "reserved"},
        headers=auth_headers,
    )
    assert response.status_code == 409
    assert response.json()["code"] == "concurrent_modification"


@pytest.mark.asyncio
async def test_reserve_then_release(client: AsyncClient, auth_headers, test_trip):
    await client.post(f"/api/v1/trips/{test_trip.id}/seats/3/reserve", headers=auth_headers)

    response = await client.post(
        f"/api/v1/trips/{test_trip.id}/seats/3/release",
        json={"expected_status": "reserved"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "available"


@pytest.mark.asyncio
async def test_disable_is_admin_only(client: AsyncClient, auth_headers, admin_headers, test_trip):
    response = await client.post(f"/api/v1/trips/{test_trip.id}/seats/4/disable", headers=auth_headers)
    assert response.status_code == 403
    assert response.json()["code"] == "forbidden"

    response = await client.post(f"/api/v1/trips/{test_trip.id}/seats/4/disable", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "disabled"


@pytest.mark.asyncio
async def test_sweep(client: AsyncClient, admin_headers, test_trip):
    response = await client.post(f"/api/v1/trips/{test_trip.id}/seats/sweep", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"released": 0}


@pytest.mark.asyncio
async def test_create_booking(client: AsyncClient, auth_headers, other_headers, test_trip):
    response = await client.post(
        "/api/v1/bookings/", json=booking_payload(test_trip.id, 1), headers=auth_headers
    )
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "booked"
    assert data["seat_number"] == 1
    assert data["created_by"] == "agent-1"
    assert Decimal(data["amount_paid"]) == Decimal("500")

    again = await client.post(
        "/api/v1/bookings/", json=booking_payload(test_trip.id, 1), headers=other_headers
    )
    assert again.status_code == 409
    assert again.json()["code"] == "seat_already_booked"
    assert again.json()["detail"].startswith("Seat 1 ")


@pytest.mark.asyncio
async def test_book_seat_held_by_someone_else(client: AsyncClient, auth_headers, other_headers, test_trip):
    reserved = await client.post(f"/api/v1/trips/{test_trip.id}/seats/2/reserve", headers=auth_headers)
    assert reserved.status_code == 200

    response = await client.post(
        "/api/v1/bookings/", json=booking_payload(test_trip.id, 2), headers=other_headers
    )
    assert response.status_code == 409
    assert response.json() == {
        "detail": "Seat 2 is reserved. Please choose another seat.",
        "code": "seat_unavailable",
    }

    own = await client.post(
        "/api/v1/bookings/", json=booking_payload(test_trip.id, 2), headers=auth_headers
    )
    assert own.status_code == 201


@pytest.mark.asyncio
async def test_create_booking_validation(client: AsyncClient, auth_headers, test_trip):
    response = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(test_trip.id, 1, amount_paid="0"),
        headers=auth_headers,
    )
    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"

    malformed = await client.post("/api/v1/bookings/", json={"trip_id": test_trip.id}, headers=auth_headers)
    assert malformed.status_code == 422


@pytest.mark.asyncio
async def test_booking_lifecycle(client: AsyncClient, auth_headers, other_headers, test_trip):
    booking = (
        await client.post("/api/v1/bookings/", json=booking_payload(test_trip.id, 2), headers=auth_headers)
    ).json()

    mine = await client.get("/api/v1/bookings/", headers=auth_headers)
    assert [b["id"] for b in mine.json()] == [booking["id"]]

    forbidden = await client.get(f"/api/v1/bookings/{booking['id']}", headers=other_headers)
    assert forbidden.status_code == 403

    cancelled = await client.post(f"/api/v1/bookings/{booking['id']}/cancel", headers=auth_headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"

    again = await client.post(f"/api/v1/bookings/{booking['id']}/cancel", headers=auth_headers)
    assert again.status_code == 400
    assert again.json()["code"] == "booking_already_cancelled"

    seat_map = (await client.get(f"/api/v1/trips/{test_trip.id}/seats")).json()
    assert seat_map["seats"][1]["kind"] == "available"


@pytest.mark.asyncio
async def test_check_in(client: AsyncClient, auth_headers, test_trip):
    booking = (
        await client.post("/api/v1/bookings/", json=booking_payload(test_trip.id, 3), headers=auth_headers)
    ).json()

    response = await client.post(f"/api/v1/bookings/{booking['id']}/check-in", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "checked_in"


@pytest.mark.asyncio
async def test_get_missing_booking(client: AsyncClient, auth_headers):
    response = await client.get("/api/v1/bookings/99999", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_admin_endpoints(client: AsyncClient, auth_headers, admin_headers, test_trip):
    booking = (
        await client.post("/api/v1/bookings/", json=booking_payload(test_trip.id, 1), headers=auth_headers)
    ).json()

    denied = await client.post(f"/api/v1/admin/bookings/{booking['id']}/cancel", headers=auth_headers)
    assert denied.status_code == 403

    passengers = await client.get(f"/api/v1/trips/{test_trip.id}/bookings", headers=admin_headers)
    assert [p["seat_number"] for p in passengers.json()] == [1]

    cancelled = await client.post(f"/api/v1/admin/bookings/{booking['id']}/cancel", headers=admin_headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"

    purged = await client.delete(f"/api/v1/admin/bookings/{booking['id']}", headers=admin_headers)
    assert purged.status_code == 200

    gone = await client.get(f"/api/v1/bookings/{booking['id']}", headers=admin_headers)
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_activity_feed(client: AsyncClient, auth_headers, test_trip):
    await client.post(f"/api/v1/trips/{test_trip.id}/seats/1/reserve", headers=auth_headers)

    feed = (await client.get(f"/api/v1/trips/{test_trip.id}/activity", headers=auth_headers)).json()
    assert [e["action"] for e in feed["entries"]] == ["seat_reserved"]

    await client.post("/api/v1/bookings/", json=booking_payload(test_trip.id, 1), headers=auth_headers)

    newer = (
        await client.get(
            f"/api/v1/trips/{test_trip.id}/activity",
            params={"after_id": feed["next_after_id"]},
            headers=auth_headers,
        )
    ).json()
    assert [e["action"] for e in newer["entries"]] == ["booking_created"]
    assert newer["next_after_id"] > feed["next_after_id"]
