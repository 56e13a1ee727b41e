"""
Tests for player booking endpoints: listing, detail and self-service cancel.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from courtside.domain.booking_lifecycle import BookingStatus, PaymentStatus
from courtside.models import Notification, Refund


async def _count(db, model, **filters) -> int:
    query = select(func.count()).select_from(model).where(
        *(getattr(model, name) == value for name, value in filters.items())
    )
    return (await db.execute(query)).scalar()


@pytest.mark.asyncio
async def test_list_own_bookings(client: AsyncClient, auth_headers, make_booking, other_user):
    mine = await make_booking(30)
    await make_booking(40, user=other_user)

    response = await client.get("/api/v1/bookings/", headers=auth_headers)
    assert response.status_code == 200
    assert [b["id"] for b in response.json()] == [mine.id]


@pytest.mark.asyncio
async def test_booking_detail_includes_refund_quote(client: AsyncClient, auth_headers, make_booking):
    booking = await make_booking(10)

    response = await client.get(f"/api/v1/bookings/{booking.id}", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["booking"]["status"] == "CONFIRMED"
    assert data["timing"]["hours_until_booking"] == 10
    assert data["timing"]["is_upcoming"] is True
    assert data["refund_info"]["percentage"] == 50
    assert Decimal(data["refund_info"]["amount"]) == Decimal("500")


@pytest.mark.asyncio
async def test_other_users_booking_is_hidden(client: AsyncClient, other_headers, make_booking):
    booking = await make_booking(10)
    response = await client.get(f"/api/v1/bookings/{booking.id}", headers=other_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_venue_owner_sees_booking_on_their_court(client: AsyncClient, owner_headers, make_booking):
    booking = await make_booking(30)

    response = await client.get(f"/api/v1/bookings/{booking.id}", headers=owner_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["booking"]["id"] == booking.id
    assert data["refund_info"]["percentage"] == 100


@pytest.mark.asyncio
@pytest.mark.parametrize("hours, percentage, amount", [(30, 100, "1000"), (10, 50, "500"), (1, 0, "0")])
async def test_cancel_refund_follows_time_policy(
    client: AsyncClient, auth_headers, make_booking, db_session, hours, percentage, amount
):
    booking = await make_booking(hours)

    response = await client.post(
        f"/api/v1/bookings/{booking.id}/cancel",
        json={"reason": "Can't make it"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["booking"]["status"] == "CANCELLED"
    assert data["booking"]["cancellation_reason"] == "Can't make it"
    assert data["refund"]["refund_percentage"] == percentage
    assert Decimal(data["refund"]["amount"]) == Decimal(amount)
    assert data["warnings"] == []

    # The booker cancelled it themselves; nobody to notify
    assert await _count(db_session, Notification, user_id=booking.user_id) == 0
    assert await _count(db_session, Refund, booking_id=booking.id) == 1


@pytest.mark.asyncio
async def test_cancel_unpaid_booking_creates_no_refund(
    client: AsyncClient, auth_headers, make_booking, db_session
):
    booking = await make_booking(30, status=BookingStatus.PENDING, payment_status=PaymentStatus.PENDING)

    response = await client.post(f"/api/v1/bookings/{booking.id}/cancel", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["refund"] is None
    assert response.json()["booking"]["cancellation_reason"] == "Cancelled by user"
    assert await _count(db_session, Refund, booking_id=booking.id) == 0


@pytest.mark.asyncio
async def test_cancel_twice_is_rejected(client: AsyncClient, auth_headers, make_booking):
    booking = await make_booking(30)

    first = await client.post(f"/api/v1/bookings/{booking.id}/cancel", headers=auth_headers)
    assert first.status_code == 200

    second = await client.post(f"/api/v1/bookings/{booking.id}/cancel", headers=auth_headers)
    assert second.status_code == 400
    assert second.json() == {
        "success": False,
        "error": "INVALID_TRANSITION",
        "message": "Booking is already cancelled",
    }


@pytest.mark.asyncio
async def test_cannot_cancel_started_booking(client: AsyncClient, auth_headers, make_booking):
    booking = await make_booking(-1)
    response = await client.post(f"/api/v1/bookings/{booking.id}/cancel", headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "INVALID_TRANSITION"


@pytest.mark.asyncio
async def test_stranger_cannot_cancel(client: AsyncClient, other_headers, make_booking):
    booking = await make_booking(30)
    response = await client.post(f"/api/v1/bookings/{booking.id}/cancel", headers=other_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_venue_owner_cancel_notifies_player(
    client: AsyncClient, owner_headers, owner_user, make_booking, db_session
):
    booking = await make_booking(30)

    response = await client.post(f"/api/v1/bookings/{booking.id}/cancel", headers=owner_headers)
    assert response.status_code == 200
    assert response.json()["booking"]["cancellation_reason"] == f"Cancelled by facility owner: {owner_user.name}"

    result = await db_session.execute(select(Notification).where(Notification.user_id == booking.user_id))
    (notification,) = result.scalars().all()
    assert notification.type.value == "BOOKING_CANCELLED"
    assert notification.data["booking_id"] == booking.id
    assert notification.data["refund_amount"] == 1000.0


@pytest.mark.asyncio
async def test_cancel_missing_booking(client: AsyncClient, auth_headers):
    response = await client.post("/api/v1/bookings/999999/cancel", headers=auth_headers)
    assert response.status_code == 404
