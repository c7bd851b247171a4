import asyncio
import uuid
from datetime import date
from decimal import Decimal

import pytest

from servicehub.core.database import AsyncSessionLocal
from servicehub.models import Booking, Service
from servicehub.services.realtime import RealtimeNotifier

SYDNEY = (-33.8688, 151.2093)
DAY = date(2024, 6, 1)


@pytest.fixture()
def market(seed):
    category = seed.category("Cleaning")
    provider = seed.provider("Sparkle Co", location=SYDNEY)
    service = seed.service(provider, category, "Deep clean", "80.00", duration=60)
    customer = seed.user("Alice")
    return {"category": category, "provider": provider, "service": service, "customer": customer}


def _book(client, seed, user, service_id, scheduled_time, scheduled_date=DAY, **extra):
    return client.post(
        "/api/bookings",
        json={
            "serviceId": service_id,
            "scheduledDate": scheduled_date.isoformat(),
            "scheduledTime": scheduled_time,
            **extra,
        },
        headers=seed.auth(user.id),
    )


async def _set_price(service_id, price):
    async with AsyncSessionLocal() as session:
        service = await session.get(Service, service_id)
        service.base_price = Decimal(price)
        await session.commit()


# ---------- creation ----------

def test_create_booking_snapshots_service_terms(client, seed, market):
    response = _book(client, seed, market["customer"], market["service"].id, "9:00", notes="  ring twice ")
    assert response.status_code == 201
    booking = response.json()["booking"]

    assert booking["status"] == "PENDING"
    assert booking["scheduledTime"] == "09:00"
    assert booking["scheduledDate"] == "2024-06-01"
    assert booking["duration"] == 60
    assert booking["totalPrice"] == 80.0
    assert booking["notes"] == "ring twice"
    assert booking["customer"]["name"] == "Alice"
    uuid.UUID(booking["bookingId"])


def test_booking_price_survives_service_price_change(client, seed, market, fetch):
    created = _book(client, seed, market["customer"], market["service"].id, "10:00").json()["booking"]
    asyncio.run(_set_price(market["service"].id, "120.00"))

    stored = fetch(Booking, created["id"])
    assert stored.total_price == Decimal("80.00")


def test_create_booking_requires_token(client, market):
    response = client.post(
        "/api/bookings",
        json={"serviceId": market["service"].id, "scheduledDate": "2024-06-01", "scheduledTime": "10:00"},
    )
    assert response.status_code == 401
    assert response.json()["error"] == "Access token required"


@pytest.mark.parametrize("bad_time", ["24:00", "10:60", "ten", "1000"])
def test_create_booking_rejects_malformed_time(client, seed, market, bad_time):
    response = _book(client, seed, market["customer"], market["service"].id, bad_time)
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "scheduledTime"


def test_create_booking_unknown_service_is_404(client, seed, market):
    response = _book(client, seed, market["customer"], 9999, "10:00")
    assert response.status_code == 404
    assert response.json()["error"] == "Service not found"


def test_create_booking_inactive_service_is_404(client, seed, market):
    retired = seed.service(market["provider"], market["category"], "Retired", is_active=False)
    response = _book(client, seed, market["customer"], retired.id, "10:00")
    assert response.status_code == 404


def test_create_booking_unavailable_provider_is_400(client, seed, market):
    away = seed.provider("Away Ltd", is_available=False)
    service = seed.service(away, market["category"], "Window clean")
    response = _book(client, seed, market["customer"], service.id, "10:00")
    assert response.status_code == 400
    assert response.json()["error"] == "Provider is currently unavailable"


@pytest.mark.parametrize("bad_date", [0, 1717200000, "2024-13-01", "01/06/2024", "June 1"])
def test_create_booking_rejects_non_iso_date(client, seed, market, fetch, bad_date):
    response = client.post(
        "/api/bookings",
        json={"serviceId": market["service"].id, "scheduledDate": bad_date, "scheduledTime": "10:00"},
        headers=seed.auth(market["customer"].id),
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "scheduledDate"
    assert fetch(Booking, 1) is None


# ---------- conflicts ----------

@pytest.mark.parametrize("requested", ["10:00", "10:30", "09:30"])
def test_overlapping_request_is_rejected(client, seed, market, requested):
    seed.booking(market["service"], market["customer"], DAY, "10:00", status="CONFIRMED")
    other = seed.user("Bob")

    response = _book(client, seed, other, market["service"].id, requested)
    assert response.status_code == 400
    assert response.json()["error"] == "Time slot is not available"


def test_pending_booking_also_blocks_creation(client, seed, market):
    seed.booking(market["service"], market["customer"], DAY, "10:00", status="PENDING")
    response = _book(client, seed, seed.user("Bob"), market["service"].id, "10:00")
    assert response.status_code == 400


@pytest.mark.parametrize("requested", ["09:00", "11:00"])
def test_adjacent_request_is_accepted(client, seed, market, requested):
    seed.booking(market["service"], market["customer"], DAY, "10:00", status="CONFIRMED")
    response = _book(client, seed, seed.user("Bob"), market["service"].id, requested)
    assert response.status_code == 201


def test_existing_booking_duration_defines_its_interval(client, seed, market):
    # A 120-minute booking at 10:00 still holds 11:30
    seed.booking(market["service"], market["customer"], DAY, "10:00", duration=120)
    response = _book(client, seed, seed.user("Bob"), market["service"].id, "11:30")
    assert response.status_code == 400


@pytest.mark.parametrize("status", ["CANCELLED", "COMPLETED"])
def test_finished_bookings_do_not_block(client, seed, market, status):
    seed.booking(market["service"], market["customer"], DAY, "10:00", status=status)
    response = _book(client, seed, seed.user("Bob"), market["service"].id, "10:00")
    assert response.status_code == 201


def test_other_providers_and_days_do_not_block(client, seed, market):
    rival = seed.provider("Rival")
    rival_service = seed.service(rival, market["category"], "Rival clean")
    seed.booking(rival_service, market["customer"], DAY, "10:00")
    seed.booking(market["service"], market["customer"], date(2024, 6, 2), "10:00")

    response = _book(client, seed, seed.user("Bob"), market["service"].id, "10:00")
    assert response.status_code == 201


def test_notification_failure_does_not_fail_booking(client, seed, market, monkeypatch):
    async def broken_emit(self, room, event, data, *, skip=None):
        raise RuntimeError("socket layer down")

    monkeypatch.setattr(RealtimeNotifier, "emit", broken_emit)
    response = _book(client, seed, market["customer"], market["service"].id, "10:00")
    assert response.status_code == 201


# ---------- my bookings ----------

def test_my_bookings_filters_and_paginates(client, seed, market):
    customer = market["customer"]
    for hour in ("09:00", "11:00", "13:00"):
        seed.booking(market["service"], customer, DAY, hour, status="CONFIRMED")
    seed.booking(market["service"], customer, DAY, "15:00", status="CANCELLED")
    seed.booking(market["service"], seed.user("Bob"), DAY, "17:00", status="CONFIRMED")

    everything = client.get("/api/bookings/my", headers=seed.auth(customer.id)).json()
    assert everything["pagination"]["totalCount"] == 4

    confirmed = client.get(
        "/api/bookings/my",
        params={"status": "confirmed", "limit": 2, "page": 2},
        headers=seed.auth(customer.id),
    ).json()
    assert len(confirmed["bookings"]) == 1
    assert confirmed["pagination"] == {"currentPage": 2, "totalPages": 2, "totalCount": 3}
    assert all(b["customerId"] == customer.id for b in confirmed["bookings"])


def test_my_bookings_requires_token(client):
    assert client.get("/api/bookings/my").status_code == 401


# ---------- status updates ----------

def test_provider_confirms_booking_and_reason_is_dropped(client, seed, market):
    booking = seed.booking(market["service"], market["customer"], DAY, "10:00", status="PENDING")
    provider_user_id = market["provider"].user_id

    response = client.patch(
        f"/api/bookings/{booking.booking_id}/status",
        json={"status": "CONFIRMED", "cancellationReason": "ignored"},
        headers=seed.auth(provider_user_id),
    )
    assert response.status_code == 200
    body = response.json()["booking"]
    assert body["status"] == "CONFIRMED"
    assert body["cancellationReason"] is None


def test_provider_cancels_with_reason(client, seed, market, fetch):
    booking = seed.booking(market["service"], market["customer"], DAY, "10:00", status="CONFIRMED")

    response = client.patch(
        f"/api/bookings/{booking.booking_id}/status",
        json={"status": "CANCELLED", "cancellationReason": "Sick"},
        headers=seed.auth(market["provider"].user_id),
    )
    assert response.status_code == 200
    stored = fetch(Booking, booking.id)
    assert stored.status == "CANCELLED"
    assert stored.cancellation_reason == "Sick"


def test_customer_cannot_update_status(client, seed, market):
    booking = seed.booking(market["service"], market["customer"], DAY, "10:00", status="PENDING")
    response = client.patch(
        f"/api/bookings/{booking.booking_id}/status",
        json={"status": "CONFIRMED"},
        headers=seed.auth(market["customer"].id),
    )
    assert response.status_code == 404
    assert response.json()["error"] == "Booking not found"


def test_unknown_booking_is_404(client, seed, market):
    response = client.patch(
        f"/api/bookings/{uuid.uuid4()}/status",
        json={"status": "CONFIRMED"},
        headers=seed.auth(market["provider"].user_id),
    )
    assert response.status_code == 404


@pytest.mark.parametrize(
    "booking_id, body",
    [
        ("not-a-uuid", {"status": "CONFIRMED"}),
        (None, {"status": "PENDING"}),
        (None, {"status": "DONE"}),
        (None, {}),
    ],
)
def test_invalid_status_requests_are_400(client, seed, market, booking_id, body):
    booking = seed.booking(market["service"], market["customer"], DAY, "10:00", status="PENDING")
    target = booking_id or booking.booking_id
    response = client.patch(
        f"/api/bookings/{target}/status",
        json=body,
        headers=seed.auth(market["provider"].user_id),
    )
    assert response.status_code == 400
    assert response.json()["errors"]


# ---------- availability ----------

def _slots(client, service_id, day=DAY):
    response = client.get(f"/api/bookings/availability/{service_id}", params={"date": day.isoformat()})
    assert response.status_code == 200
    return [slot["time"] for slot in response.json()["timeSlots"]]


def test_free_day_offers_full_grid(client, market):
    slots = _slots(client, market["service"].id)
    assert len(slots) == 18
    assert slots[0] == "09:00"
    assert slots[-1] == "17:30"


def test_confirmed_booking_removes_overlapping_slots(client, seed, market):
    seed.booking(market["service"], market["customer"], DAY, "10:00", status="CONFIRMED")
    slots = _slots(client, market["service"].id)

    assert {"09:30", "10:00", "10:30"}.isdisjoint(slots)
    assert "09:00" in slots
    assert "11:00" in slots


def test_slots_carry_available_flag(client, market):
    response = client.get(
        f"/api/bookings/availability/{market['service'].id}",
        params={"date": DAY.isoformat()},
    )
    assert all(slot["available"] is True for slot in response.json()["timeSlots"])


def test_pending_booking_does_not_hide_slots(client, seed, market):
    seed.booking(market["service"], market["customer"], DAY, "10:00", status="PENDING")
    assert "10:00" in _slots(client, market["service"].id)


def test_availability_unknown_service_is_404(client, market):
    response = client.get("/api/bookings/availability/9999", params={"date": "2024-06-01"})
    assert response.status_code == 404


def test_availability_requires_date(client, market):
    response = client.get(f"/api/bookings/availability/{market['service'].id}")
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"].endswith("date")


@pytest.mark.parametrize("bad_date", ["0", "2024-13-01", "01/06/2024"])
def test_availability_rejects_non_iso_date(client, market, bad_date):
    response = client.get(
        f"/api/bookings/availability/{market['service'].id}",
        params={"date": bad_date},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid date format; expected YYYY-MM-DD"
