"""Tests for the HTTP API."""

from __future__ import annotations

from uuid import uuid4

import pytest

API = "/api/v1"


async def _create_restaurant(client, **overrides) -> dict:
    payload = {
        "name": "Trattoria Roma",
        "opening_time": "10:00",
        "closing_time": "22:00",
        "timezone": "UTC",
    }
    payload.update(overrides)
    response = await client.post(f"{API}/restaurants", json=payload)
    assert response.status_code == 201
    return response.json()


async def _add_table(client, restaurant_id: str, number: int, capacity: int) -> dict:
    response = await client.post(
        f"{API}/restaurants/{restaurant_id}/tables",
        json={"table_number": number, "capacity": capacity},
    )
    assert response.status_code == 201
    return response.json()


async def _reserve(client, restaurant_id: str, **overrides):
    payload = {
        "restaurant_id": restaurant_id,
        "party_size": 5,
        "start_time": "2026-06-02T19:00:00Z",
        "duration_minutes": 60,
        "customer_name": "Anna",
        "customer_phone": "+4917111111",
    }
    payload.update(overrides)
    return await client.post(f"{API}/reservations", json=payload)


@pytest.fixture
def seeded(client):
    """Restaurant with tables for 2, 4 and 6 guests."""

    async def _seed() -> dict:
        restaurant = await _create_restaurant(client)
        for number, capacity in [(1, 2), (2, 4), (3, 6)]:
            await _add_table(client, restaurant["id"], number, capacity)
        return restaurant

    return _seed


# ============================================================================
# Health
# ============================================================================

class TestHealth:
    """Tests for health endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        """Test the aggregated health check."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["environment"] == "test"
        assert data["checks"]["database"] == "ok"
        assert data["checks"]["retirement"] == "disabled"

    @pytest.mark.asyncio
    async def test_liveness(self, client):
        """Test the liveness probe."""
        response = await client.get("/live")

        assert response.json() == {"status": "alive"}


# ============================================================================
# Restaurants
# ============================================================================

class TestRestaurantEndpoints:
    """Tests for restaurant administration endpoints."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, client):
        """Test registering and reading a restaurant."""
        created = await _create_restaurant(client, timezone=None)

        response = await client.get(f"{API}/restaurants/{created['id']}")

        assert response.status_code == 200
        assert response.json()["name"] == "Trattoria Roma"
        assert response.json()["timezone"] == "UTC"

    @pytest.mark.asyncio
    async def test_invalid_hours(self, client):
        """Test that unparseable hours are rejected."""
        response = await client.post(f"{API}/restaurants", json={
            "name": "Broken",
            "opening_time": "ten",
            "closing_time": "22:00",
        })

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_TIME_FORMAT"

    @pytest.mark.asyncio
    async def test_tables(self, client, seeded):
        """Test listing tables in number order."""
        restaurant = await seeded()

        response = await client.get(f"{API}/restaurants/{restaurant['id']}/tables")

        assert [t["capacity"] for t in response.json()] == [2, 4, 6]

    @pytest.mark.asyncio
    async def test_duplicate_table(self, client, seeded):
        """Test that table numbers are unique per restaurant."""
        restaurant = await seeded()

        response = await client.post(
            f"{API}/restaurants/{restaurant['id']}/tables",
            json={"table_number": 1, "capacity": 8},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "DUPLICATE_TABLE"

    @pytest.mark.asyncio
    async def test_unknown_restaurant(self, client):
        """Test 404 for an unknown id."""
        response = await client.get(f"{API}/restaurants/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"


# ============================================================================
# Availability
# ============================================================================

class TestAvailabilityEndpoint:
    """Tests for the availability check."""

    @pytest.mark.asyncio
    async def test_check(self, client, seeded):
        """Test slots for a day."""
        restaurant = await seeded()

        response = await client.get(f"{API}/availability/check", params={
            "restaurant_id": restaurant["id"],
            "party_size": 2,
            "date": "2026-06-02",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["duration_minutes"] == 60
        assert data["slots"][0] == "10:00"
        assert data["slots"][-1] == "21:00"

    @pytest.mark.asyncio
    async def test_booking_removes_slot(self, client, seeded):
        """Test that a booking is reflected immediately."""
        restaurant = await seeded()
        params = {
            "restaurant_id": restaurant["id"],
            "party_size": 5,
            "duration": 60,
            "date": "2026-06-02",
        }
        before = (await client.get(f"{API}/availability/check", params=params)).json()

        await _reserve(client, restaurant["id"])

        after = (await client.get(f"{API}/availability/check", params=params)).json()
        assert "19:00" in before["slots"]
        assert "19:00" not in after["slots"]

    @pytest.mark.asyncio
    async def test_missing_party_size(self, client, seeded):
        """Test 422 for a missing query parameter."""
        restaurant = await seeded()

        response = await client.get(
            f"{API}/availability/check", params={"restaurant_id": restaurant["id"]}
        )

        assert response.status_code == 422
        assert response.json()["details"][0]["field"] == "query.party_size"

    @pytest.mark.asyncio
    async def test_invalid_party_size(self, client, seeded):
        """Test 400 for a non-positive party."""
        restaurant = await seeded()

        response = await client.get(f"{API}/availability/check", params={
            "restaurant_id": restaurant["id"],
            "party_size": 0,
        })

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"


# ============================================================================
# Reservations
# ============================================================================

class TestReservationEndpoints:
    """Tests for booking, editing and cancelling."""

    @pytest.mark.asyncio
    async def test_create(self, client, seeded):
        """Test a confirmed booking on the best-fit table."""
        restaurant = await seeded()
        tables = (await client.get(f"{API}/restaurants/{restaurant['id']}/tables")).json()

        response = await _reserve(client, restaurant["id"])

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "confirmed"
        assert data["table_id"] == tables[2]["id"]
        assert data["start_time"].startswith("2026-06-02T19:00:00")
        assert data["end_time"].startswith("2026-06-02T20:00:00")

    @pytest.mark.asyncio
    async def test_conflict(self, client, seeded):
        """Test 409 when every fitting table is taken."""
        restaurant = await seeded()
        await _reserve(client, restaurant["id"])

        response = await _reserve(client, restaurant["id"], start_time="2026-06-02T19:30:00Z")

        assert response.status_code == 409
        assert response.json()["error"] == "RESERVATION_CONFLICT"

    @pytest.mark.asyncio
    async def test_waitlist(self, client, seeded):
        """Test joining the waitlist instead of a conflict."""
        restaurant = await seeded()
        await _reserve(client, restaurant["id"])

        response = await _reserve(client, restaurant["id"], allow_waitlist=True)

        assert response.status_code == 201
        assert response.json()["status"] == "waitlist"

    @pytest.mark.asyncio
    async def test_rule_violations(self, client, seeded):
        """Test hours, peak and capacity errors."""
        restaurant = await seeded()

        late = await _reserve(client, restaurant["id"], start_time="2026-06-02T21:30:00Z")
        long_peak = await _reserve(client, restaurant["id"], duration_minutes=120)
        too_big = await _reserve(client, restaurant["id"], party_size=9)

        assert late.json()["error"] == "OUTSIDE_OPERATING_HOURS"
        assert long_peak.json()["error"] == "DURATION_OUT_OF_POLICY"
        assert too_big.json()["error"] == "NO_CAPACITY"
        assert {late.status_code, long_peak.status_code, too_big.status_code} == {400}

    @pytest.mark.asyncio
    async def test_invalid_body(self, client):
        """Test 422 for a malformed body."""
        response = await client.post(f"{API}/reservations", json={"party_size": "many"})

        assert response.status_code == 422
        fields = {d["field"] for d in response.json()["details"]}
        assert "party_size" in fields
        assert "restaurant_id" in fields

    @pytest.mark.asyncio
    async def test_get_and_by_phone(self, client, seeded):
        """Test lookups by id and phone."""
        restaurant = await seeded()
        created = (await _reserve(client, restaurant["id"])).json()
        await _reserve(client, restaurant["id"], start_time="2026-06-02T12:00:00Z")

        by_id = await client.get(f"{API}/reservations/{created['id']}")
        by_phone = await client.get(f"{API}/reservations/by-phone/+4917111111")

        assert by_id.json()["customer_name"] == "Anna"
        assert by_phone.json()["total"] == 2
        assert by_phone.json()["reservations"][0]["start_time"].startswith("2026-06-02T12:00")

    @pytest.mark.asyncio
    async def test_unknown_reservation(self, client):
        """Test 404 for an unknown reservation."""
        response = await client.get(f"{API}/reservations/{uuid4()}")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_update(self, client, seeded):
        """Test moving a reservation."""
        restaurant = await seeded()
        created = (await _reserve(client, restaurant["id"])).json()

        response = await client.patch(
            f"{API}/reservations/{created['id']}",
            json={"start_time": "2026-06-02T15:00:00Z", "party_size": 4},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["start_time"].startswith("2026-06-02T15:00:00")
        assert data["party_size"] == 4
        assert data["table_id"] != created["table_id"]

    @pytest.mark.asyncio
    async def test_update_to_completed_rejected(self, client, seeded):
        """Test that an edit cannot complete a reservation."""
        restaurant = await seeded()
        created = (await _reserve(client, restaurant["id"])).json()

        response = await client.patch(
            f"{API}/reservations/{created['id']}", json={"status": "completed"}
        )

        assert response.status_code == 409
        assert response.json()["error"] == "INVALID_STATUS_TRANSITION"

    @pytest.mark.asyncio
    async def test_cancel_promotes_waitlist(self, client, seeded, app, sender):
        """Test cancellation and waitlist promotion through the API."""
        restaurant = await seeded()
        booked = (await _reserve(client, restaurant["id"])).json()
        waiting = (
            await _reserve(
                client, restaurant["id"], customer_phone="+4917122222", allow_waitlist=True
            )
        ).json()

        response = await client.delete(f"{API}/reservations/{booked['id']}")
        await app.state.notifier.drain()

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        promoted = (await client.get(f"{API}/reservations/{waiting['id']}")).json()
        assert promoted["status"] == "confirmed"
        assert "upgraded" in sender.bodies_for("+4917122222")[-1]

    @pytest.mark.asyncio
    async def test_cancel_twice(self, client, seeded):
        """Test that a cancelled reservation cannot be cancelled again."""
        restaurant = await seeded()
        created = (await _reserve(client, restaurant["id"])).json()

        await client.delete(f"{API}/reservations/{created['id']}")
        response = await client.delete(f"{API}/reservations/{created['id']}")

        assert response.status_code == 409
