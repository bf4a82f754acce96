"""
ChargeSphere - Booking Endpoint Tests
Tests for booking creation, ownership, status transitions and stats.

Run: pytest tests/test_bookings.py -v
"""

import asyncio
import pytest
from datetime import timedelta
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock

from models.booking import BookingStatus, can_transition
from services.booking_service import BookingService
from services.exceptions import AuthorizationError, InvalidTransitionError, NotFoundError, ValidationError
from utils.helpers import utc_now


def _create(client: TestClient, payload: dict) -> dict:
    response = client.post("/bookings", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


class TestCreateBooking:
    """Tests for POST /bookings."""

    def test_create_booking_is_pending(self, client: TestClient, auth, customer, booking_payload):
        """
        Test: Valid booking request
        Expected: 201, status pending, owner set to caller
        """
        auth.login(customer)

        data = _create(client, booking_payload)

        assert data["status"] == "pending"
        assert data["payment_status"] == "pending"
        assert data["user_id"] == customer.uid
        assert data["station"]["id"] == "1"
        assert data["duration"] == 15

    def test_client_supplied_status_is_ignored(self, client: TestClient, auth, customer, booking_payload):
        """
        Test: Request tries to create an already confirmed booking
        Expected: Booking still starts pending
        """
        auth.login(customer)

        data = _create(client, {**booking_payload, "status": "confirmed"})

        assert data["status"] == "pending"

    @pytest.mark.parametrize("duration", [14, 0, 525601])
    def test_duration_out_of_bounds_rejected(self, client: TestClient, auth, customer, booking_payload, duration):
        """
        Test: Duration below 15 minutes or above one year
        Expected: 422 naming the duration field
        """
        auth.login(customer)

        response = client.post("/bookings", json={**booking_payload, "duration": duration})

        assert response.status_code == 422
        assert "body.duration" in [e["field"] for e in response.json()["errors"]]

    def test_maximum_duration_accepted(self, client: TestClient, auth, customer, booking_payload):
        auth.login(customer)

        data = _create(client, {**booking_payload, "duration": 525600})

        assert data["duration"] == 525600

    def test_blank_station_name_rejected(self, client: TestClient, auth, customer, booking_payload):
        """
        Test: Station name made of spaces
        Expected: 422 on body.station.name
        """
        auth.login(customer)
        payload = {**booking_payload, "station": {"id": 1, "name": "   "}}

        response = client.post("/bookings", json=payload)

        assert response.status_code == 422
        assert "body.station.name" in [e["field"] for e in response.json()["errors"]]

    def test_notes_longer_than_500_rejected(self, client: TestClient, auth, customer, booking_payload):
        auth.login(customer)

        response = client.post("/bookings", json={**booking_payload, "notes": "x" * 501})

        assert response.status_code == 422

    @pytest.mark.parametrize("booking_date", [1700000000, "1700000000", True])
    def test_booking_date_must_be_iso_string(
        self, client: TestClient, auth, customer, booking_payload, booking_date
    ):
        """
        Test: Booking date sent as a Unix timestamp or boolean
        Expected: 422 on body.booking_date
        """
        auth.login(customer)

        response = client.post("/bookings", json={**booking_payload, "booking_date": booking_date})

        assert response.status_code == 422
        assert "body.booking_date" in [e["field"] for e in response.json()["errors"]]

    def test_service_reports_all_invalid_fields(self, booking_service: BookingService, customer):
        """
        Test: Raw dict payload validated by the service
        Expected: ValidationError listing each invalid field
        """
        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(booking_service.create_booking(customer, {"duration": 10}))

        fields = exc_info.value.fields
        assert "duration" in fields
        assert "station" in fields
        assert "start_time" in fields


class TestOwnerAccess:
    """Tests for GET/PUT/DELETE /bookings/{id}."""

    def test_owner_can_fetch_booking(self, client: TestClient, auth, customer, booking_payload):
        auth.login(customer)
        booking = _create(client, booking_payload)

        response = client.get(f"/bookings/{booking['id']}")

        assert response.status_code == 200
        assert response.json()["id"] == booking["id"]

    def test_non_owner_update_forbidden(
        self, client: TestClient, auth, customer, other_customer, booking_payload
    ):
        """
        Test: User B updates user A's booking
        Expected: 403 and the booking is unchanged
        """
        auth.login(customer)
        booking = _create(client, booking_payload)

        auth.login(other_customer)
        response = client.put(f"/bookings/{booking['id']}", json={"notes": "mine now"})

        assert response.status_code == 403
        assert response.json()["detail"] == "Not authorized to update this booking"

        auth.login(customer)
        assert client.get(f"/bookings/{booking['id']}").json()["notes"] is None

    def test_non_owner_view_forbidden(self, client: TestClient, auth, customer, other_customer, booking_payload):
        auth.login(customer)
        booking = _create(client, booking_payload)

        auth.login(other_customer)
        response = client.get(f"/bookings/{booking['id']}")

        assert response.status_code == 403

    def test_unknown_booking_is_404(self, client: TestClient, auth, customer):
        auth.login(customer)

        response = client.get("/bookings/does-not-exist")

        assert response.status_code == 404
        assert response.json()["detail"] == "Booking not found"

    def test_update_keeps_omitted_fields(self, client: TestClient, auth, customer, booking_payload):
        """
        Test: Partial update with notes only
        Expected: Notes changed, schedule untouched
        """
        auth.login(customer)
        booking = _create(client, booking_payload)

        response = client.put(f"/bookings/{booking['id']}", json={"notes": "Bring adapter", "duration": None})

        assert response.status_code == 200
        data = response.json()
        assert data["notes"] == "Bring adapter"
        assert data["duration"] == 15
        assert data["start_time"] == "14:30"

    def test_update_blank_start_time_rejected(self, client: TestClient, auth, customer, booking_payload):
        auth.login(customer)
        booking = _create(client, booking_payload)

        response = client.put(f"/bookings/{booking['id']}", json={"start_time": "   "})

        assert response.status_code == 422
        assert client.get(f"/bookings/{booking['id']}").json()["start_time"] == "14:30"

    def test_update_timestamp_date_rejected(self, client: TestClient, auth, customer, booking_payload):
        auth.login(customer)
        booking = _create(client, booking_payload)

        response = client.put(f"/bookings/{booking['id']}", json={"booking_date": 1700000000})

        assert response.status_code == 422

    def test_delete_cancels_without_removing(self, client: TestClient, auth, customer, booking_payload):
        """
        Test: DELETE /bookings/{id}
        Expected: Booking kept with status cancelled
        """
        auth.login(customer)
        booking = _create(client, booking_payload)

        response = client.delete(f"/bookings/{booking['id']}")

        assert response.status_code == 200
        assert response.json()["message"] == "Booking cancelled successfully"
        assert client.get(f"/bookings/{booking['id']}").json()["status"] == "cancelled"

    def test_owner_cannot_confirm_own_booking(self, client: TestClient, auth, customer, booking_payload):
        """
        Test: Owner sets status to confirmed
        Expected: 403, only admins approve
        """
        auth.login(customer)
        booking = _create(client, booking_payload)

        response = client.put(f"/bookings/{booking['id']}", json={"status": "confirmed"})

        assert response.status_code == 403

    def test_owner_can_cancel_through_status(self, client: TestClient, auth, customer, booking_payload):
        auth.login(customer)
        booking = _create(client, booking_payload)

        response = client.put(f"/bookings/{booking['id']}", json={"status": "cancelled"})

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"


class TestListAndStats:
    """Tests for GET /bookings and GET /bookings/stats/summary."""

    def test_list_is_paginated_newest_first(self, client: TestClient, auth, customer, booking_payload):
        auth.login(customer)
        ids = [_create(client, booking_payload)["id"] for _ in range(3)]

        response = client.get("/bookings", params={"page": 1, "limit": 2})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert data["total_pages"] == 2
        assert data["current_page"] == 1
        assert [b["id"] for b in data["bookings"]] == [ids[2], ids[1]]

    def test_list_only_contains_own_bookings(
        self, client: TestClient, auth, customer, other_customer, booking_payload
    ):
        auth.login(other_customer)
        _create(client, booking_payload)
        auth.login(customer)
        _create(client, booking_payload)

        data = client.get("/bookings").json()

        assert data["total"] == 1
        assert all(b["user_id"] == customer.uid for b in data["bookings"])

    def test_list_filters_by_status(self, client: TestClient, auth, customer, booking_payload):
        auth.login(customer)
        first = _create(client, booking_payload)
        _create(client, booking_payload)
        client.delete(f"/bookings/{first['id']}")

        data = client.get("/bookings", params={"status": "cancelled"}).json()

        assert [b["id"] for b in data["bookings"]] == [first["id"]]

    def test_invalid_status_filter_rejected(self, client: TestClient, auth, customer):
        auth.login(customer)

        response = client.get("/bookings", params={"status": "archived"})

        assert response.status_code == 422

    def test_stats_route_not_shadowed_by_id_route(self, client: TestClient, auth, customer):
        """
        Test: GET /bookings/stats/summary with no bookings
        Expected: Zero counters, not a 404 for booking "stats"
        """
        auth.login(customer)

        response = client.get("/bookings/stats/summary")

        assert response.status_code == 200
        assert response.json() == {"total": 0, "completed": 0, "upcoming": 0}

    def test_approved_future_booking_counts_as_upcoming(
        self, client: TestClient, auth, customer, admin, booking_payload
    ):
        """
        Test: Booking for tomorrow, 15 minutes, approved by an admin
        Expected: pending -> confirmed, counted in upcoming
        """
        auth.login(customer)
        booking = _create(client, booking_payload)
        assert booking["status"] == "pending"

        auth.login(admin)
        approved = client.put(f"/admin/bookings/{booking['id']}/approve")
        assert approved.json()["booking"]["status"] == "confirmed"

        auth.login(customer)
        stats = client.get("/bookings/stats/summary").json()

        assert stats == {"total": 1, "completed": 0, "upcoming": 1}


class TestTransitionPolicy:
    """Service-level status transition rules."""

    def _pending(self, service: BookingService, user, payload) -> str:
        return asyncio.run(service.create_booking(user, payload)).id

    def test_state_machine_table(self):
        assert can_transition(BookingStatus.PENDING, BookingStatus.CONFIRMED)
        assert can_transition(BookingStatus.CONFIRMED, BookingStatus.COMPLETED)
        assert can_transition(BookingStatus.CANCELLED, BookingStatus.CANCELLED)
        assert not can_transition(BookingStatus.CANCELLED, BookingStatus.CONFIRMED)
        assert not can_transition(BookingStatus.COMPLETED, BookingStatus.CANCELLED)
        assert not can_transition(BookingStatus.PENDING, BookingStatus.COMPLETED)

    def test_approving_cancelled_booking_rejected(self, booking_service, customer, booking_payload):
        """
        Test: Strict mode, approve after cancel
        Expected: InvalidTransitionError, status stays cancelled
        """
        booking_id = self._pending(booking_service, customer, booking_payload)
        asyncio.run(booking_service.cancel_booking(customer, booking_id))

        with pytest.raises(InvalidTransitionError):
            asyncio.run(booking_service.approve_booking(booking_id))

        assert asyncio.run(booking_service.get_booking(customer, booking_id)).status == BookingStatus.CANCELLED

    def test_permissive_mode_allows_any_change(self, fake_db, permissive_settings, customer, booking_payload):
        """
        Test: Permissive mode, approve after cancel
        Expected: Booking becomes confirmed
        """
        service = BookingService(db=fake_db, settings=permissive_settings)
        booking_id = self._pending(service, customer, booking_payload)
        asyncio.run(service.cancel_booking(customer, booking_id))

        booking = asyncio.run(service.approve_booking(booking_id))

        assert booking.status == BookingStatus.CONFIRMED

    def test_repeated_approval_writes_nothing(self, booking_service, fake_db, customer, booking_payload):
        booking_id = self._pending(booking_service, customer, booking_payload)
        asyncio.run(booking_service.approve_booking(booking_id))
        stamp = fake_db.bookings[booking_id]["updated_at"]

        booking = asyncio.run(booking_service.approve_booking(booking_id))

        assert booking.status == BookingStatus.CONFIRMED
        assert fake_db.bookings[booking_id]["updated_at"] == stamp

    def test_failed_status_change_writes_nothing(self, booking_service, fake_db, customer, booking_payload):
        """
        Test: Owner update with notes and a forbidden status
        Expected: AuthorizationError before any field is written
        """
        booking_id = self._pending(booking_service, customer, booking_payload)

        with pytest.raises(AuthorizationError):
            asyncio.run(booking_service.update_booking(
                customer, booking_id, {"notes": "changed", "status": "completed"}
            ))

        assert fake_db.bookings[booking_id]["notes"] is None

    def test_missing_booking_checked_before_ownership(self, booking_service, other_customer):
        with pytest.raises(NotFoundError):
            asyncio.run(booking_service.update_booking(other_customer, "missing", {"notes": "x"}))


class TestCompletion:
    """Tests for the scheduled completion of past bookings."""

    def _confirmed(self, service, user, payload, booking_date, start_time="10:00", duration=60):
        booking = asyncio.run(service.create_booking(user, {
            **payload,
            "booking_date": booking_date.isoformat(),
            "start_time": start_time,
            "duration": duration,
        }))
        asyncio.run(service.approve_booking(booking.id))
        return booking.id

    def test_only_ended_confirmed_bookings_complete(self, booking_service, customer, booking_payload):
        """
        Test: One booking ended yesterday, one ends later today
        Expected: Only the ended one becomes completed
        """
        now = utc_now().replace(hour=12, minute=0, second=0, microsecond=0)
        today = now.replace(hour=0)
        ended = self._confirmed(booking_service, customer, booking_payload, today - timedelta(days=1))
        running = self._confirmed(booking_service, customer, booking_payload, today, "11:30", 120)

        completed = asyncio.run(booking_service.complete_past_bookings(now=now))

        assert completed == 1
        assert asyncio.run(booking_service.get_booking(customer, ended)).status == BookingStatus.COMPLETED
        assert asyncio.run(booking_service.get_booking(customer, running)).status == BookingStatus.CONFIRMED

    def test_pending_bookings_are_not_completed(self, booking_service, customer, booking_payload):
        yesterday = utc_now() - timedelta(days=1)
        booking = asyncio.run(booking_service.create_booking(
            customer, {**booking_payload, "booking_date": yesterday.isoformat()}
        ))

        assert asyncio.run(booking_service.complete_past_bookings()) == 0
        assert asyncio.run(booking_service.get_booking(customer, booking.id)).status == BookingStatus.PENDING

    def test_completed_bookings_counted_in_stats(self, booking_service, customer, booking_payload):
        self._confirmed(booking_service, customer, booking_payload, utc_now() - timedelta(days=2))
        asyncio.run(booking_service.complete_past_bookings())

        stats = asyncio.run(booking_service.get_user_stats(customer))

        assert stats.total == 1
        assert stats.completed == 1
        assert stats.upcoming == 0

    def test_booking_cancelled_after_query_stays_cancelled(
        self, booking_service, fake_db, customer, booking_payload
    ):
        """
        Test: Owner cancels between the completion query and the write
        Expected: Nothing completed, booking still cancelled
        """
        booking_id = self._confirmed(booking_service, customer, booking_payload, utc_now() - timedelta(days=1))
        stale = asyncio.run(fake_db.get_confirmed_bookings_before(utc_now()))
        asyncio.run(booking_service.cancel_booking(customer, booking_id))
        fake_db.get_confirmed_bookings_before = AsyncMock(return_value=stale)

        completed = asyncio.run(booking_service.complete_past_bookings())

        assert completed == 0
        assert fake_db.bookings[booking_id]["status"] == "cancelled"
