"""
ChargeSphere - Test Configuration & Fixtures
Reusable fixtures for all test modules.

Usage:
    pytest tests/ -v
    pytest tests/test_bookings.py -v
    pytest tests/ -v --tb=short
"""

import copy
import itertools
import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch, MagicMock, AsyncMock
from datetime import timedelta
from typing import Any, Dict, List, Optional
import os
import sys

from google.api_core.exceptions import AlreadyExists

# Add backend to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import Settings  # noqa: E402
from models.user import UserProfile, UserRole  # noqa: E402
from utils.helpers import utc_now  # noqa: E402


# ============================================================
# IN-MEMORY FIRESTORE GATEWAY
# ============================================================

class InMemoryDB:
    """
    Stand-in for database.firebase_db.FirebaseDB.
    Same async methods, backed by dicts instead of Firestore.
    """

    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.bookings: Dict[str, Dict[str, Any]] = {}
        self.reviews: Dict[str, Dict[str, Any]] = {}
        self._ids = itertools.count(1)
        self._order: Dict[str, int] = {}

    def _stamp(self, key: str):
        self._order[key] = next(self._ids)

    def _newest_first(self, records: List[Dict[str, Any]], collection: str) -> List[Dict[str, Any]]:
        return sorted(
            records,
            key=lambda r: (r.get("created_at") or utc_now(), self._order.get(f"{collection}/{r['id']}", 0)),
            reverse=True
        )

    @staticmethod
    def _copy(data: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(data) if data is not None else None

    # ----- users -----

    async def get_user_profile(self, user_id):
        return self._copy(self.users.get(user_id))

    async def upsert_user_profile(self, user_id, profile_data):
        existing = self.users.get(user_id, {"id": user_id})
        if user_id not in self.users:
            self._stamp(f"users/{user_id}")
        self.users[user_id] = {**existing, **copy.deepcopy(profile_data), "updated_at": utc_now()}
        return self._copy(self.users[user_id])

    async def find_user_by_email(self, email):
        for user in self.users.values():
            if user.get("email") == email.lower():
                return self._copy(user)
        return None

    async def get_users_by_ids(self, user_ids):
        return {uid: self._copy(self.users[uid]) for uid in user_ids if uid in self.users}

    async def list_users(self):
        return [self._copy(u) for u in self._newest_first(list(self.users.values()), "users")]

    async def count_users(self):
        return len(self.users)

    async def add_favorite(self, user_id, favorite):
        user = self.users.get(user_id)
        if user is None:
            return None
        favorites = user.setdefault("favorites", [])
        if any(fav["station_id"] == favorite["station_id"] for fav in favorites):
            return {"added": False, "favorites": copy.deepcopy(favorites)}
        favorites.append(copy.deepcopy(favorite))
        return {"added": True, "favorites": copy.deepcopy(favorites)}

    async def remove_favorite(self, user_id, station_id):
        user = self.users.get(user_id)
        if user is None:
            return None
        user["favorites"] = [fav for fav in user.get("favorites") or [] if fav["station_id"] != station_id]
        return copy.deepcopy(user["favorites"])

    # ----- bookings -----

    def _match_bookings(self, user_id=None, status=None, booking_date_from=None):
        return [
            b for b in self.bookings.values()
            if (not user_id or b["user_id"] == user_id)
            and (not status or b["status"] == status)
            and (not booking_date_from or b["booking_date"] >= booking_date_from)
        ]

    async def create_booking(self, booking_data):
        booking_id = f"booking-{next(self._ids)}"
        self.bookings[booking_id] = {**copy.deepcopy(booking_data), "id": booking_id}
        self._stamp(f"bookings/{booking_id}")
        return self._copy(self.bookings[booking_id])

    async def get_booking(self, booking_id):
        return self._copy(self.bookings.get(booking_id))

    async def update_booking(self, booking_id, updates):
        if booking_id not in self.bookings:
            return None
        self.bookings[booking_id].update({**copy.deepcopy(updates), "updated_at": utc_now()})
        return self._copy(self.bookings[booking_id])

    async def list_bookings(self, user_id=None, status=None, offset=0, limit=10):
        records = self._newest_first(self._match_bookings(user_id, status), "bookings")
        return [self._copy(b) for b in records[offset:offset + limit]]

    async def list_user_bookings(self, user_id):
        return [self._copy(b) for b in self._match_bookings(user_id=user_id)]

    async def count_bookings(self, user_id=None, status=None, booking_date_from=None):
        return len(self._match_bookings(user_id, status, booking_date_from))

    async def set_booking_status_if(self, booking_id, expected, target):
        booking = self.bookings.get(booking_id)
        if booking is None or booking["status"] != expected:
            return None
        booking.update({"status": target, "updated_at": utc_now()})
        return self._copy(booking)

    async def get_confirmed_bookings_before(self, cutoff):
        return [
            self._copy(b) for b in self.bookings.values()
            if b["status"] == "confirmed" and b["booking_date"] <= cutoff
        ]

    # ----- reviews -----

    async def get_review(self, review_id):
        return self._copy(self.reviews.get(review_id))

    async def create_review(self, review_id, review_data):
        if review_id in self.reviews:
            raise AlreadyExists(f"Document already exists: reviews/{review_id}")
        self.reviews[review_id] = {**copy.deepcopy(review_data), "id": review_id}
        self._stamp(f"reviews/{review_id}")
        return self._copy(self.reviews[review_id])

    async def update_review(self, review_id, updates):
        if review_id not in self.reviews:
            return None
        self.reviews[review_id].update({**copy.deepcopy(updates), "updated_at": utc_now()})
        return self._copy(self.reviews[review_id])

    async def delete_review(self, review_id):
        self.reviews.pop(review_id, None)
        return True

    def _station_reviews(self, station_id):
        return [r for r in self.reviews.values() if r["station"]["id"] == station_id]

    async def list_station_reviews(self, station_id, sort="recent", offset=0, limit=10):
        records = self._newest_first(self._station_reviews(station_id), "reviews")
        if sort == "highest":
            records = sorted(records, key=lambda r: r["rating"], reverse=True)
        elif sort == "lowest":
            records = sorted(records, key=lambda r: r["rating"])
        return [self._copy(r) for r in records[offset:offset + limit]]

    async def get_station_ratings(self, station_id):
        return [r["rating"] for r in self._station_reviews(station_id)]

    async def list_user_reviews(self, user_id):
        records = [r for r in self.reviews.values() if r["user_id"] == user_id]
        return [self._copy(r) for r in self._newest_first(records, "reviews")]

    async def add_helpful_vote(self, review_id, user_id):
        review = self.reviews.get(review_id)
        if review is None:
            return None
        helpful_by = review.setdefault("helpful_by", [])
        if user_id in helpful_by:
            return {"added": False, "helpful_count": len(helpful_by)}
        helpful_by.append(user_id)
        review["helpful_count"] = len(helpful_by)
        return {"added": True, "helpful_count": len(helpful_by)}


# ============================================================
# DATABASE & SETTINGS FIXTURES
# ============================================================

@pytest.fixture
def fake_db() -> InMemoryDB:
    """Empty in-memory gateway."""
    return InMemoryDB()


@pytest.fixture
def settings() -> Settings:
    """Default settings: strict booking transitions."""
    return Settings(STRICT_BOOKING_TRANSITIONS=True, FIREBASE_API_KEY="test-api-key")


@pytest.fixture
def permissive_settings() -> Settings:
    """Settings reproducing the permissive legacy status handling."""
    return Settings(STRICT_BOOKING_TRANSITIONS=False, FIREBASE_API_KEY="test-api-key")


# ============================================================
# USER FIXTURES
# ============================================================

async def _seed(db: InMemoryDB, profile: UserProfile):
    await db.upsert_user_profile(profile.uid, {
        "name": profile.name,
        "email": profile.email,
        "phone": profile.phone,
        "role": profile.role.value,
        "favorites": [],
        "created_at": utc_now() - timedelta(days=30),
    })


def _seed_user(db: InMemoryDB, profile: UserProfile) -> UserProfile:
    import asyncio
    asyncio.run(_seed(db, profile))
    return profile


@pytest.fixture
def customer(fake_db) -> UserProfile:
    """Regular customer, stored in the fake database."""
    return _seed_user(fake_db, UserProfile(
        uid="user-a",
        name="Alice Driver",
        email="alice@example.com",
        phone="555-0101",
        role=UserRole.CUSTOMER,
    ))


@pytest.fixture
def other_customer(fake_db) -> UserProfile:
    """A second customer, for ownership checks."""
    return _seed_user(fake_db, UserProfile(
        uid="user-b",
        name="Bob Rider",
        email="bob@example.com",
        role=UserRole.CUSTOMER,
    ))


@pytest.fixture
def admin(fake_db) -> UserProfile:
    """Admin profile."""
    return _seed_user(fake_db, UserProfile(
        uid="admin-1",
        name="Ops Admin",
        email="admin@chargesphere.com",
        role=UserRole.ADMIN,
    ))


# ============================================================
# SERVICE FIXTURES
# ============================================================

@pytest.fixture
def mock_identity():
    """Identity service with Firebase calls mocked out."""
    mock = MagicMock()
    mock.sign_up = AsyncMock(return_value={
        "token": "id-token-new",
        "refresh_token": "refresh-new",
        "expires_in": 3600,
        "uid": "user-new",
        "email": "new@example.com",
        "display_name": "",
    })
    mock.sign_in = AsyncMock(return_value={
        "token": "id-token-a",
        "refresh_token": "refresh-a",
        "expires_in": 3600,
        "uid": "user-a",
        "email": "alice@example.com",
        "display_name": "Alice Driver",
    })
    mock.refresh = AsyncMock(return_value={
        "token": "id-token-refreshed",
        "refresh_token": "refresh-2",
        "expires_in": 3600,
        "uid": "user-a",
    })
    mock.verify_password = AsyncMock(return_value=True)
    mock.update_account = MagicMock(return_value=None)
    return mock


@pytest.fixture
def booking_service(fake_db, settings):
    from services.booking_service import BookingService
    return BookingService(db=fake_db, settings=settings)


@pytest.fixture
def review_service(fake_db):
    from services.review_service import ReviewService
    return ReviewService(db=fake_db)


@pytest.fixture
def user_service(fake_db, mock_identity):
    from services.user_service import UserService
    return UserService(db=fake_db, identity=mock_identity)


# ============================================================
# TEST CLIENT FIXTURES
# ============================================================

class AuthSwitch:
    """Choose which user the API sees as authenticated."""

    def __init__(self, app):
        self.app = app

    def login(self, user: UserProfile):
        from security.firebase_auth import get_current_user, get_optional_user
        self.app.dependency_overrides[get_current_user] = lambda: user
        self.app.dependency_overrides[get_optional_user] = lambda: user

    def logout(self):
        from security.firebase_auth import get_current_user, get_optional_user
        self.app.dependency_overrides.pop(get_current_user, None)
        self.app.dependency_overrides.pop(get_optional_user, None)


@pytest.fixture
def app(booking_service, review_service, user_service, mock_identity):
    """Application with every service bound to the fake database."""
    with patch("main.init_firebase"), patch("main.start_scheduler"), patch("main.stop_scheduler"):
        from main import app as fastapi_app
        from services.booking_service import get_booking_service
        from services.review_service import get_review_service
        from services.user_service import get_user_service
        from services.identity_service import get_identity_service

        fastapi_app.dependency_overrides[get_booking_service] = lambda: booking_service
        fastapi_app.dependency_overrides[get_review_service] = lambda: review_service
        fastapi_app.dependency_overrides[get_user_service] = lambda: user_service
        fastapi_app.dependency_overrides[get_identity_service] = lambda: mock_identity

        yield fastapi_app

        fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """FastAPI TestClient with mocked dependencies."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth(app) -> AuthSwitch:
    return AuthSwitch(app)


# ============================================================
# SAMPLE TEST DATA
# ============================================================

@pytest.fixture
def booking_payload() -> dict:
    """Valid booking request for a charging slot tomorrow."""
    tomorrow = (utc_now() + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
    return {
        "station": {
            "id": 1,
            "name": "Downtown Supercharger",
            "address": "100 Main St",
            "lat": 37.7749,
            "lng": -122.4194,
        },
        "vehicle": {"type": "EV", "model": "Model 3"},
        "booking_date": tomorrow.isoformat(),
        "start_time": "14:30",
        "duration": 15,
        "charger_type": "DC Fast",
        "estimated_cost": 12.5,
    }


@pytest.fixture
def review_payload() -> dict:
    """Valid review request for station S1."""
    return {
        "station": {"id": "S1", "name": "Station One"},
        "rating": 5,
        "review_text": "  Fast and clean.  ",
        "issues": [],
    }
