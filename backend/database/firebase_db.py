"""
ChargeSphere - Firebase Database Module
Firestore operations for users, bookings and reviews.
"""

import firebase_admin
from firebase_admin import credentials, firestore
from google.cloud.firestore_v1 import FieldFilter
from typing import Optional, List, Dict, Any
from datetime import datetime
import logging

from config import get_settings
from utils.helpers import utc_now

# Configure logging
logger = logging.getLogger(__name__)

# Global Firebase app instance
_firebase_app: Optional[firebase_admin.App] = None
_firestore_client = None


def init_firebase() -> firebase_admin.App:
    """
    Initialize the Firebase Admin SDK.
    Called once at application startup.
    """
    global _firebase_app, _firestore_client

    if _firebase_app is not None:
        logger.info("Firebase already initialized")
        return _firebase_app

    try:
        settings = get_settings()
        cred = credentials.Certificate(settings.get_firebase_credentials())

        _firebase_app = firebase_admin.initialize_app(cred)
        _firestore_client = firestore.client()
        logger.info("Firebase initialized")

        return _firebase_app

    except Exception as e:
        logger.error(f"Firebase initialization failed: {e}")
        raise


def get_firestore_client():
    """Get the Firestore client instance."""
    global _firestore_client
    if _firestore_client is None:
        init_firebase()
    return _firestore_client


def _to_dict(doc) -> Dict[str, Any]:
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return data


def _count(query) -> int:
    """Run a server-side COUNT aggregation."""
    result = query.count(alias="total").get()
    return int(result[0][0].value)


class FirebaseDB:
    """
    Firestore database gateway.
    Provides the CRUD and query operations used by the services.
    """

    COLLECTION_USERS = "users"
    COLLECTION_BOOKINGS = "bookings"
    COLLECTION_REVIEWS = "reviews"

    def __init__(self, client=None):
        self.db = client or get_firestore_client()

    # ==================== USERS ====================

    async def get_user_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Get a user profile by uid."""
        try:
            doc = self.db.collection(self.COLLECTION_USERS).document(user_id).get()

            if doc.exists:
                return _to_dict(doc)
            return None
        except Exception as e:
            logger.error(f"Error fetching user {user_id}: {e}")
            raise

    async def upsert_user_profile(self, user_id: str, profile_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create or merge-update a user profile."""
        try:
            profile_data = {**profile_data, "updated_at": utc_now()}

            doc_ref = self.db.collection(self.COLLECTION_USERS).document(user_id)
            doc_ref.set(profile_data, merge=True)

            return _to_dict(doc_ref.get())
        except Exception as e:
            logger.error(f"Error updating user {user_id}: {e}")
            raise

    async def find_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """Find the profile registered with an email address."""
        try:
            query = self.db.collection(self.COLLECTION_USERS).where(
                filter=FieldFilter("email", "==", email.lower())
            ).limit(1)

            for doc in query.stream():
                return _to_dict(doc)
            return None
        except Exception as e:
            logger.error(f"Error looking up user by email: {e}")
            raise

    async def get_users_by_ids(self, user_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        """Batch-fetch profiles, keyed by uid. Missing users are left out."""
        if not user_ids:
            return {}
        try:
            collection = self.db.collection(self.COLLECTION_USERS)
            refs = [collection.document(uid) for uid in dict.fromkeys(user_ids)]

            users = {}
            for doc in self.db.get_all(refs):
                if doc.exists:
                    users[doc.id] = _to_dict(doc)
            return users
        except Exception as e:
            logger.error(f"Error batch-fetching users: {e}")
            raise

    async def list_users(self) -> List[Dict[str, Any]]:
        """All user profiles, newest first."""
        try:
            query = self.db.collection(self.COLLECTION_USERS).order_by(
                "created_at", direction=firestore.Query.DESCENDING
            )
            return [_to_dict(doc) for doc in query.stream()]
        except Exception as e:
            logger.error(f"Error listing users: {e}")
            raise

    async def count_users(self) -> int:
        try:
            return _count(self.db.collection(self.COLLECTION_USERS))
        except Exception as e:
            logger.error(f"Error counting users: {e}")
            raise

    async def add_favorite(self, user_id: str, favorite: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Append a station to the user's favorites.
        Uses a Firestore transaction for the read-modify-write.

        Returns:
            None if the user does not exist, otherwise
            {"added": bool, "favorites": [...]}
        """
        transaction = self.db.transaction()
        user_ref = self.db.collection(self.COLLECTION_USERS).document(user_id)

        @firestore.transactional
        def add_in_transaction(transaction) -> Optional[Dict[str, Any]]:
            snapshot = user_ref.get(transaction=transaction)
            if not snapshot.exists:
                return None

            favorites = list((snapshot.to_dict() or {}).get("favorites") or [])
            if any(fav.get("station_id") == favorite["station_id"] for fav in favorites):
                return {"added": False, "favorites": favorites}

            favorites.append(favorite)
            transaction.update(user_ref, {"favorites": favorites, "updated_at": utc_now()})
            return {"added": True, "favorites": favorites}

        try:
            return add_in_transaction(transaction)
        except Exception as e:
            logger.error(f"Error adding favorite for {user_id}: {e}")
            raise

    async def remove_favorite(self, user_id: str, station_id: str) -> Optional[List[Dict[str, Any]]]:
        """Remove a station from favorites. Returns the remaining favorites."""
        transaction = self.db.transaction()
        user_ref = self.db.collection(self.COLLECTION_USERS).document(user_id)

        @firestore.transactional
        def remove_in_transaction(transaction) -> Optional[List[Dict[str, Any]]]:
            snapshot = user_ref.get(transaction=transaction)
            if not snapshot.exists:
                return None

            favorites = [
                fav for fav in (snapshot.to_dict() or {}).get("favorites") or []
                if fav.get("station_id") != station_id
            ]
            transaction.update(user_ref, {"favorites": favorites, "updated_at": utc_now()})
            return favorites

        try:
            return remove_in_transaction(transaction)
        except Exception as e:
            logger.error(f"Error removing favorite for {user_id}: {e}")
            raise

    # ==================== BOOKINGS ====================

    def _bookings_query(
        self,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        booking_date_from: Optional[datetime] = None,
    ):
        query = self.db.collection(self.COLLECTION_BOOKINGS)
        if user_id:
            query = query.where(filter=FieldFilter("user_id", "==", user_id))
        if status:
            query = query.where(filter=FieldFilter("status", "==", status))
        if booking_date_from:
            query = query.where(filter=FieldFilter("booking_date", ">=", booking_date_from))
        return query

    async def create_booking(self, booking_data: Dict[str, Any]) -> Dict[str, Any]:
        """Persist a new booking with an auto-generated id."""
        try:
            doc_ref = self.db.collection(self.COLLECTION_BOOKINGS).document()
            doc_ref.set(booking_data)
            logger.info(f"Booking {doc_ref.id} saved")
            return {**booking_data, "id": doc_ref.id}
        except Exception as e:
            logger.error(f"Error saving booking: {e}")
            raise

    async def get_booking(self, booking_id: str) -> Optional[Dict[str, Any]]:
        try:
            doc = self.db.collection(self.COLLECTION_BOOKINGS).document(booking_id).get()
            if doc.exists:
                return _to_dict(doc)
            return None
        except Exception as e:
            logger.error(f"Error fetching booking {booking_id}: {e}")
            raise

    async def update_booking(self, booking_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply a partial update and return the stored booking."""
        try:
            doc_ref = self.db.collection(self.COLLECTION_BOOKINGS).document(booking_id)
            doc_ref.update({**updates, "updated_at": utc_now()})
            doc = doc_ref.get()
            return _to_dict(doc) if doc.exists else None
        except Exception as e:
            logger.error(f"Error updating booking {booking_id}: {e}")
            raise

    async def list_bookings(
        self,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> List[Dict[str, Any]]:
        """Page of bookings, newest first."""
        try:
            query = self._bookings_query(user_id=user_id, status=status).order_by(
                "created_at", direction=firestore.Query.DESCENDING
            )
            docs = query.offset(offset).limit(limit).stream()
            return [_to_dict(doc) for doc in docs]
        except Exception as e:
            logger.error(f"Error listing bookings: {e}")
            raise

    async def list_user_bookings(self, user_id: str) -> List[Dict[str, Any]]:
        """Every booking of a user, unpaginated."""
        try:
            docs = self._bookings_query(user_id=user_id).stream()
            return [_to_dict(doc) for doc in docs]
        except Exception as e:
            logger.error(f"Error listing bookings of {user_id}: {e}")
            raise

    async def count_bookings(
        self,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        booking_date_from: Optional[datetime] = None,
    ) -> int:
        try:
            return _count(self._bookings_query(
                user_id=user_id,
                status=status,
                booking_date_from=booking_date_from,
            ))
        except Exception as e:
            logger.error(f"Error counting bookings: {e}")
            raise

    async def get_confirmed_bookings_before(self, cutoff: datetime) -> List[Dict[str, Any]]:
        """Confirmed bookings whose booking date is at or before the cutoff."""
        try:
            query = self.db.collection(self.COLLECTION_BOOKINGS).where(
                filter=FieldFilter("status", "==", "confirmed")
            ).where(
                filter=FieldFilter("booking_date", "<=", cutoff)
            )
            return [_to_dict(doc) for doc in query.stream()]
        except Exception as e:
            logger.error(f"Error fetching bookings due for completion: {e}")
            raise

    async def set_booking_status_if(
        self,
        booking_id: str,
        expected: str,
        target: str
    ) -> Optional[Dict[str, Any]]:
        """
        Move a booking from `expected` to `target` inside a transaction.

        Returns:
            The stored booking, or None if it is missing or no longer
            in the expected status
        """
        transaction = self.db.transaction()
        booking_ref = self.db.collection(self.COLLECTION_BOOKINGS).document(booking_id)

        @firestore.transactional
        def set_in_transaction(transaction) -> Optional[Dict[str, Any]]:
            snapshot = booking_ref.get(transaction=transaction)
            if not snapshot.exists:
                return None

            data = _to_dict(snapshot)
            if data.get("status") != expected:
                return None

            updates = {"status": target, "updated_at": utc_now()}
            transaction.update(booking_ref, updates)
            return {**data, **updates}

        try:
            return set_in_transaction(transaction)
        except Exception as e:
            logger.error(f"Error setting status of booking {booking_id}: {e}")
            raise

    # ==================== REVIEWS ====================

    async def get_review(self, review_id: str) -> Optional[Dict[str, Any]]:
        try:
            doc = self.db.collection(self.COLLECTION_REVIEWS).document(review_id).get()
            if doc.exists:
                return _to_dict(doc)
            return None
        except Exception as e:
            logger.error(f"Error fetching review {review_id}: {e}")
            raise

    async def create_review(self, review_id: str, review_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a review under its deterministic id.

        Raises:
            google.api_core.exceptions.AlreadyExists: the (user, station)
            pair already has a review
        """
        doc_ref = self.db.collection(self.COLLECTION_REVIEWS).document(review_id)
        doc_ref.create(review_data)
        logger.info(f"Review {review_id} saved")
        return {**review_data, "id": review_id}

    async def update_review(self, review_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            doc_ref = self.db.collection(self.COLLECTION_REVIEWS).document(review_id)
            doc_ref.update({**updates, "updated_at": utc_now()})
            doc = doc_ref.get()
            return _to_dict(doc) if doc.exists else None
        except Exception as e:
            logger.error(f"Error updating review {review_id}: {e}")
            raise

    async def delete_review(self, review_id: str) -> bool:
        try:
            self.db.collection(self.COLLECTION_REVIEWS).document(review_id).delete()
            logger.info(f"Review {review_id} deleted")
            return True
        except Exception as e:
            logger.error(f"Error deleting review {review_id}: {e}")
            raise

    async def list_station_reviews(
        self,
        station_id: str,
        sort: str = "recent",
        offset: int = 0,
        limit: int = 10,
    ) -> List[Dict[str, Any]]:
        """Page of a station's reviews. Rating sorts tie-break newest first."""
        try:
            query = self.db.collection(self.COLLECTION_REVIEWS).where(
                filter=FieldFilter("station.id", "==", station_id)
            )
            if sort == "highest":
                query = query.order_by("rating", direction=firestore.Query.DESCENDING)
            elif sort == "lowest":
                query = query.order_by("rating", direction=firestore.Query.ASCENDING)
            query = query.order_by("created_at", direction=firestore.Query.DESCENDING)

            docs = query.offset(offset).limit(limit).stream()
            return [_to_dict(doc) for doc in docs]
        except Exception as e:
            logger.error(f"Error listing reviews of station {station_id}: {e}")
            raise

    async def get_station_ratings(self, station_id: str) -> List[int]:
        """Every rating left on a station."""
        try:
            query = self.db.collection(self.COLLECTION_REVIEWS).where(
                filter=FieldFilter("station.id", "==", station_id)
            ).select(["rating"])
            return [(doc.to_dict() or {}).get("rating") for doc in query.stream()]
        except Exception as e:
            logger.error(f"Error fetching ratings of station {station_id}: {e}")
            raise

    async def list_user_reviews(self, user_id: str) -> List[Dict[str, Any]]:
        """All reviews written by a user, newest first."""
        try:
            query = self.db.collection(self.COLLECTION_REVIEWS).where(
                filter=FieldFilter("user_id", "==", user_id)
            ).order_by("created_at", direction=firestore.Query.DESCENDING)
            return [_to_dict(doc) for doc in query.stream()]
        except Exception as e:
            logger.error(f"Error listing reviews of {user_id}: {e}")
            raise

    async def add_helpful_vote(self, review_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Record a helpful vote inside a transaction.

        Returns:
            None if the review does not exist, otherwise
            {"added": bool, "helpful_count": int}
        """
        transaction = self.db.transaction()
        review_ref = self.db.collection(self.COLLECTION_REVIEWS).document(review_id)

        @firestore.transactional
        def vote_in_transaction(transaction) -> Optional[Dict[str, Any]]:
            snapshot = review_ref.get(transaction=transaction)
            if not snapshot.exists:
                return None

            helpful_by = list((snapshot.to_dict() or {}).get("helpful_by") or [])
            if user_id in helpful_by:
                return {"added": False, "helpful_count": len(helpful_by)}

            helpful_by.append(user_id)
            transaction.update(review_ref, {
                "helpful_by": helpful_by,
                "helpful_count": len(helpful_by),
                "updated_at": utc_now(),
            })
            return {"added": True, "helpful_count": len(helpful_by)}

        try:
            return vote_in_transaction(transaction)
        except Exception as e:
            logger.error(f"Error recording helpful vote on {review_id}: {e}")
            raise


# Singleton instance
_db_instance: Optional[FirebaseDB] = None


def get_db() -> FirebaseDB:
    """Get the FirebaseDB singleton instance."""
    global _db_instance
    if _db_instance is None:
        _db_instance = FirebaseDB()
    return _db_instance
