"""
ChargeSphere - Booking Service
Handles the booking lifecycle: creation, ownership checks, admin approval
and the pending -> confirmed/cancelled -> completed state machine.
"""

from collections import Counter
from typing import Optional, Dict, Any, List, Union
from datetime import datetime
import logging

from database.firebase_db import get_db, FirebaseDB
from models.booking import (
    AdminStats,
    Booking,
    BookingCounts,
    BookingCreate,
    BookingListResponse,
    BookingStats,
    BookingStatus,
    BookingUpdate,
    PaymentStatus,
    can_transition,
)
from models.user import UserProfile, UserSummary
from services.exceptions import (
    AuthorizationError,
    InvalidTransitionError,
    NotFoundError,
    parse_payload,
)
from config import Settings, get_settings
from utils.helpers import (
    booking_end_time,
    ensure_utc,
    format_duration,
    page_offset,
    total_pages,
    utc_now,
)

# Configure logging
logger = logging.getLogger(__name__)


class BookingService:
    """
    Service class for booking operations.

    Owner and admin status changes go through _set_status so the transition
    policy applies to both. The scheduler completes bookings with a
    transactional confirmed-to-completed check.
    With strict transitions disabled every status change is accepted.
    """

    def __init__(self, db: FirebaseDB = None, settings: Settings = None):
        self.db = db or get_db()
        self.settings = settings or get_settings()

    # ==================== OWNER OPERATIONS ====================

    async def create_booking(
        self,
        user: UserProfile,
        request: Union[BookingCreate, Dict[str, Any]]
    ) -> Booking:
        """
        Create a booking awaiting admin approval.

        Args:
            user: Authenticated user making the booking
            request: Booking details (validated as BookingCreate)

        Returns:
            Booking: The stored booking, always in the pending state

        Raises:
            ValidationError: One entry per invalid field
        """
        request = parse_payload(BookingCreate, request)
        now = utc_now()

        booking_data = {
            "user_id": user.uid,
            "station": request.station.model_dump(),
            "vehicle": request.vehicle.model_dump(),
            "booking_date": ensure_utc(request.booking_date),
            "start_time": request.start_time,
            "duration": request.duration,
            "charger_type": request.charger_type,
            "estimated_cost": request.estimated_cost,
            "notes": request.notes,
            "status": BookingStatus.PENDING.value,
            "payment_status": PaymentStatus.PENDING.value,
            "created_at": now,
            "updated_at": now,
        }

        stored = await self.db.create_booking(booking_data)

        logger.info(
            f"Booking created: id={stored['id']}, user={user.uid}, "
            f"station={request.station.name}, duration={format_duration(request.duration)}"
        )
        return self._to_booking(stored)

    async def get_booking(self, user: UserProfile, booking_id: str) -> Booking:
        data = await self._get_owned_booking(user, booking_id, action="view")
        return self._to_booking(data)

    async def list_bookings(
        self,
        user: UserProfile,
        status: Optional[BookingStatus] = None,
        page: int = 1,
        limit: int = 10
    ) -> BookingListResponse:
        """List the user's bookings, newest first."""
        return await self._list(user_id=user.uid, status=status, page=page, limit=limit)

    async def update_booking(
        self,
        user: UserProfile,
        booking_id: str,
        updates: Union[BookingUpdate, Dict[str, Any]]
    ) -> Booking:
        """
        Update the schedule, notes or status of an owned booking.
        Fields that are omitted or null keep their stored value.
        """
        updates = parse_payload(BookingUpdate, updates)
        data = await self._get_owned_booking(user, booking_id, action="update")

        changes = {
            field: value
            for field, value in updates.model_dump(exclude_unset=True).items()
            if value is not None
        }
        if "booking_date" in changes:
            changes["booking_date"] = ensure_utc(changes["booking_date"])

        target = changes.pop("status", None)
        if target is not None:
            target = BookingStatus(target)
            current = self._status_of(data)
            self._check_owner_status(current, target)
            self._ensure_transition(current, target)

        if changes:
            data = await self.db.update_booking(booking_id, changes)
        if target is not None:
            data = await self._set_status(data, target)

        logger.info(f"Booking {booking_id} updated by owner {user.uid}")
        return self._to_booking(data)

    async def cancel_booking(self, user: UserProfile, booking_id: str) -> Booking:
        """Cancel an owned booking. The document is kept."""
        data = await self._get_owned_booking(user, booking_id, action="cancel")
        data = await self._set_status(data, BookingStatus.CANCELLED)

        logger.info(f"Booking {booking_id} cancelled by owner {user.uid}")
        return self._to_booking(data)

    async def get_user_stats(self, user: UserProfile) -> BookingStats:
        """Total, completed and upcoming (confirmed, not yet past) bookings."""
        total = await self.db.count_bookings(user_id=user.uid)
        completed = await self.db.count_bookings(
            user_id=user.uid,
            status=BookingStatus.COMPLETED.value
        )
        upcoming = await self.db.count_bookings(
            user_id=user.uid,
            status=BookingStatus.CONFIRMED.value,
            booking_date_from=utc_now()
        )
        return BookingStats(total=total, completed=completed, upcoming=upcoming)

    async def get_visit_counts(self, user_id: str) -> Dict[str, int]:
        """Number of non-cancelled bookings per station id."""
        bookings = await self.db.list_user_bookings(user_id)
        return dict(Counter(
            str(booking["station"]["id"])
            for booking in bookings
            if booking.get("status") != BookingStatus.CANCELLED.value
            and (booking.get("station") or {}).get("id")
        ))

    # ==================== ADMIN OPERATIONS ====================

    async def list_all_bookings(
        self,
        status: Optional[BookingStatus] = None,
        page: int = 1,
        limit: int = 20
    ) -> BookingListResponse:
        """List every booking with owner contact details attached."""
        return await self._list(status=status, page=page, limit=limit, with_owners=True)

    async def approve_booking(self, booking_id: str, admin: Optional[UserProfile] = None) -> Booking:
        return await self._admin_set_status(booking_id, BookingStatus.CONFIRMED, admin, "approved")

    async def reject_booking(self, booking_id: str, admin: Optional[UserProfile] = None) -> Booking:
        return await self._admin_set_status(booking_id, BookingStatus.CANCELLED, admin, "rejected")

    async def get_admin_stats(self) -> AdminStats:
        users = await self.db.count_users()
        counts = BookingCounts(
            total=await self.db.count_bookings(),
            pending=await self.db.count_bookings(status=BookingStatus.PENDING.value),
            confirmed=await self.db.count_bookings(status=BookingStatus.CONFIRMED.value),
            completed=await self.db.count_bookings(status=BookingStatus.COMPLETED.value),
        )
        return AdminStats(users=users, bookings=counts)

    # ==================== SCHEDULED ====================

    async def complete_past_bookings(self, now: Optional[datetime] = None) -> int:
        """
        Mark confirmed bookings whose window has ended as completed.
        Called by the background scheduler.

        Returns:
            int: Number of bookings completed
        """
        now = ensure_utc(now) if now else utc_now()
        candidates = await self.db.get_confirmed_bookings_before(now)

        count = 0
        for data in candidates:
            ends_at = booking_end_time(data["booking_date"], data.get("start_time"), data.get("duration", 0))
            if ends_at > now:
                continue

            stored = await self.db.set_booking_status_if(
                data["id"],
                expected=BookingStatus.CONFIRMED.value,
                target=BookingStatus.COMPLETED.value
            )
            if stored is None:
                logger.info(f"Booking {data['id']} changed before completion, skipped")
                continue

            count += 1
            logger.info(f"Booking {data['id']} completed (ended {ends_at.isoformat()})")

        return count

    # ==================== INTERNALS ====================

    async def _list(
        self,
        user_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        page: int = 1,
        limit: int = 10,
        with_owners: bool = False
    ) -> BookingListResponse:
        status_value = BookingStatus(status).value if status else None

        records = await self.db.list_bookings(
            user_id=user_id,
            status=status_value,
            offset=page_offset(page, limit),
            limit=limit
        )
        total = await self.db.count_bookings(user_id=user_id, status=status_value)

        if with_owners:
            bookings = await self._with_owners(records)
        else:
            bookings = [self._to_booking(record) for record in records]

        return BookingListResponse(
            bookings=bookings,
            total_pages=total_pages(total, limit),
            current_page=page,
            total=total
        )

    async def _get_owned_booking(self, user: UserProfile, booking_id: str, action: str) -> Dict[str, Any]:
        """Existence is checked before ownership."""
        data = await self.db.get_booking(booking_id)
        if not data:
            raise NotFoundError("Booking not found")

        if data.get("user_id") != user.uid:
            logger.warning(f"User {user.uid} attempted to {action} booking {booking_id}")
            raise AuthorizationError(f"Not authorized to {action} this booking")

        return data

    async def _admin_set_status(
        self,
        booking_id: str,
        target: BookingStatus,
        admin: Optional[UserProfile],
        verb: str
    ) -> Booking:
        data = await self.db.get_booking(booking_id)
        if not data:
            raise NotFoundError("Booking not found")

        data = await self._set_status(data, target)
        logger.info(f"Booking {booking_id} {verb} by admin {admin.uid if admin else 'system'}")

        return (await self._with_owners([data]))[0]

    async def _set_status(self, data: Dict[str, Any], target: BookingStatus) -> Dict[str, Any]:
        current = self._status_of(data)
        self._ensure_transition(current, target)

        if current == target:
            return data

        return await self.db.update_booking(data["id"], {"status": target.value})

    def _ensure_transition(self, current: BookingStatus, target: BookingStatus):
        if self.settings.strict_booking_transitions and not can_transition(current, target):
            raise InvalidTransitionError(
                f"Cannot change a {current.value} booking to {target.value}"
            )

    def _check_owner_status(self, current: BookingStatus, target: BookingStatus):
        """Owners may only cancel; confirming or completing is reserved to admins."""
        if not self.settings.strict_booking_transitions:
            return
        if target not in (current, BookingStatus.CANCELLED):
            raise AuthorizationError(f"Only administrators can set a booking to {target.value}")

    @staticmethod
    def _status_of(data: Dict[str, Any]) -> BookingStatus:
        return BookingStatus(data.get("status") or BookingStatus.PENDING.value)

    async def _with_owners(self, records: List[Dict[str, Any]]) -> List[Booking]:
        owners = await self.db.get_users_by_ids([record["user_id"] for record in records])

        bookings = []
        for record in records:
            owner = owners.get(record["user_id"])
            summary = None
            if owner:
                summary = UserSummary(
                    id=record["user_id"],
                    name=owner.get("name"),
                    email=owner.get("email"),
                    phone=owner.get("phone"),
                )
            bookings.append(self._to_booking(record, owner=summary))
        return bookings

    @staticmethod
    def _to_booking(data: Dict[str, Any], owner: Optional[UserSummary] = None) -> Booking:
        """Convert a Firestore document to the Booking model."""
        booking = Booking(**data)
        if owner is not None:
            booking.user = owner
        return booking


# Service instance
_booking_service: Optional[BookingService] = None


def get_booking_service() -> BookingService:
    """Get the BookingService singleton instance."""
    global _booking_service
    if _booking_service is None:
        _booking_service = BookingService()
    return _booking_service
