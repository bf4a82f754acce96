"""
ChargeSphere - User Service
Handles registration, login, profiles, passwords and favorites.
"""

from typing import Optional, Dict, Any, List, Union
import logging

from database.firebase_db import get_db, FirebaseDB
from models.user import (
    AuthResponse,
    Favorite,
    FavoriteCreate,
    LoginRequest,
    PasswordChange,
    ProfileUpdate,
    RegisterRequest,
    TokenPayload,
    UserProfile,
    UserRole,
)
from services.exceptions import (
    AuthenticationError,
    ConflictError,
    DuplicateActionError,
    NotFoundError,
    parse_payload,
)
from services.identity_service import IdentityService, get_identity_service
from utils.helpers import sanitize_string, utc_now

# Configure logging
logger = logging.getLogger(__name__)


class UserService:
    """Service class for user accounts and profiles."""

    def __init__(self, db: FirebaseDB = None, identity: IdentityService = None):
        self.db = db or get_db()
        self.identity = identity or get_identity_service()

    # ==================== AUTHENTICATION ====================

    async def register(self, request: Union[RegisterRequest, Dict[str, Any]]) -> AuthResponse:
        """
        Create the Firebase account and the Firestore profile.
        New accounts are always customers.
        """
        request = parse_payload(RegisterRequest, request)
        session = await self.identity.sign_up(request.email, request.password)
        name = sanitize_string(request.name)

        now = utc_now()
        profile = await self.db.upsert_user_profile(session["uid"], {
            "name": name,
            "email": request.email.lower(),
            "phone": request.phone,
            "role": UserRole.CUSTOMER.value,
            "favorites": [],
            "created_at": now,
        })

        try:
            self.identity.update_account(session["uid"], display_name=name)
        except Exception as e:
            logger.warning(f"Could not update display name: {e}")

        logger.info(f"User {session['uid']} registered")
        return AuthResponse(
            success=True,
            token=session["token"],
            refresh_token=session["refresh_token"],
            expires_in=session["expires_in"],
            user=self._to_profile(profile),
            message="Registration successful"
        )

    async def login(self, request: Union[LoginRequest, Dict[str, Any]]) -> AuthResponse:
        request = parse_payload(LoginRequest, request)
        session = await self.identity.sign_in(request.email, request.password)

        profile = await self.ensure_profile(TokenPayload(
            uid=session["uid"],
            email=session["email"],
            name=session["display_name"] or None,
        ))

        return AuthResponse(
            success=True,
            token=session["token"],
            refresh_token=session["refresh_token"],
            expires_in=session["expires_in"],
            user=profile,
            message="Login successful"
        )

    async def ensure_profile(self, token: TokenPayload) -> UserProfile:
        """Load the caller's profile, creating a customer profile on first sight."""
        data = await self.db.get_user_profile(token.uid)
        if data is None:
            email = token.email.lower() if token.email else None
            data = await self.db.upsert_user_profile(token.uid, {
                "name": token.name or (email.split("@")[0] if email else None),
                "email": email,
                "phone": None,
                "role": UserRole.CUSTOMER.value,
                "favorites": [],
                "created_at": utc_now(),
            })
            logger.info(f"Profile created for {token.uid}")
        return self._to_profile(data)

    # ==================== PROFILE ====================

    async def get_profile(self, user: UserProfile) -> UserProfile:
        data = await self.db.get_user_profile(user.uid)
        if data is None:
            raise NotFoundError("User not found")
        return self._to_profile(data)

    async def update_profile(
        self,
        user: UserProfile,
        updates: Union[ProfileUpdate, Dict[str, Any]]
    ) -> UserProfile:
        """
        Update name, phone and email.

        Raises:
            ConflictError: The new email is used by another account
        """
        updates = parse_payload(ProfileUpdate, updates)
        data = await self.db.get_user_profile(user.uid)
        if data is None:
            raise NotFoundError("User not found")

        changes = {}
        if updates.name:
            changes["name"] = sanitize_string(updates.name)
        if updates.phone:
            changes["phone"] = sanitize_string(updates.phone, max_length=30)

        if updates.email and updates.email.lower() != (data.get("email") or ""):
            email = updates.email.lower()
            owner = await self.db.find_user_by_email(email)
            if owner and owner["id"] != user.uid:
                raise ConflictError("Email already in use")
            self.identity.update_account(user.uid, email=email)
            changes["email"] = email

        if changes:
            data = await self.db.upsert_user_profile(user.uid, changes)
            logger.info(f"Profile {user.uid} updated: {', '.join(sorted(changes))}")

        return self._to_profile(data)

    async def change_password(
        self,
        user: UserProfile,
        request: Union[PasswordChange, Dict[str, Any]]
    ) -> None:
        """
        Raises:
            AuthenticationError: The current password is wrong
        """
        request = parse_payload(PasswordChange, request)
        if not user.email or not await self.identity.verify_password(user.email, request.current_password):
            raise AuthenticationError("Current password is incorrect")

        self.identity.update_account(user.uid, password=request.new_password)
        logger.info(f"Password changed for {user.uid}")

    # ==================== FAVORITES ====================

    async def get_favorites(self, user: UserProfile) -> List[Favorite]:
        profile = await self.get_profile(user)
        return profile.favorites

    async def add_favorite(
        self,
        user: UserProfile,
        request: Union[FavoriteCreate, Dict[str, Any]]
    ) -> List[Favorite]:
        """
        Raises:
            DuplicateActionError: The station is already a favorite
        """
        request = parse_payload(FavoriteCreate, request)
        result = await self.db.add_favorite(user.uid, {
            "station_id": request.station_id,
            "station_name": request.station_name,
            "added_at": utc_now(),
        })
        if result is None:
            raise NotFoundError("User not found")
        if not result["added"]:
            raise DuplicateActionError("Station already in favorites")

        return [Favorite(**fav) for fav in result["favorites"]]

    async def remove_favorite(self, user: UserProfile, station_id: str) -> List[Favorite]:
        favorites = await self.db.remove_favorite(user.uid, station_id)
        if favorites is None:
            raise NotFoundError("User not found")
        return [Favorite(**fav) for fav in favorites]

    # ==================== ADMIN ====================

    async def list_users(self) -> List[UserProfile]:
        return [self._to_profile(data) for data in await self.db.list_users()]

    @staticmethod
    def _to_profile(data: Dict[str, Any]) -> UserProfile:
        return UserProfile(
            uid=data["id"],
            name=data.get("name"),
            email=data.get("email"),
            phone=data.get("phone"),
            role=data.get("role") or UserRole.CUSTOMER.value,
            favorites=data.get("favorites") or [],
            member_since=data.get("created_at"),
        )


# Service instance
_user_service: Optional[UserService] = None


def get_user_service() -> UserService:
    """Get the UserService singleton instance."""
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service
