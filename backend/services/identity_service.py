"""
ChargeSphere - Identity Service
Talks to Firebase Authentication: the Identity Toolkit REST API for
credential checks and the Admin SDK for account updates.
Passwords are hashed and stored by Firebase, never by this backend.
"""

from typing import Optional, Dict, Any
import logging

import httpx
from firebase_admin import auth

from config import Settings, get_settings
from services.exceptions import (
    AuthenticationError,
    ConflictError,
    ServerError,
    ValidationError,
)

# Configure logging
logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1/accounts"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1/token"

INVALID_CREDENTIAL_CODES = ("EMAIL_NOT_FOUND", "INVALID_PASSWORD", "INVALID_LOGIN_CREDENTIALS")


class IdentityService:
    """Wrapper around Firebase Authentication."""

    def __init__(self, settings: Settings = None):
        self.settings = settings or get_settings()

    async def _post(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST to a Firebase REST endpoint. Failed calls carry `_error_code`."""
        if not self.settings.firebase_api_key:
            logger.error("FIREBASE_API_KEY is not configured")
            raise ServerError("Authentication service is not configured")

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    url,
                    params={"key": self.settings.firebase_api_key},
                    json=payload,
                    timeout=self.settings.identity_request_timeout_seconds
                )
        except httpx.HTTPError as e:
            logger.error(f"Firebase REST call failed: {e}")
            raise ServerError("Authentication service unavailable") from e

        data = response.json()
        if response.status_code != 200:
            data["_error_code"] = data.get("error", {}).get("message", "UNKNOWN")
        return data

    async def sign_up(self, email: str, password: str) -> Dict[str, Any]:
        """
        Create a Firebase account.

        Raises:
            ConflictError: The email is already registered
            ValidationError: Firebase rejected the password
        """
        data = await self._post(f"{IDENTITY_TOOLKIT_URL}:signUp", {
            "email": email,
            "password": password,
            "returnSecureToken": True
        })

        error_code = data.get("_error_code")
        if error_code:
            if "EMAIL_EXISTS" in error_code:
                raise ConflictError("An account already exists with this email")
            if "WEAK_PASSWORD" in error_code:
                raise ValidationError("Validation error", errors=[{
                    "field": "password",
                    "message": "Password must be at least 6 characters",
                    "type": "weak_password",
                }])
            logger.warning(f"Sign-up rejected by Firebase: {error_code}")
            raise ServerError("Registration failed")

        return self._session(data)

    async def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        """
        Check credentials and open a session.

        Raises:
            AuthenticationError: Wrong email/password or disabled account
        """
        data = await self._post(f"{IDENTITY_TOOLKIT_URL}:signInWithPassword", {
            "email": email,
            "password": password,
            "returnSecureToken": True
        })

        error_code = data.get("_error_code")
        if error_code:
            if any(code in error_code for code in INVALID_CREDENTIAL_CODES):
                raise AuthenticationError("Invalid email or password")
            if "USER_DISABLED" in error_code:
                raise AuthenticationError("This account has been disabled")
            logger.warning(f"Sign-in rejected by Firebase: {error_code}")
            raise AuthenticationError("Login failed")

        return self._session(data)

    async def refresh(self, refresh_token: str) -> Dict[str, Any]:
        data = await self._post(SECURE_TOKEN_URL, {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token
        })

        if data.get("_error_code"):
            raise AuthenticationError("Invalid refresh token")

        return {
            "token": data.get("id_token"),
            "refresh_token": data.get("refresh_token"),
            "expires_in": int(data.get("expires_in", 3600)),
            "uid": data.get("user_id"),
        }

    async def verify_password(self, email: str, password: str) -> bool:
        try:
            await self.sign_in(email, password)
            return True
        except AuthenticationError:
            return False

    def update_account(
        self,
        uid: str,
        email: Optional[str] = None,
        password: Optional[str] = None,
        display_name: Optional[str] = None
    ) -> None:
        """
        Update the Firebase account through the Admin SDK.

        Raises:
            ConflictError: The new email belongs to another account
        """
        fields = {
            key: value
            for key, value in {"email": email, "password": password, "display_name": display_name}.items()
            if value is not None
        }
        if not fields:
            return

        try:
            auth.update_user(uid, **fields)
        except auth.EmailAlreadyExistsError:
            raise ConflictError("Email already in use")

        logger.info(f"Firebase account {uid} updated: {', '.join(sorted(fields))}")

    @staticmethod
    def _session(data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "token": data.get("idToken"),
            "refresh_token": data.get("refreshToken", ""),
            "expires_in": int(data.get("expiresIn", 3600)),
            "uid": data.get("localId"),
            "email": data.get("email"),
            "display_name": data.get("displayName", ""),
        }


# Service instance
_identity_service: Optional[IdentityService] = None


def get_identity_service() -> IdentityService:
    """Get the IdentityService singleton instance."""
    global _identity_service
    if _identity_service is None:
        _identity_service = IdentityService()
    return _identity_service
