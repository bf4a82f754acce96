"""
ChargeSphere - Firebase Authentication Module
Handles Firebase ID token verification and user/role resolution.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from firebase_admin import auth
from typing import Optional
import logging

from models.user import UserProfile, TokenPayload
from services.user_service import UserService, get_user_service

# Configure logging
logger = logging.getLogger(__name__)

# Security scheme for Bearer token
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def verify_firebase_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> TokenPayload:
    """
    Verify Firebase ID token from Authorization header.

    Args:
        credentials: Bearer token from Authorization header

    Returns:
        TokenPayload: Decoded token information

    Raises:
        HTTPException: 401 if the token is missing, invalid, expired or revoked
    """
    if credentials is None:
        raise _unauthorized("No token, authorization denied")

    try:
        decoded_token = auth.verify_id_token(credentials.credentials)

        return TokenPayload(
            uid=decoded_token.get("uid"),
            email=decoded_token.get("email"),
            email_verified=decoded_token.get("email_verified", False),
            name=decoded_token.get("name"),
            picture=decoded_token.get("picture"),
            auth_time=decoded_token.get("auth_time"),
            iat=decoded_token.get("iat"),
            exp=decoded_token.get("exp"),
            firebase=decoded_token.get("firebase"),
        )

    except auth.ExpiredIdTokenError:
        logger.warning("Expired Firebase token received")
        raise _unauthorized("Token has expired. Please sign in again.")

    except auth.RevokedIdTokenError:
        logger.warning("Revoked Firebase token received")
        raise _unauthorized("Token has been revoked. Please sign in again.")

    except (auth.InvalidIdTokenError, ValueError) as e:
        logger.warning(f"Invalid Firebase token: {e}")
        raise _unauthorized("Token is not valid")

    except Exception as e:
        logger.error(f"Token verification error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication service error",
        )


async def get_current_user(
    token: TokenPayload = Depends(verify_firebase_token),
    users: UserService = Depends(get_user_service)
) -> UserProfile:
    """
    Resolve the authenticated user's profile.
    The role always comes from Firestore; a first-time caller gets a
    customer profile.
    """
    try:
        return await users.ensure_profile(token)

    except Exception as e:
        logger.error(f"Error getting user profile: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error retrieving user profile",
        )


async def get_current_admin(
    user: UserProfile = Depends(get_current_user)
) -> UserProfile:
    """
    Verify that the current user has admin privileges.

    Raises:
        HTTPException: 403 if user is not an admin
    """
    if not user.is_admin:
        logger.warning(f"Non-admin user {user.uid} attempted admin action")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin only.",
        )

    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    users: UserService = Depends(get_user_service)
) -> Optional[UserProfile]:
    """
    Optionally get the current user if authenticated.
    Returns None if no valid token is provided.
    """
    if credentials is None:
        return None

    try:
        token = await verify_firebase_token(credentials)
        return await get_current_user(token, users)
    except HTTPException:
        return None
