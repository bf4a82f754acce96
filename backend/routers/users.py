"""
ChargeSphere - Users Router
Profile, password and favorite station endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from typing import List
import logging

from models.user import (
    Favorite,
    FavoriteCreate,
    FavoritesResponse,
    MessageResponse,
    PasswordChange,
    ProfileUpdate,
    UserProfile,
)
from security.firebase_auth import get_current_user
from services.exceptions import ChargeSphereError
from services.user_service import UserService, get_user_service

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/users",
    tags=["Users"],
    responses={401: {"description": "Unauthorized"}}
)


def _server_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Error {action}: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Server error"
    )


@router.get(
    "/profile",
    response_model=UserProfile,
    summary="Get Current User Profile"
)
async def get_profile(
    user: UserProfile = Depends(get_current_user),
    users: UserService = Depends(get_user_service)
) -> UserProfile:
    try:
        return await users.get_profile(user)

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        raise _server_error("fetching profile", e)


@router.put(
    "/profile",
    response_model=UserProfile,
    summary="Update Profile",
    description="Change name, email or phone. A new email must not belong to another account."
)
async def update_profile(
    updates: ProfileUpdate,
    user: UserProfile = Depends(get_current_user),
    users: UserService = Depends(get_user_service)
) -> UserProfile:
    try:
        return await users.update_profile(user, updates)

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        raise _server_error("updating profile", e)


@router.put(
    "/password",
    response_model=MessageResponse,
    summary="Change Password"
)
async def change_password(
    request: PasswordChange,
    user: UserProfile = Depends(get_current_user),
    users: UserService = Depends(get_user_service)
) -> MessageResponse:
    try:
        await users.change_password(user, request)
        return MessageResponse(message="Password updated successfully")

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        raise _server_error("changing password", e)


@router.get(
    "/favorites",
    response_model=List[Favorite],
    summary="List Favorite Stations"
)
async def get_favorites(
    user: UserProfile = Depends(get_current_user),
    users: UserService = Depends(get_user_service)
) -> List[Favorite]:
    try:
        return await users.get_favorites(user)

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        raise _server_error("fetching favorites", e)


@router.post(
    "/favorites",
    response_model=FavoritesResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add Favorite Station",
    responses={400: {"description": "Station already in favorites"}}
)
async def add_favorite(
    request: FavoriteCreate,
    user: UserProfile = Depends(get_current_user),
    users: UserService = Depends(get_user_service)
) -> FavoritesResponse:
    try:
        favorites = await users.add_favorite(user, request)
        return FavoritesResponse(message="Added to favorites", favorites=favorites)

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        raise _server_error("adding favorite", e)


@router.delete(
    "/favorites/{station_id}",
    response_model=FavoritesResponse,
    summary="Remove Favorite Station"
)
async def remove_favorite(
    station_id: str,
    user: UserProfile = Depends(get_current_user),
    users: UserService = Depends(get_user_service)
) -> FavoritesResponse:
    try:
        favorites = await users.remove_favorite(user, station_id)
        return FavoritesResponse(message="Removed from favorites", favorites=favorites)

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        raise _server_error("removing favorite", e)
