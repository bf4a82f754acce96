"""
ChargeSphere - Admin Router
Booking approval, global statistics and user listing.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List, Optional
import logging

from models.booking import (
    AdminStats,
    BookingActionResponse,
    BookingListResponse,
    BookingStatus,
)
from models.user import UserProfile
from security.firebase_auth import get_current_admin
from services.booking_service import BookingService, get_booking_service
from services.exceptions import ChargeSphereError
from services.user_service import UserService, get_user_service

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden - Admin access required"}
    }
)


@router.get(
    "/bookings",
    response_model=BookingListResponse,
    summary="Get All Bookings (Admin)",
    description="Every booking, newest first, with owner contact details."
)
async def list_all_bookings(
    status_filter: Optional[BookingStatus] = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    admin: UserProfile = Depends(get_current_admin),
    bookings: BookingService = Depends(get_booking_service)
) -> BookingListResponse:
    try:
        return await bookings.list_all_bookings(status=status_filter, page=page, limit=limit)

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"Admin error fetching bookings: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error"
        )


@router.put(
    "/bookings/{booking_id}/approve",
    response_model=BookingActionResponse,
    summary="Approve Booking (Admin)",
    description="Confirm a pending booking. Approving a confirmed booking changes nothing."
)
async def approve_booking(
    booking_id: str,
    admin: UserProfile = Depends(get_current_admin),
    bookings: BookingService = Depends(get_booking_service)
) -> BookingActionResponse:
    try:
        booking = await bookings.approve_booking(booking_id, admin)
        return BookingActionResponse(message="Booking approved successfully", booking=booking)

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"Error approving booking {booking_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error"
        )


@router.put(
    "/bookings/{booking_id}/reject",
    response_model=BookingActionResponse,
    summary="Reject Booking (Admin)"
)
async def reject_booking(
    booking_id: str,
    admin: UserProfile = Depends(get_current_admin),
    bookings: BookingService = Depends(get_booking_service)
) -> BookingActionResponse:
    try:
        booking = await bookings.reject_booking(booking_id, admin)
        return BookingActionResponse(message="Booking rejected successfully", booking=booking)

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"Error rejecting booking {booking_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error"
        )


@router.get(
    "/stats",
    response_model=AdminStats,
    summary="Get Statistics (Admin)",
    description="User count and booking counts by status."
)
async def get_stats(
    admin: UserProfile = Depends(get_current_admin),
    bookings: BookingService = Depends(get_booking_service)
) -> AdminStats:
    try:
        return await bookings.get_admin_stats()

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"Error fetching stats: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error"
        )


@router.get(
    "/users",
    response_model=List[UserProfile],
    summary="Get All Users (Admin)",
    description="All user profiles, newest first. Credentials are never part of a profile."
)
async def list_users(
    admin: UserProfile = Depends(get_current_admin),
    users: UserService = Depends(get_user_service)
) -> List[UserProfile]:
    try:
        return await users.list_users()

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"Error fetching users: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error"
        )
