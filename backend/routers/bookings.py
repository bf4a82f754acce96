"""
ChargeSphere - Bookings Router
Customer endpoints for creating and managing bookings.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Optional
import logging

from models.booking import (
    Booking,
    BookingActionResponse,
    BookingCreate,
    BookingListResponse,
    BookingStats,
    BookingStatus,
    BookingUpdate,
)
from models.user import UserProfile
from security.firebase_auth import get_current_user
from services.booking_service import BookingService, get_booking_service
from services.exceptions import ChargeSphereError

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/bookings",
    tags=["Bookings"],
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Not the owner of the booking"},
        404: {"description": "Booking not found"}
    }
)


def _server_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Error {action}: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Server error"
    )


@router.post(
    "",
    response_model=Booking,
    status_code=status.HTTP_201_CREATED,
    summary="Create Booking",
    description="Book a charging slot or vehicle. New bookings wait for admin approval."
)
async def create_booking(
    request: BookingCreate,
    user: UserProfile = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service)
) -> Booking:
    try:
        return await bookings.create_booking(user, request)

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        raise _server_error("creating booking", e)


@router.get(
    "",
    response_model=BookingListResponse,
    summary="List My Bookings",
    description="The caller's bookings, newest first."
)
async def list_bookings(
    status_filter: Optional[BookingStatus] = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: UserProfile = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service)
) -> BookingListResponse:
    try:
        return await bookings.list_bookings(user, status=status_filter, page=page, limit=limit)

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        raise _server_error("listing bookings", e)


# Declared before /{booking_id} so "stats" is not taken for an id
@router.get(
    "/stats/summary",
    response_model=BookingStats,
    summary="My Booking Statistics"
)
async def get_booking_stats(
    user: UserProfile = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service)
) -> BookingStats:
    try:
        return await bookings.get_user_stats(user)

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        raise _server_error("fetching booking stats", e)


@router.get(
    "/{booking_id}",
    response_model=Booking,
    summary="Get Booking"
)
async def get_booking(
    booking_id: str,
    user: UserProfile = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service)
) -> Booking:
    try:
        return await bookings.get_booking(user, booking_id)

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        raise _server_error("fetching booking", e)


@router.put(
    "/{booking_id}",
    response_model=Booking,
    summary="Update Booking",
    description="Change date, time, duration or notes, or cancel through the status field."
)
async def update_booking(
    booking_id: str,
    updates: BookingUpdate,
    user: UserProfile = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service)
) -> Booking:
    try:
        return await bookings.update_booking(user, booking_id, updates)

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        raise _server_error("updating booking", e)


@router.delete(
    "/{booking_id}",
    response_model=BookingActionResponse,
    summary="Cancel Booking",
    description="Marks the booking as cancelled. The record is kept."
)
async def cancel_booking(
    booking_id: str,
    user: UserProfile = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service)
) -> BookingActionResponse:
    try:
        booking = await bookings.cancel_booking(user, booking_id)
        return BookingActionResponse(message="Booking cancelled successfully", booking=booking)

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        raise _server_error("cancelling booking", e)
