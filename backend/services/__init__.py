"""
ChargeSphere - Services Package
Business logic and service layer.
"""

from services.booking_service import BookingService, get_booking_service
from services.review_service import ReviewService, get_review_service
from services.user_service import UserService, get_user_service
from services.identity_service import IdentityService, get_identity_service

__all__ = [
    "BookingService",
    "get_booking_service",
    "ReviewService",
    "get_review_service",
    "UserService",
    "get_user_service",
    "IdentityService",
    "get_identity_service",
]
