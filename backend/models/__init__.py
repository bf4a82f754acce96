"""
ChargeSphere - Models Package
Pydantic models for the application.
"""

from models.user import (
    UserProfile,
    UserRole,
    UserSummary,
    Favorite,
)
from models.booking import (
    Booking,
    BookingCreate,
    BookingUpdate,
    BookingStatus,
    PaymentStatus,
    can_transition,
)
from models.review import (
    Review,
    ReviewCreate,
    ReviewUpdate,
    ReviewIssue,
    ReviewSort,
    RatingStats,
)
from models.recommendation import (
    StationCandidate,
    Recommendation,
)

__all__ = [
    # User Models
    "UserProfile",
    "UserRole",
    "UserSummary",
    "Favorite",
    # Booking Models
    "Booking",
    "BookingCreate",
    "BookingUpdate",
    "BookingStatus",
    "PaymentStatus",
    "can_transition",
    # Review Models
    "Review",
    "ReviewCreate",
    "ReviewUpdate",
    "ReviewIssue",
    "ReviewSort",
    "RatingStats",
    # Recommendation Models
    "StationCandidate",
    "Recommendation",
]
