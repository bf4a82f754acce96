"""
ChargeSphere - Routers Package
API route handlers.
"""

from routers.auth_rest import router as auth_router
from routers.users import router as users_router
from routers.bookings import router as bookings_router
from routers.admin import router as admin_router
from routers.reviews import router as reviews_router
from routers.recommendations import router as recommendations_router

__all__ = [
    "auth_router",
    "users_router",
    "bookings_router",
    "admin_router",
    "reviews_router",
    "recommendations_router",
]
