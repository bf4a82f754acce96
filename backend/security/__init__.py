"""
ChargeSphere - Security Package
Contains authentication and authorization dependencies.
"""

from security.firebase_auth import (
    verify_firebase_token,
    get_current_user,
    get_current_admin,
    get_optional_user,
)

__all__ = [
    "verify_firebase_token",
    "get_current_user",
    "get_current_admin",
    "get_optional_user",
]
