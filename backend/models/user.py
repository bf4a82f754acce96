"""
ChargeSphere - User Models
Defines all data models related to users and authentication.
"""

from pydantic import BaseModel, ConfigDict, Field, EmailStr, field_validator
from typing import Optional, List, Any
from datetime import datetime
from enum import Enum

from models.common import coerce_id


class UserRole(str, Enum):
    """Enumeration of user roles."""
    CUSTOMER = "customer"
    ADMIN = "admin"


class Favorite(BaseModel):
    """A station saved by the user."""
    station_id: str
    station_name: str
    added_at: Optional[datetime] = None


class UserProfile(BaseModel):
    """User profile stored in Firestore and resolved for each request."""
    model_config = ConfigDict(from_attributes=True)

    uid: str = Field(..., description="Firebase user ID")
    name: Optional[str] = Field(default=None, description="Display name")
    email: Optional[EmailStr] = Field(default=None, description="User email address")
    phone: Optional[str] = Field(default=None, description="Contact phone number")
    role: UserRole = Field(default=UserRole.CUSTOMER, description="User role")
    favorites: List[Favorite] = Field(default_factory=list)
    member_since: Optional[datetime] = Field(default=None, description="Account creation time")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class UserSummary(BaseModel):
    """Owner details joined into bookings and reviews."""
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class TokenPayload(BaseModel):
    """Decoded Firebase token payload."""
    uid: str
    email: Optional[str] = None
    email_verified: bool = False
    name: Optional[str] = None
    picture: Optional[str] = None
    auth_time: Optional[int] = None
    iat: Optional[int] = None
    exp: Optional[int] = None
    firebase: Optional[dict] = None


class RegisterRequest(BaseModel):
    """Request model for user registration."""
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: Optional[str] = Field(default=None, max_length=30)


class LoginRequest(BaseModel):
    """Request model for user login."""
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    """Response model for authentication."""
    success: bool
    token: str
    refresh_token: str = ""
    expires_in: int = 3600
    user: UserProfile
    message: str = ""


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile."""
    name: Optional[str] = Field(default=None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=30)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be empty")
        return v


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1, description="Current password")
    new_password: str = Field(..., min_length=6, description="At least 6 characters")


class FavoriteCreate(BaseModel):
    station_id: str = Field(..., min_length=1)
    station_name: str = Field(..., min_length=1)

    @field_validator("station_id", mode="before")
    @classmethod
    def coerce_station_id(cls, v: Any) -> Any:
        return coerce_id(v)


class FavoritesResponse(BaseModel):
    message: str
    favorites: List[Favorite]


class MessageResponse(BaseModel):
    message: str
