"""
ChargeSphere - Booking Models
Defines booking data models and the booking status state machine.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, FrozenSet, List, Optional
from datetime import datetime
from enum import Enum

from models.common import coerce_id, require_iso_date, require_text
from models.user import UserSummary

MIN_BOOKING_DURATION_MINUTES = 15
# Vehicle rentals may last up to a year
MAX_BOOKING_DURATION_MINUTES = 525600
MAX_NOTES_LENGTH = 500


class BookingStatus(str, Enum):
    """Lifecycle states of a booking."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


BOOKING_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    """Re-applying the current status is always allowed."""
    return current == target or target in BOOKING_TRANSITIONS[current]


class StationSnapshot(BaseModel):
    """Station details copied into the booking at creation time."""
    id: Optional[str] = None
    name: str = Field(..., description="Station name")
    address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_station_id(cls, v: Any) -> Any:
        return coerce_id(v)

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        return require_text(v, "Station name")


class VehicleSnapshot(BaseModel):
    """Vehicle details copied into the booking at creation time."""
    type: str = Field(..., description="Vehicle type (e.g. EV, Sedan)")
    model: Optional[str] = None

    @field_validator("type")
    @classmethod
    def type_required(cls, v: str) -> str:
        return require_text(v, "Vehicle type")


class BookingCreate(BaseModel):
    """Request model for booking a charging slot or vehicle."""
    station: StationSnapshot
    vehicle: VehicleSnapshot
    booking_date: datetime = Field(..., description="ISO 8601 date of the booking")
    start_time: str = Field(..., description="Start time, e.g. 14:30")
    duration: int = Field(
        ...,
        ge=MIN_BOOKING_DURATION_MINUTES,
        le=MAX_BOOKING_DURATION_MINUTES,
        description="Duration in minutes (15 minutes to one year)"
    )
    charger_type: str = Field(..., description="Requested charger type")
    estimated_cost: float = Field(default=0, ge=0)
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)

    @field_validator("booking_date", mode="before")
    @classmethod
    def booking_date_iso(cls, v: Any) -> Any:
        return require_iso_date(v, "Booking date")

    @field_validator("start_time")
    @classmethod
    def start_time_required(cls, v: str) -> str:
        return require_text(v, "Start time")

    @field_validator("charger_type")
    @classmethod
    def charger_type_required(cls, v: str) -> str:
        return require_text(v, "Charger type")


class BookingUpdate(BaseModel):
    """Fields the owner may change. Omitted or null fields are left as they are."""
    booking_date: Optional[datetime] = None
    start_time: Optional[str] = None
    duration: Optional[int] = Field(
        default=None,
        ge=MIN_BOOKING_DURATION_MINUTES,
        le=MAX_BOOKING_DURATION_MINUTES
    )
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)
    status: Optional[BookingStatus] = None

    @field_validator("booking_date", mode="before")
    @classmethod
    def booking_date_iso(cls, v: Any) -> Any:
        return None if v is None else require_iso_date(v, "Booking date")

    @field_validator("start_time")
    @classmethod
    def start_time_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else require_text(v, "Start time")


class Booking(BaseModel):
    """Complete booking model as stored and returned."""
    id: str
    user_id: str
    user: Optional[UserSummary] = None
    station: StationSnapshot
    vehicle: VehicleSnapshot
    booking_date: datetime
    start_time: str
    duration: int
    charger_type: str
    estimated_cost: float = 0
    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BookingListResponse(BaseModel):
    bookings: List[Booking]
    total_pages: int
    current_page: int
    total: int


class BookingActionResponse(BaseModel):
    message: str
    booking: Booking


class BookingStats(BaseModel):
    """Per-user booking counters."""
    total: int
    completed: int
    upcoming: int


class BookingCounts(BaseModel):
    total: int
    pending: int
    confirmed: int
    completed: int


class AdminStats(BaseModel):
    users: int
    bookings: BookingCounts
