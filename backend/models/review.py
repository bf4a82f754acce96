"""
ChargeSphere - Review Models
Defines station review data models and rating aggregates.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum

from models.common import coerce_id, reject_bool, require_text
from models.user import UserSummary

MAX_REVIEW_LENGTH = 500


class ReviewIssue(str, Enum):
    """Problems a reviewer can flag on a station."""
    CHARGER_NOT_WORKING = "Charger not working"
    WRONG_LOCATION = "Wrong location"
    PRICE_INCORRECT = "Price incorrect"
    POOR_MAINTENANCE = "Poor maintenance"
    ACCESS_ISSUES = "Access issues"
    OTHER = "Other"


class ReviewSort(str, Enum):
    RECENT = "recent"
    HIGHEST = "highest"
    LOWEST = "lowest"


def _unique_issues(issues: Optional[List[ReviewIssue]]) -> Optional[List[ReviewIssue]]:
    if issues is None:
        return None
    return list(dict.fromkeys(issues))


class StationRef(BaseModel):
    """Denormalized station reference."""
    id: str
    name: str

    @field_validator("id", mode="before")
    @classmethod
    def coerce_station_id(cls, v: Any) -> Any:
        return coerce_id(v)

    @field_validator("id")
    @classmethod
    def id_required(cls, v: str) -> str:
        return require_text(v, "Station ID")

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        return require_text(v, "Station name")


class ReviewPhoto(BaseModel):
    url: str = Field(..., min_length=1)
    uploaded_at: Optional[datetime] = None


class ReviewCreate(BaseModel):
    """Request model for reviewing a station."""
    station: StationRef
    rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5")
    review_text: str = Field(default="", max_length=MAX_REVIEW_LENGTH)
    issues: List[ReviewIssue] = Field(default_factory=list)
    photos: List[ReviewPhoto] = Field(default_factory=list)

    @field_validator("rating", mode="before")
    @classmethod
    def rating_not_bool(cls, v: Any) -> Any:
        return reject_bool(v, "Rating")

    @field_validator("review_text", mode="before")
    @classmethod
    def trim_text(cls, v: Any) -> Any:
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v

    @field_validator("issues")
    @classmethod
    def dedupe_issues(cls, v: List[ReviewIssue]) -> List[ReviewIssue]:
        return _unique_issues(v)


class ReviewUpdate(BaseModel):
    """Fields the author may change."""
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    review_text: Optional[str] = Field(default=None, max_length=MAX_REVIEW_LENGTH)
    issues: Optional[List[ReviewIssue]] = None

    @field_validator("rating", mode="before")
    @classmethod
    def rating_not_bool(cls, v: Any) -> Any:
        return reject_bool(v, "Rating")

    @field_validator("review_text", mode="before")
    @classmethod
    def trim_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("issues")
    @classmethod
    def dedupe_issues(cls, v: Optional[List[ReviewIssue]]) -> Optional[List[ReviewIssue]]:
        return _unique_issues(v)


class Review(BaseModel):
    """Complete review model as stored and returned."""
    id: str
    user_id: str
    user: Optional[UserSummary] = None
    station: StationRef
    rating: int
    review_text: str = ""
    issues: List[ReviewIssue] = Field(default_factory=list)
    photos: List[ReviewPhoto] = Field(default_factory=list)
    helpful_count: int = 0
    helpful_by: List[str] = Field(default_factory=list)
    is_verified: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RatingStats(BaseModel):
    """Aggregates over every review of a station, independent of paging."""
    average_rating: float
    total_reviews: int
    distribution: Dict[int, int]


class StationReviewsResponse(BaseModel):
    reviews: List[Review]
    total_pages: int
    current_page: int
    total: int
    stats: RatingStats


class HelpfulResponse(BaseModel):
    message: str
    helpful_count: int
