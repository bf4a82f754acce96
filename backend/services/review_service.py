"""
ChargeSphere - Review Service
Handles station reviews, helpful votes and rating aggregates.
"""

from typing import Optional, Dict, Any, List, Iterable, Union
import logging

from google.api_core.exceptions import AlreadyExists

from database.firebase_db import get_db, FirebaseDB
from models.review import (
    HelpfulResponse,
    RatingStats,
    Review,
    ReviewCreate,
    ReviewSort,
    ReviewUpdate,
    StationReviewsResponse,
)
from models.user import UserProfile, UserSummary
from services.exceptions import (
    AuthorizationError,
    ConflictError,
    DuplicateActionError,
    NotFoundError,
    parse_payload,
)
from utils.helpers import page_offset, review_document_id, round_half_up, total_pages, utc_now

# Configure logging
logger = logging.getLogger(__name__)

RATING_VALUES = (1, 2, 3, 4, 5)


def compute_rating_stats(ratings: Iterable[int]) -> RatingStats:
    """
    Average, count and per-star distribution of a station's ratings.

    Args:
        ratings: Every rating of the station (not just one page)

    Returns:
        RatingStats: average rounded half up to 1 decimal, 0 when empty
    """
    distribution = {value: 0 for value in RATING_VALUES}
    valid = [rating for rating in ratings if rating in distribution]
    for rating in valid:
        distribution[rating] += 1

    average = round_half_up(sum(valid) / len(valid), 1) if valid else 0.0

    return RatingStats(
        average_rating=average,
        total_reviews=len(valid),
        distribution=distribution
    )


class ReviewService:
    """
    Service class for review operations.

    One review per (user, station): the review id is derived from the pair,
    and a storage-level collision is reported exactly like the pre-check.
    """

    DUPLICATE_MESSAGE = "You have already reviewed this station"

    def __init__(self, db: FirebaseDB = None):
        self.db = db or get_db()

    async def create_review(
        self,
        user: UserProfile,
        request: Union[ReviewCreate, Dict[str, Any]]
    ) -> Review:
        """
        Create the user's review of a station.

        Raises:
            ValidationError: Invalid station, rating or text
            ConflictError: The user already reviewed this station
        """
        request = parse_payload(ReviewCreate, request)
        review_id = review_document_id(user.uid, request.station.id)

        if await self.db.get_review(review_id):
            raise ConflictError(self.DUPLICATE_MESSAGE)

        now = utc_now()
        review_data = {
            "user_id": user.uid,
            "station": request.station.model_dump(),
            "rating": request.rating,
            "review_text": request.review_text,
            "issues": [issue.value for issue in request.issues],
            "photos": [
                {"url": photo.url, "uploaded_at": photo.uploaded_at or now}
                for photo in request.photos
            ],
            "helpful_count": 0,
            "helpful_by": [],
            "is_verified": False,
            "created_at": now,
            "updated_at": now,
        }

        try:
            stored = await self.db.create_review(review_id, review_data)
        except AlreadyExists:
            logger.warning(f"Concurrent duplicate review by {user.uid} on station {request.station.id}")
            raise ConflictError(self.DUPLICATE_MESSAGE)

        logger.info(f"Review {review_id} created: station={request.station.id}, rating={request.rating}")
        return self._to_review(stored, author=self._summary(user.uid, user.name))

    async def list_station_reviews(
        self,
        station_id: str,
        sort: ReviewSort = ReviewSort.RECENT,
        page: int = 1,
        limit: int = 10
    ) -> StationReviewsResponse:
        """Page of a station's reviews plus aggregates over all of them."""
        records = await self.db.list_station_reviews(
            station_id,
            sort=ReviewSort(sort).value,
            offset=page_offset(page, limit),
            limit=limit
        )
        stats = compute_rating_stats(await self.db.get_station_ratings(station_id))

        return StationReviewsResponse(
            reviews=await self._with_authors(records),
            total_pages=total_pages(stats.total_reviews, limit),
            current_page=page,
            total=stats.total_reviews,
            stats=stats
        )

    async def list_user_reviews(self, user: UserProfile) -> List[Review]:
        records = await self.db.list_user_reviews(user.uid)
        return [self._to_review(record) for record in records]

    async def update_review(
        self,
        user: UserProfile,
        review_id: str,
        updates: Union[ReviewUpdate, Dict[str, Any]]
    ) -> Review:
        """Change rating, text or issues of an owned review."""
        updates = parse_payload(ReviewUpdate, updates)
        data = await self._get_owned_review(user, review_id, action="update")

        changes = {
            field: value
            for field, value in updates.model_dump(exclude_unset=True).items()
            if value is not None
        }
        if "issues" in changes:
            changes["issues"] = [issue.value for issue in updates.issues]

        if changes:
            data = await self.db.update_review(review_id, changes)
            logger.info(f"Review {review_id} updated by {user.uid}")

        return self._to_review(data, author=self._summary(user.uid, user.name))

    async def delete_review(self, user: UserProfile, review_id: str) -> None:
        await self._get_owned_review(user, review_id, action="delete")
        await self.db.delete_review(review_id)

    async def mark_helpful(self, user: UserProfile, review_id: str) -> HelpfulResponse:
        """
        Record the user's helpful vote. Authors may vote on their own review.

        Raises:
            NotFoundError: Unknown review
            DuplicateActionError: The user already voted
        """
        result = await self.db.add_helpful_vote(review_id, user.uid)
        if result is None:
            raise NotFoundError("Review not found")

        if not result["added"]:
            raise DuplicateActionError("Already marked as helpful")

        return HelpfulResponse(message="Marked as helpful", helpful_count=result["helpful_count"])

    async def _get_owned_review(self, user: UserProfile, review_id: str, action: str) -> Dict[str, Any]:
        data = await self.db.get_review(review_id)
        if not data:
            raise NotFoundError("Review not found")

        if data.get("user_id") != user.uid:
            logger.warning(f"User {user.uid} attempted to {action} review {review_id}")
            raise AuthorizationError(f"Not authorized to {action} this review")

        return data

    async def _with_authors(self, records: List[Dict[str, Any]]) -> List[Review]:
        authors = await self.db.get_users_by_ids([record["user_id"] for record in records])
        return [
            self._to_review(
                record,
                author=self._summary(record["user_id"], (authors.get(record["user_id"]) or {}).get("name"))
            )
            for record in records
        ]

    @staticmethod
    def _summary(user_id: str, name: Optional[str]) -> UserSummary:
        return UserSummary(id=user_id, name=name)

    @staticmethod
    def _to_review(data: Dict[str, Any], author: Optional[UserSummary] = None) -> Review:
        """Convert a Firestore document to the Review model."""
        review = Review(**data)
        review.helpful_count = len(review.helpful_by)
        if author is not None:
            review.user = author
        return review


# Service instance
_review_service: Optional[ReviewService] = None


def get_review_service() -> ReviewService:
    """Get the ReviewService singleton instance."""
    global _review_service
    if _review_service is None:
        _review_service = ReviewService()
    return _review_service
