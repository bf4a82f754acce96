"""
ChargeSphere - Reviews Router
Station reviews, rating statistics and helpful votes.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List
import logging

from models.review import (
    HelpfulResponse,
    Review,
    ReviewCreate,
    ReviewSort,
    ReviewUpdate,
    StationReviewsResponse,
)
from models.user import MessageResponse, UserProfile
from security.firebase_auth import get_current_user
from services.exceptions import ChargeSphereError
from services.review_service import ReviewService, get_review_service

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/reviews",
    tags=["Reviews"],
    responses={401: {"description": "Unauthorized"}}
)


def _server_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Error {action}: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Server error"
    )


@router.post(
    "",
    response_model=Review,
    status_code=status.HTTP_201_CREATED,
    summary="Review a Station",
    responses={409: {"description": "The user already reviewed this station"}}
)
async def create_review(
    request: ReviewCreate,
    user: UserProfile = Depends(get_current_user),
    reviews: ReviewService = Depends(get_review_service)
) -> Review:
    try:
        return await reviews.create_review(user, request)

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        raise _server_error("creating review", e)


@router.get(
    "/station/{station_id}",
    response_model=StationReviewsResponse,
    summary="Get Station Reviews",
    description="A page of reviews plus rating statistics over all of the station's reviews. Public."
)
async def list_station_reviews(
    station_id: str,
    sort: ReviewSort = Query(default=ReviewSort.RECENT),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    reviews: ReviewService = Depends(get_review_service)
) -> StationReviewsResponse:
    try:
        return await reviews.list_station_reviews(station_id, sort=sort, page=page, limit=limit)

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        raise _server_error("fetching station reviews", e)


@router.get(
    "/user",
    response_model=List[Review],
    summary="Get My Reviews"
)
async def list_user_reviews(
    user: UserProfile = Depends(get_current_user),
    reviews: ReviewService = Depends(get_review_service)
) -> List[Review]:
    try:
        return await reviews.list_user_reviews(user)

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        raise _server_error("fetching user reviews", e)


@router.put(
    "/{review_id}",
    response_model=Review,
    summary="Update Review"
)
async def update_review(
    review_id: str,
    updates: ReviewUpdate,
    user: UserProfile = Depends(get_current_user),
    reviews: ReviewService = Depends(get_review_service)
) -> Review:
    try:
        return await reviews.update_review(user, review_id, updates)

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        raise _server_error("updating review", e)


@router.delete(
    "/{review_id}",
    response_model=MessageResponse,
    summary="Delete Review"
)
async def delete_review(
    review_id: str,
    user: UserProfile = Depends(get_current_user),
    reviews: ReviewService = Depends(get_review_service)
) -> MessageResponse:
    try:
        await reviews.delete_review(user, review_id)
        return MessageResponse(message="Review deleted successfully")

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        raise _server_error("deleting review", e)


@router.post(
    "/{review_id}/helpful",
    response_model=HelpfulResponse,
    summary="Mark Review Helpful",
    responses={400: {"description": "Already marked as helpful"}}
)
async def mark_helpful(
    review_id: str,
    user: UserProfile = Depends(get_current_user),
    reviews: ReviewService = Depends(get_review_service)
) -> HelpfulResponse:
    try:
        return await reviews.mark_helpful(user, review_id)

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        raise _server_error("marking review helpful", e)
