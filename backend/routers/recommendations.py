"""
ChargeSphere - Recommendations Router
Station scoring and charging time estimates.
"""

from collections import Counter
from fastapi import APIRouter, Depends, HTTPException, status
from typing import Optional
import logging

from models.recommendation import (
    ChargingTimeRequest,
    ChargingTimeResponse,
    NearbyRequest,
    NearbyResponse,
    NearbyStation,
    Recommendation,
    RecommendationRequest,
    RecommendationResponse,
)
from models.user import UserProfile
from security.firebase_auth import get_optional_user
from services.booking_service import BookingService, get_booking_service
from services.exceptions import ChargeSphereError
from services.recommendation_service import (
    get_optimal_charging_time,
    get_smart_recommendations,
    get_time_based_recommendations,
)
from utils.geo import add_distance_to_stations, format_distance, sort_stations_by_distance

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/recommendations",
    tags=["Recommendations"]
)


@router.post(
    "",
    response_model=RecommendationResponse,
    summary="Recommend Charging Stations",
    description=(
        "Rank the given stations for the caller. Without an explicit history, "
        "signed-in users are scored against their own bookings."
    )
)
async def recommend_stations(
    request: RecommendationRequest,
    user: Optional[UserProfile] = Depends(get_optional_user),
    bookings: BookingService = Depends(get_booking_service)
) -> RecommendationResponse:
    try:
        if request.history is not None:
            visit_counts = dict(Counter(visit.station_id for visit in request.history))
        elif user is not None:
            visit_counts = await bookings.get_visit_counts(user.uid)
        else:
            visit_counts = {}

        stations = [station.model_dump() for station in request.stations]
        if request.current_hour is not None:
            stations = get_time_based_recommendations(request.current_hour, stations)

        ranked = get_smart_recommendations(
            request.user_location.model_dump() if request.user_location else None,
            stations,
            visit_counts
        )
        return RecommendationResponse(
            recommendations=[Recommendation(**station) for station in ranked]
        )

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"Error computing recommendations: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error"
        )


@router.post(
    "/nearby",
    response_model=NearbyResponse,
    summary="Stations By Distance",
    description="Stations sorted nearest first, with a display-ready distance."
)
async def nearby_stations(request: NearbyRequest) -> NearbyResponse:
    stations = add_distance_to_stations(
        [station.model_dump() for station in request.stations],
        request.user_location.model_dump()
    )

    result = []
    for station in sort_stations_by_distance(stations):
        distance = station.get("distance")
        station["distance_text"] = format_distance(distance) if distance is not None else None
        result.append(NearbyStation(**station))

    return NearbyResponse(stations=result)


@router.post(
    "/charging-time",
    response_model=ChargingTimeResponse,
    summary="Estimate Charging Time",
    description="Charging needed to reach a destination with a 20% battery buffer."
)
async def charging_time(request: ChargingTimeRequest) -> ChargingTimeResponse:
    return ChargingTimeResponse(**get_optimal_charging_time(
        request.current_battery,
        request.destination_distance,
        request.battery_capacity,
        request.charging_power
    ))
