"""
ChargeSphere - Recommendation Models
Request and response shapes for station scoring.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, List, Optional, Union

from models.common import coerce_id


class GeoPoint(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class StationCandidate(BaseModel):
    """
    A station as provided by the catalog.
    Loosely typed on purpose: catalog fields that fail to parse as numbers
    simply do not contribute to the score.
    """
    model_config = ConfigDict(extra="allow")

    id: Optional[Union[int, str]] = None
    name: Optional[str] = None
    type: Optional[str] = None
    location: Optional[GeoPoint] = None
    distance: Optional[float] = None
    availability: Optional[str] = None
    rating: Optional[Any] = None
    pricing: Optional[Any] = None
    amenities: List[str] = Field(default_factory=list)
    power: Optional[Any] = None
    hours: Optional[str] = None


class VisitRecord(BaseModel):
    station_id: str

    @field_validator("station_id", mode="before")
    @classmethod
    def coerce_station_id(cls, v: Any) -> Any:
        return coerce_id(v)


class RecommendationRequest(BaseModel):
    user_location: Optional[GeoPoint] = None
    stations: List[StationCandidate]
    history: Optional[List[VisitRecord]] = Field(
        default=None,
        description="Past visits. Defaults to the caller's bookings when omitted."
    )
    current_hour: Optional[int] = Field(
        default=None,
        ge=0,
        le=23,
        description="Local hour of day. When set, stations are narrowed by opening hours and amenities first."
    )


class NearbyRequest(BaseModel):
    user_location: GeoPoint
    stations: List[StationCandidate]


class NearbyStation(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[Union[int, str]] = None
    name: Optional[str] = None
    distance: Optional[float] = None
    distance_text: Optional[str] = None


class NearbyResponse(BaseModel):
    stations: List[NearbyStation]


class Recommendation(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[Union[int, str]] = None
    name: Optional[str] = None
    recommendation_score: int
    reasons: List[str]


class RecommendationResponse(BaseModel):
    recommendations: List[Recommendation]


class ChargingTimeRequest(BaseModel):
    current_battery: float = Field(..., ge=0, le=100, description="Battery level in percent")
    destination_distance: float = Field(..., ge=0, description="Trip distance in km")
    battery_capacity: float = Field(..., gt=0, description="Battery capacity in kWh")
    charging_power: float = Field(..., gt=0, description="Charger power in kW")


class ChargingTimeResponse(BaseModel):
    energy_needed: float
    energy_to_charge: float
    charging_time: int
    recommended_duration: int
    final_battery_percent: float
