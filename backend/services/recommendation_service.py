"""
ChargeSphere - Recommendation Service
Scores charging stations for a user and estimates charging time.
All functions are pure: no storage access.
"""

from typing import Optional, Dict, Any, List, Tuple
import logging
import math
import re

from utils.geo import add_distance_to_stations
from utils.helpers import round_half_up

# Configure logging
logger = logging.getLogger(__name__)

# Scoring weights
MAX_DISTANCE_SCORE = 40
DISTANCE_PENALTY_PER_KM = 2
AVAILABLE_SCORE = 25
LIMITED_SCORE = 10
MAX_RATING_SCORE = 20
MAX_PRICE_SCORE = 15
AVERAGE_PRICE_PER_KWH = 0.35
PRICE_PENALTY = 50
VISIT_SCORE = 5
MAX_HISTORY_SCORE = 20
AMENITIES_SCORE = 10
FAST_CHARGING_SCORE = 10

FAST_CHARGING_KW = 50
ULTRA_FAST_CHARGING_KW = 100
GREAT_PRICE = 0.30
HIGH_RATING = 4.5
TOP_RECOMMENDATIONS = 5

# Charging estimate
ENERGY_PER_KM_KWH = 0.2
BATTERY_BUFFER = 0.2

_NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?")


def _number(value: Any) -> Optional[float]:
    """
    Read a number from catalog data. Strings such as "150 kW" or "4.5"
    yield their leading number; anything else yields None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _NUMBER_PATTERN.search(value)
        if match:
            return float(match.group())
    return None


def _price(station: Dict[str, Any]) -> Optional[float]:
    """Only numeric pricing counts; textual prices like "$0.40/kWh" are ignored."""
    pricing = station.get("pricing")
    if isinstance(pricing, bool) or not isinstance(pricing, (int, float)):
        return None
    return float(pricing) if math.isfinite(pricing) else None


def _availability(station: Dict[str, Any]) -> str:
    value = station.get("availability")
    return value.strip().lower() if isinstance(value, str) else ""


def _distance_score(station: Dict[str, Any]) -> float:
    distance = _number(station.get("distance"))
    if distance is None:
        return 0.0
    return max(0.0, MAX_DISTANCE_SCORE - distance * DISTANCE_PENALTY_PER_KM)


def score_station(station: Dict[str, Any], visit_count: int = 0) -> Tuple[float, float]:
    """
    Weighted score of a station.

    Args:
        station: Station data (distance in km already attached)
        visit_count: How often the user visited this station before

    Returns:
        tuple: (total score, distance component)
    """
    distance_score = _distance_score(station)
    score = distance_score

    availability = _availability(station)
    if availability == "available":
        score += AVAILABLE_SCORE
    elif availability == "limited":
        score += LIMITED_SCORE

    rating = _number(station.get("rating"))
    if rating is not None:
        score += (rating / 5) * MAX_RATING_SCORE

    price = _price(station)
    if price is not None:
        score += max(0.0, MAX_PRICE_SCORE - (price - AVERAGE_PRICE_PER_KWH) * PRICE_PENALTY)

    if visit_count > 0:
        score += min(MAX_HISTORY_SCORE, visit_count * VISIT_SCORE)

    if station.get("amenities"):
        score += AMENITIES_SCORE

    power = _number(station.get("power"))
    if power is not None and power > FAST_CHARGING_KW:
        score += FAST_CHARGING_SCORE

    return score, distance_score


def generate_reasons(station: Dict[str, Any], distance_score: float, visit_count: int) -> List[str]:
    """Human-readable reasons matching the score terms that fired."""
    reasons = []

    if distance_score >= 30:
        reasons.append("Very close to you")
    elif distance_score >= 20:
        reasons.append("Nearby location")

    if _availability(station) == "available":
        reasons.append("Currently available")

    rating = _number(station.get("rating"))
    if rating is not None and rating >= HIGH_RATING:
        reasons.append("Highly rated")

    price = _price(station)
    if price is not None and price < GREAT_PRICE:
        reasons.append("Great price")

    if visit_count > 0:
        reasons.append("You've visited before")

    power = _number(station.get("power"))
    if power is not None and power > ULTRA_FAST_CHARGING_KW:
        reasons.append("Ultra-fast charging")
    elif power is not None and power > FAST_CHARGING_KW:
        reasons.append("Fast charging")

    return reasons


def get_smart_recommendations(
    user_location: Optional[Dict[str, float]],
    stations: List[Dict[str, Any]],
    visit_counts: Optional[Dict[str, int]] = None
) -> List[Dict[str, Any]]:
    """
    Rank charging stations for the user.

    Args:
        user_location: {"lat", "lng"} used to fill in missing distances
        stations: Candidate stations
        visit_counts: Past visits per station id

    Returns:
        list: Top charging stations with `recommendation_score` and `reasons`,
        best first
    """
    visit_counts = visit_counts or {}

    missing = [station for station in stations if station.get("distance") is None]
    if user_location and missing:
        stations = [
            station if station.get("distance") is not None
            else add_distance_to_stations([station], user_location)[0]
            for station in stations
        ]

    scored = []
    for station in stations:
        if station.get("type") != "charging":
            continue

        visits = visit_counts.get(str(station.get("id")), 0)
        score, distance_score = score_station(station, visits)
        scored.append({
            **station,
            "recommendation_score": int(round_half_up(score, 0)),
            "reasons": generate_reasons(station, distance_score, visits),
        })

    scored.sort(key=lambda station: station["recommendation_score"], reverse=True)
    logger.debug(f"Scored {len(scored)} charging stations")

    return scored[:TOP_RECOMMENDATIONS]


def get_time_based_recommendations(current_hour: int, stations: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Narrow stations by time of day: 24/7 stations at night (20:00-06:00),
    stations with amenities at lunch (12:00-14:00), everything otherwise.
    """
    if current_hour >= 20 or current_hour < 6:
        return [station for station in stations if station.get("hours") == "24/7"]
    if 12 <= current_hour < 14:
        return [station for station in stations if station.get("amenities")]
    return list(stations)


def get_optimal_charging_time(
    current_battery: float,
    destination_distance: float,
    battery_capacity: float,
    charging_power: float
) -> Dict[str, Any]:
    """
    Estimate how long to charge before a trip, keeping a 20% battery buffer.

    Args:
        current_battery: Battery level in percent
        destination_distance: Trip distance in km
        battery_capacity: Battery capacity in kWh
        charging_power: Charger power in kW

    Returns:
        dict: energy figures in kWh and charging time in whole minutes
    """
    energy_needed = destination_distance * ENERGY_PER_KM_KWH
    current_energy = (current_battery / 100) * battery_capacity
    energy_to_charge = max(0.0, energy_needed - current_energy + battery_capacity * BATTERY_BUFFER)

    charging_minutes = math.ceil(energy_to_charge / charging_power * 60)

    return {
        "energy_needed": energy_needed,
        "energy_to_charge": energy_to_charge,
        "charging_time": charging_minutes,
        "recommended_duration": charging_minutes,
        "final_battery_percent": min(100.0, current_battery + (energy_to_charge / battery_capacity) * 100),
    }
