"""
ChargeSphere - Utilities Package
Helper functions, geographic helpers and the background scheduler.
"""

from utils.scheduler import (
    BookingScheduler,
    get_scheduler,
    start_scheduler,
    stop_scheduler,
)
from utils.helpers import (
    format_duration,
    round_half_up,
    utc_now,
)
from utils.geo import (
    calculate_distance,
    format_distance,
    add_distance_to_stations,
    sort_stations_by_distance,
)

__all__ = [
    "BookingScheduler",
    "get_scheduler",
    "start_scheduler",
    "stop_scheduler",
    "format_duration",
    "round_half_up",
    "utc_now",
    "calculate_distance",
    "format_distance",
    "add_distance_to_stations",
    "sort_stations_by_distance",
]
