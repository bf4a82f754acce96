"""
ChargeSphere - Helper Functions
Utility functions used across the application.
"""

from typing import Optional
import hashlib
import math
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP


START_TIME_FORMATS = ("%H:%M", "%H:%M:%S", "%I:%M %p", "%I:%M%p")


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to UTC.
    Naive values are assumed to already be UTC (Firestore stores UTC).
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def round_half_up(value: float, digits: int = 1) -> float:
    """
    Round like a calculator does (2.25 -> 2.3), not banker's rounding.

    Args:
        value: Number to round
        digits: Decimal places to keep

    Returns:
        float: Rounded value
    """
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def format_duration(minutes: int) -> str:
    """
    Format duration in minutes to human-readable string.

    Args:
        minutes: Duration in minutes

    Returns:
        str: Human-readable duration (e.g., "2 hours 30 minutes")
    """
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''}"

    hours = minutes // 60
    remaining_minutes = minutes % 60

    parts = []
    if hours > 0:
        parts.append(f"{hours} hour{'s' if hours != 1 else ''}")
    if remaining_minutes > 0:
        parts.append(f"{remaining_minutes} minute{'s' if remaining_minutes != 1 else ''}")

    return " ".join(parts)


def parse_start_time(value: Optional[str]) -> Optional[time]:
    """
    Parse a booking start time such as "14:30" or "2:30 PM".

    Returns:
        Optional[time]: Parsed time, or None if the format is unknown
    """
    if not value:
        return None

    value = value.strip().upper()
    for fmt in START_TIME_FORMATS:
        try:
            return datetime.strptime(value, fmt).time()
        except ValueError:
            continue
    return None


def booking_end_time(booking_date: datetime, start_time: Optional[str], duration_minutes: int) -> datetime:
    """
    Compute when a booking window ends.
    Falls back to the start of the booking date when start_time is unparseable.
    """
    booking_date = ensure_utc(booking_date)
    start = parse_start_time(start_time) or time(0, 0)
    starts_at = datetime.combine(booking_date.date(), start, tzinfo=timezone.utc)
    return starts_at + timedelta(minutes=duration_minutes or 0)


def total_pages(total: int, limit: int) -> int:
    """Number of pages needed to show `total` items, `limit` per page."""
    if limit <= 0:
        return 0
    return math.ceil(total / limit)


def page_offset(page: int, limit: int) -> int:
    """Zero-based offset of the first item on a 1-based page."""
    return max(page - 1, 0) * limit


def sanitize_string(value: Optional[str], max_length: int = 100) -> str:
    """
    Sanitize a string input for safe storage.

    Args:
        value: The string to sanitize
        max_length: Maximum allowed length

    Returns:
        str: Sanitized string
    """
    if not value:
        return ""

    # Remove control characters
    value = "".join(char for char in value if char.isprintable())

    value = value.strip()

    if len(value) > max_length:
        value = value[:max_length]

    return value


def review_document_id(user_id: str, station_id: str) -> str:
    """
    Deterministic review id for a (user, station) pair.

    Station ids come from external catalogs and may contain characters
    Firestore forbids in document ids, so they are hashed.
    """
    station_key = hashlib.sha1(station_id.encode("utf-8")).hexdigest()[:20]
    return f"{user_id}_{station_key}"
