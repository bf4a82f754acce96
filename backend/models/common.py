"""
ChargeSphere - Shared Model Helpers
Validators and response shapes reused by several model modules.
"""

from datetime import date, datetime
from typing import Any, Optional
import re


def coerce_id(value: Any) -> Any:
    """Station ids are numeric in the mock catalog and strings elsewhere."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def require_text(value: Optional[str], label: str) -> str:
    """Strip a required text field and reject blank values."""
    if value is None:
        raise ValueError(f"{label} is required")
    value = value.strip()
    if not value:
        raise ValueError(f"{label} is required")
    return value


ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")


def reject_bool(value: Any, label: str) -> Any:
    """JSON true/false would otherwise be read as 1/0 by integer fields."""
    if isinstance(value, bool):
        raise ValueError(f"{label} must be an integer")
    return value


def require_iso_date(value: Any, label: str) -> Any:
    """Only ISO 8601 strings (or datetime objects), never Unix timestamps."""
    if isinstance(value, (datetime, date)):
        return value
    if not isinstance(value, str) or not ISO_DATE_PREFIX.match(value.strip()):
        raise ValueError(f"{label} must be an ISO 8601 date")
    return value.strip()
