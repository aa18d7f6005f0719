from __future__ import annotations

import re
from typing import Any, Optional

from ..core.constants import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..core.exceptions import ValidationError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def require_max_length(value: Optional[str], field_name: str, max_len: int) -> Optional[str]:
    if value is not None and len(value) > max_len:
        raise ValidationError(f"{field_name} cannot exceed {max_len} characters")
    return value


def require_positive(value: Any, field_name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if number <= 0:
        raise ValidationError(f"{field_name} must be greater than 0")
    return number


def optional_email(value: Optional[str], field_name: str = "Email") -> Optional[str]:
    if value is None or not value.strip():
        return None
    value = value.strip()
    if not _EMAIL_RE.match(value):
        raise ValidationError(f"{field_name} is not a valid email address")
    return value


def require_latitude(value: Any) -> float:
    try:
        lat = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Latitude must be a number")
    if not -90.0 <= lat <= 90.0:
        raise ValidationError("Latitude must be between -90 and 90")
    return lat


def require_longitude(value: Any) -> float:
    try:
        lon = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Longitude must be a number")
    if not -180.0 <= lon <= 180.0:
        raise ValidationError("Longitude must be between -180 and 180")
    return lon


def normalize_paging(page: Any, page_size: Any) -> tuple[int, int]:
    try:
        page_i = int(page) if page not in (None, "") else DEFAULT_PAGE
        size_i = int(page_size) if page_size not in (None, "") else DEFAULT_PAGE_SIZE
    except (TypeError, ValueError):
        raise ValidationError("page and pageSize must be integers")
    page_i = max(page_i, 1)
    size_i = min(max(size_i, 1), MAX_PAGE_SIZE)
    return page_i, size_i
