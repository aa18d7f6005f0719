from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into naive local time.

    Stored and clock values are naive local times, so an offset (or a trailing
    'Z' for UTC) is converted to local time and dropped.
    """
    value = value.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def parse_hhmm(value: str) -> time:
    return datetime.strptime(value.strip(), "%H:%M").time()


def optional_date(value: Optional[str]) -> Optional[date]:
    return parse_iso_date(value) if value else None


def optional_datetime(value: Optional[str]) -> Optional[datetime]:
    return parse_iso_datetime(value) if value else None


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def in_time_window(moment: time, start: time, end: time) -> bool:
    """True when `moment` lies in [start, end]; windows like 22:00-06:00 wrap midnight."""
    if start <= end:
        return start <= moment <= end
    return moment >= start or moment <= end


def years_between(born: date, today: date) -> int:
    years = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        years -= 1
    return years
