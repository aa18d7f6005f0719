from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from ..core.constants import TRIP_ON_TIME_TOLERANCE_MINUTES
from ..core.enums import TripStatus


@dataclass(frozen=True)
class Trip:
    """One run of a route by a vehicle and driver on a given day."""

    trip_id: int
    tenant_id: int
    route_id: int
    vehicle_id: int
    driver_id: int
    scheduled_start: datetime
    scheduled_end: datetime
    status: TripStatus = TripStatus.SCHEDULED
    actual_start: Optional[datetime] = None
    actual_end: Optional[datetime] = None
    start_mileage: Optional[float] = None
    end_mileage: Optional[float] = None
    notes: Optional[str] = None

    @property
    def trip_date(self) -> date:
        return self.scheduled_start.date()

    @property
    def distance(self) -> Optional[float]:
        if self.start_mileage is None or self.end_mileage is None:
            return None
        return self.end_mileage - self.start_mileage

    @property
    def is_on_time(self) -> bool:
        if self.actual_end is None:
            return False
        return self.actual_end <= self.scheduled_end + timedelta(minutes=TRIP_ON_TIME_TOLERANCE_MINUTES)

    @property
    def is_in_progress(self) -> bool:
        return self.status == TripStatus.IN_PROGRESS

    __json_properties__ = ("trip_date", "distance", "is_on_time")


@dataclass(frozen=True)
class TripSearch:
    route_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    driver_id: Optional[int] = None
    status: Optional[TripStatus] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
