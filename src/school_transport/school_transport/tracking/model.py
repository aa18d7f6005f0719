from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.geo import Position


@dataclass(frozen=True)
class VehicleLocation:
    location_id: int
    tenant_id: int
    vehicle_id: int
    latitude: float
    longitude: float
    recorded_at: datetime
    trip_id: Optional[int] = None
    speed_kmh: float = 0.0
    heading_deg: float = 0.0
    is_active: bool = True

    @property
    def position(self) -> Position:
        return Position(self.latitude, self.longitude)


@dataclass(frozen=True)
class ArrivalEstimate:
    trip_id: int
    stop_id: int
    stop_name: str
    estimated_arrival: datetime
    distance_km: float
    average_speed_kmh: float
    confidence: float
    last_updated: datetime
