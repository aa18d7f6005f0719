from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from typing import Optional

from ..common.geo import Position
from ..core.enums import AlertSeverity, ViolationType


@dataclass(frozen=True)
class GeofenceAlert:
    """Created fresh per evaluation; never persisted or updated."""

    violation_type: ViolationType
    severity: AlertSeverity
    description: str
    timestamp: datetime
    latitude: float
    longitude: float
    trip_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    stop_id: Optional[int] = None
    stop_name: Optional[str] = None
    student_id: Optional[int] = None
    student_name: Optional[str] = None
    distance_km: Optional[float] = None
    action_required: Optional[str] = None

    def as_payload(self) -> dict:
        return {
            "violation_type": self.violation_type.value,
            "severity": self.severity.value,
            "description": self.description,
            "timestamp": self.timestamp.isoformat(),
            "latitude": self.latitude,
            "longitude": self.longitude,
            "trip_id": self.trip_id,
            "vehicle_id": self.vehicle_id,
            "stop_id": self.stop_id,
            "student_id": self.student_id,
            "distance_km": self.distance_km,
            "action_required": self.action_required,
        }


@dataclass(frozen=True)
class RestrictedArea:
    name: str
    center: Position
    radius_km: float
    restricted_from: time
    restricted_until: time
