from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Optional

from ..common.geo import Position
from ..core.enums import RouteStatus


@dataclass(frozen=True)
class RouteStop:
    """A pickup/drop-off point on a route; immutable while a position is evaluated against it."""

    stop_id: int
    tenant_id: int
    route_id: int
    name: str
    latitude: float
    longitude: float
    stop_order: int
    address: Optional[str] = None
    scheduled_arrival: Optional[time] = None
    scheduled_departure: Optional[time] = None
    is_active: bool = True

    @property
    def position(self) -> Position:
        return Position(self.latitude, self.longitude)


@dataclass(frozen=True)
class Route:
    route_id: int
    tenant_id: int
    route_number: str
    name: str
    start_time: time
    end_time: time
    status: RouteStatus = RouteStatus.ACTIVE
    description: Optional[str] = None
    distance_km: float = 0.0
    estimated_duration_minutes: int = 0
    start_location: Optional[str] = None
    end_location: Optional[str] = None
    vehicle_id: Optional[int] = None
    driver_id: Optional[int] = None
    notes: Optional[str] = None
    stops: tuple[RouteStop, ...] = ()

    @property
    def is_fully_assigned(self) -> bool:
        return self.vehicle_id is not None and self.driver_id is not None

    @property
    def display_name(self) -> str:
        return f"{self.route_number} - {self.name}"

    __json_properties__ = ("is_fully_assigned", "display_name")


@dataclass(frozen=True)
class RouteSearch:
    search_term: Optional[str] = None
    status: Optional[RouteStatus] = None
    vehicle_id: Optional[int] = None
    driver_id: Optional[int] = None


@dataclass(frozen=True)
class CapacityCheck:
    route_id: int
    vehicle_id: int
    student_count: int
    vehicle_capacity: int

    @property
    def has_capacity(self) -> bool:
        return self.student_count <= self.vehicle_capacity

    __json_properties__ = ("has_capacity",)
