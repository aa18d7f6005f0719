"""Pure geofence rules.

Every function here takes plain values and returns new GeofenceAlert objects;
nothing reads the database or the clock.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Mapping, Optional, Sequence

from ..common.datetime_utils import in_time_window
from ..common.geo import Position, haversine_km, within_radius
from ..core.constants import (
    ALLOWED_ROUTE_DEVIATION_KM,
    SEVERE_ROUTE_DEVIATION_KM,
    SEVERE_SPEED_FACTOR,
    SPEED_LIMIT_KMH,
    STOP_GEOFENCE_RADIUS_KM,
    STOP_PROXIMITY_HIGH_KM,
)
from ..core.enums import AlertSeverity, ViolationType
from ..routes.model import RouteStop
from ..students.model import Student
from .model import GeofenceAlert, RestrictedArea


def proximity_severity(distance_km: float) -> AlertSeverity:
    return AlertSeverity.HIGH if distance_km <= STOP_PROXIMITY_HIGH_KM else AlertSeverity.MEDIUM


def nearest_stop(position: Position, stops: Sequence[RouteStop]) -> Optional[tuple[RouteStop, float]]:
    best: Optional[tuple[RouteStop, float]] = None
    for stop in stops:
        d = haversine_km(position, stop.position)
        if best is None or d < best[1]:
            best = (stop, d)
    return best


def evaluate_student_not_boarded(
    position: Position,
    stops: Sequence[RouteStop],
    students_by_stop: Mapping[int, Sequence[Student]],
    present_student_ids: Iterable[int],
    *,
    now: datetime,
    radius_km: float = STOP_GEOFENCE_RADIUS_KM,
    trip_id: Optional[int] = None,
    vehicle_id: Optional[int] = None,
) -> list[GeofenceAlert]:
    """One alert per student assigned to a nearby stop who is not marked present today."""
    present = set(present_student_ids)
    alerts: list[GeofenceAlert] = []
    for stop in stops:
        if not within_radius(position, stop.position, radius_km):
            continue
        distance = haversine_km(position, stop.position)
        for student in students_by_stop.get(stop.stop_id, ()):
            if student.student_id in present:
                continue
            alerts.append(
                GeofenceAlert(
                    violation_type=ViolationType.STUDENT_NOT_BOARDED,
                    severity=proximity_severity(distance),
                    description=f"Student {student.name.full_name} has not boarded at stop {stop.name}",
                    timestamp=now,
                    latitude=position.latitude,
                    longitude=position.longitude,
                    trip_id=trip_id,
                    vehicle_id=vehicle_id,
                    stop_id=stop.stop_id,
                    stop_name=stop.name,
                    student_id=student.student_id,
                    student_name=student.name.full_name,
                    distance_km=round(distance, 3),
                    action_required="Confirm student pickup with driver",
                )
            )
    return alerts


def evaluate_route_deviation(
    position: Position,
    stops: Sequence[RouteStop],
    *,
    now: datetime,
    trip_id: Optional[int] = None,
    vehicle_id: Optional[int] = None,
) -> Optional[GeofenceAlert]:
    found = nearest_stop(position, stops)
    if found is None:
        return None
    stop, distance = found
    if distance <= ALLOWED_ROUTE_DEVIATION_KM:
        return None
    severe = distance > SEVERE_ROUTE_DEVIATION_KM
    return GeofenceAlert(
        violation_type=ViolationType.ROUTE_DEVIATION,
        severity=AlertSeverity.HIGH if severe else AlertSeverity.MEDIUM,
        description=f"Vehicle is {distance:.2f}km away from the designated route",
        timestamp=now,
        latitude=position.latitude,
        longitude=position.longitude,
        trip_id=trip_id,
        vehicle_id=vehicle_id,
        stop_id=stop.stop_id,
        stop_name=stop.name,
        distance_km=round(distance, 3),
        action_required="Immediate contact with driver required" if severe else "Monitor closely",
    )


def evaluate_speed(
    position: Position,
    speed_kmh: float,
    *,
    now: datetime,
    speed_limit_kmh: float = SPEED_LIMIT_KMH,
    trip_id: Optional[int] = None,
    vehicle_id: Optional[int] = None,
) -> Optional[GeofenceAlert]:
    if speed_kmh <= speed_limit_kmh:
        return None
    return GeofenceAlert(
        violation_type=ViolationType.SPEED_VIOLATION,
        severity=AlertSeverity.HIGH if speed_kmh > speed_limit_kmh * SEVERE_SPEED_FACTOR else AlertSeverity.MEDIUM,
        description=f"Vehicle speed ({speed_kmh:.1f} km/h) exceeds limit ({speed_limit_kmh:g} km/h)",
        timestamp=now,
        latitude=position.latitude,
        longitude=position.longitude,
        trip_id=trip_id,
        vehicle_id=vehicle_id,
        action_required="Contact driver to reduce speed",
    )


def evaluate_restricted_areas(
    position: Position,
    areas: Iterable[RestrictedArea],
    *,
    now: datetime,
    trip_id: Optional[int] = None,
    vehicle_id: Optional[int] = None,
) -> list[GeofenceAlert]:
    alerts: list[GeofenceAlert] = []
    for area in areas:
        if not within_radius(position, area.center, area.radius_km):
            continue
        if not in_time_window(now.time(), area.restricted_from, area.restricted_until):
            continue
        distance = haversine_km(position, area.center)
        alerts.append(
            GeofenceAlert(
                violation_type=ViolationType.RESTRICTED_AREA,
                severity=AlertSeverity.HIGH,
                description=f"Vehicle entered restricted area: {area.name}",
                timestamp=now,
                latitude=position.latitude,
                longitude=position.longitude,
                trip_id=trip_id,
                vehicle_id=vehicle_id,
                distance_km=round(distance, 3),
                action_required="Immediate evacuation from restricted area",
            )
        )
    return alerts
