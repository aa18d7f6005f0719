from __future__ import annotations

import math
from datetime import date, datetime, time

from src.school_transport.school_transport.common.geo import Position
from src.school_transport.school_transport.common.value_objects import Address, FullName
from src.school_transport.school_transport.core.enums import AlertSeverity, ViolationType
from src.school_transport.school_transport.geofence.evaluator import (
    evaluate_restricted_areas,
    evaluate_route_deviation,
    evaluate_speed,
    evaluate_student_not_boarded,
)
from src.school_transport.school_transport.geofence.model import RestrictedArea
from src.school_transport.school_transport.routes.model import RouteStop
from src.school_transport.school_transport.students.model import Student

KM_PER_DEGREE_LAT = 6371.0 * math.pi / 180.0
NOW = datetime(2026, 3, 2, 7, 0, 0)

STOP = RouteStop(stop_id=10, tenant_id=1, route_id=1, name="Olaya St", latitude=24.69, longitude=46.685, stop_order=1)


def _student(student_id: int) -> Student:
    return Student(
        student_id=student_id,
        tenant_id=1,
        student_number=f"S-{student_id:03d}",
        name=FullName("Sara", "Ahmed"),
        date_of_birth=date(2015, 5, 1),
        grade="4",
        school="Riyadh Elementary",
        address=Address("King Fahd Rd", "Riyadh", "RY", "12211"),
        enrollment_date=date(2024, 9, 1),
        route_id=1,
        route_stop_id=STOP.stop_id,
    )


def _north_of_stop(km: float) -> Position:
    return Position(STOP.latitude + km / KM_PER_DEGREE_LAT, STOP.longitude)


def test_high_alert_when_bus_is_at_stop_and_student_missing():
    alerts = evaluate_student_not_boarded(
        STOP.position, [STOP], {STOP.stop_id: [_student(1)]}, [], now=NOW, trip_id=5, vehicle_id=3
    )

    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.violation_type == ViolationType.STUDENT_NOT_BOARDED
    assert alert.severity == AlertSeverity.HIGH
    assert alert.student_id == 1
    assert alert.stop_id == STOP.stop_id
    assert alert.trip_id == 5
    assert alert.timestamp == NOW


def test_no_alert_for_present_student():
    alerts = evaluate_student_not_boarded(STOP.position, [STOP], {STOP.stop_id: [_student(1)]}, [1], now=NOW)
    assert alerts == []


def test_no_alert_outside_radius():
    alerts = evaluate_student_not_boarded(_north_of_stop(1.0), [STOP], {STOP.stop_id: [_student(1)]}, [], now=NOW)
    assert alerts == []


def test_medium_alert_between_inner_and_outer_radius():
    alerts = evaluate_student_not_boarded(_north_of_stop(0.3), [STOP], {STOP.stop_id: [_student(1), _student(2)]}, [2], now=NOW)

    assert [a.student_id for a in alerts] == [1]
    assert alerts[0].severity == AlertSeverity.MEDIUM
    assert 0.29 < alerts[0].distance_km < 0.31


def test_route_deviation_thresholds():
    assert evaluate_route_deviation(_north_of_stop(1.0), [STOP], now=NOW) is None

    medium = evaluate_route_deviation(_north_of_stop(3.0), [STOP], now=NOW)
    assert medium is not None and medium.severity == AlertSeverity.MEDIUM

    severe = evaluate_route_deviation(_north_of_stop(6.0), [STOP], now=NOW)
    assert severe is not None and severe.severity == AlertSeverity.HIGH
    assert evaluate_route_deviation(STOP.position, [], now=NOW) is None


def test_speed_violation_severity():
    assert evaluate_speed(STOP.position, 60.0, now=NOW) is None
    assert evaluate_speed(STOP.position, 65.0, now=NOW).severity == AlertSeverity.MEDIUM
    assert evaluate_speed(STOP.position, 80.0, now=NOW).severity == AlertSeverity.HIGH


def test_restricted_area_only_inside_time_window():
    area = RestrictedArea(
        name="School zone", center=STOP.position, radius_km=0.2, restricted_from=time(6, 0), restricted_until=time(8, 0)
    )
    inside = evaluate_restricted_areas(STOP.position, [area], now=NOW)
    assert len(inside) == 1 and inside[0].violation_type == ViolationType.RESTRICTED_AREA

    after_hours = evaluate_restricted_areas(STOP.position, [area], now=datetime(2026, 3, 2, 12, 0))
    assert after_hours == []


def test_restricted_area_edge_of_radius():
    area = RestrictedArea(
        name="School zone", center=STOP.position, radius_km=0.2, restricted_from=time(6, 0), restricted_until=time(8, 0)
    )

    near_edge = evaluate_restricted_areas(_north_of_stop(0.19), [area], now=NOW)
    assert len(near_edge) == 1
    assert near_edge[0].distance_km == 0.19

    assert evaluate_restricted_areas(_north_of_stop(0.21), [area], now=NOW) == []
