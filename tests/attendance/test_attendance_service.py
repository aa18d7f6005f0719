from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, time

from src.school_transport.school_transport.common.geo import Position
from src.school_transport.school_transport.common.value_objects import Address, FullName
from src.school_transport.school_transport.core.enums import AlertSeverity, AttendanceStatus
from src.school_transport.school_transport.attendance.service import AttendanceService
from src.school_transport.school_transport.notifications.hub import NotificationHub, tenant_group
from src.school_transport.school_transport.notifications.service import NotificationService
from src.school_transport.school_transport.routes.model import Route, RouteStop
from src.school_transport.school_transport.students.model import Student

NOW = datetime(2026, 3, 2, 6, 50, 0)
STOP = RouteStop(stop_id=10, tenant_id=1, route_id=1, name="Olaya St", latitude=24.69, longitude=46.685, stop_order=1)


@dataclass(frozen=True)
class StubTrip:
    trip_id: int
    tenant_id: int = 1
    route_id: int = 1
    vehicle_id: int = 3


def _student(student_id: int) -> Student:
    return Student(
        student_id=student_id,
        tenant_id=1,
        student_number=f"S-{student_id:03d}",
        name=FullName("Omar", f"Student{student_id}"),
        date_of_birth=date(2014, 1, 1),
        grade="5",
        school="Riyadh Elementary",
        address=Address("Olaya St", "Riyadh", "RY", "12211"),
        enrollment_date=date(2024, 9, 1),
        route_id=1,
        route_stop_id=STOP.stop_id,
    )


class InMemoryAttendance:
    def __init__(self):
        self.rows = {}

    def get_by_id(self, tenant_id, attendance_id):
        return self.rows.get(attendance_id)

    def get_by_student_and_trip(self, tenant_id, student_id, trip_id):
        return next((a for a in self.rows.values() if a.student_id == student_id and a.trip_id == trip_id), None)

    def list_by_student(self, tenant_id, student_id, start, end):
        return [a for a in self.rows.values() if a.student_id == student_id and start <= a.attendance_date <= end]

    def present_student_ids(self, tenant_id, student_ids, on_date):
        return {
            a.student_id
            for a in self.rows.values()
            if a.student_id in student_ids and a.attendance_date == on_date and a.status == AttendanceStatus.PRESENT
        }

    def create(self, attendance):
        attendance_id = len(self.rows) + 1
        self.rows[attendance_id] = replace(attendance, attendance_id=attendance_id)
        return attendance_id

    def update(self, attendance):
        self.rows[attendance.attendance_id] = attendance
        return True


class FakeStudents:
    def __init__(self, *students):
        self.rows = {s.student_id: s for s in students}

    def get_by_id(self, tenant_id, student_id):
        return self.rows.get(student_id)

    def list_by_stops(self, tenant_id, stop_ids):
        return [s for s in self.rows.values() if s.route_stop_id in stop_ids]


class FakeTrips:
    def get_by_id(self, tenant_id, trip_id):
        return StubTrip(trip_id) if trip_id == 7 else None


class FakeRoutes:
    def get_by_id(self, tenant_id, route_id):
        return Route(route_id=1, tenant_id=1, route_number="R-100", name="Olaya", start_time=time(6, 30), end_time=time(7, 30))

    def get_stop(self, tenant_id, stop_id):
        return STOP if stop_id == STOP.stop_id else None

    def list_stops(self, tenant_id, route_id):
        return [STOP]


def _service():
    hub = NotificationHub(clock=lambda: NOW)
    attendance = InMemoryAttendance()
    svc = AttendanceService(
        attendance,
        FakeStudents(_student(1), _student(2)),
        FakeTrips(),
        FakeRoutes(),
        NotificationService(hub),
        clock=lambda: NOW,
    )
    return svc, attendance, hub


def test_create_rejects_duplicate_for_student_and_trip():
    svc, _, _ = _service()

    first = svc.create_attendance(tenant_id=1, payload={"student_id": 1, "trip_id": 7, "status": "present"}, recorded_by=4)
    assert first.is_success
    assert first.value.attendance_date == NOW.date()
    assert first.value.recorded_by == 4

    dup = svc.create_attendance(tenant_id=1, payload={"student_id": 1, "trip_id": 7, "status": "ABSENT"})
    assert dup.error == "Attendance record already exists for this student and trip"


def test_create_checks_references_and_status():
    svc, _, _ = _service()
    assert svc.create_attendance(tenant_id=1, payload={"student_id": 1, "trip_id": 99, "status": "PRESENT"}).error == "Trip not found"
    assert svc.create_attendance(tenant_id=1, payload={"student_id": 1, "trip_id": 7}).error == "Status is required"
    assert svc.create_attendance(tenant_id=1, payload={"student_id": 1, "trip_id": 7, "status": "MAYBE"}).is_failure


def test_boarding_creates_then_updates_single_record():
    svc, attendance, hub = _service()
    sub = hub.subscribe([tenant_group(1)])
    svc.create_attendance(tenant_id=1, payload={"student_id": 2, "trip_id": 7, "status": "ABSENT"})

    assert svc.record_boarding(tenant_id=1, student_id=1, trip_id=7, stop_id=10).value is True
    assert svc.record_boarding(tenant_id=1, student_id=2, trip_id=7).value is True

    assert len(attendance.rows) == 2
    boarded = attendance.get_by_student_and_trip(1, 1, 7)
    assert boarded.status == AttendanceStatus.PRESENT
    assert boarded.boarding_time == NOW
    assert boarded.boarding_location == "Olaya St"
    assert attendance.get_by_student_and_trip(1, 2, 7).status == AttendanceStatus.PRESENT

    first = sub.get(timeout=0)
    assert first.event == "AttendanceUpdate"
    assert sub.get(timeout=0).event == "StudentPickupNotification"


def test_alighting_requires_boarding():
    svc, attendance, _ = _service()

    assert svc.record_alighting(tenant_id=1, student_id=1, trip_id=7).error == (
        "No boarding record found for this student and trip"
    )

    svc.record_boarding(tenant_id=1, student_id=1, trip_id=7)
    later = datetime(2026, 3, 2, 7, 25)
    assert svc.record_alighting(tenant_id=1, student_id=1, trip_id=7, alighting_time=later).is_success
    assert attendance.get_by_student_and_trip(1, 1, 7).alighting_time == later


def test_update_keeps_student_and_trip():
    svc, _, _ = _service()
    record = svc.create_attendance(tenant_id=1, payload={"student_id": 1, "trip_id": 7, "status": "LATE"}).value

    updated = svc.update_attendance(
        tenant_id=1, attendance_id=record.attendance_id, payload={"student_id": 2, "status": "EXCUSED", "notes": "Doctor"}
    ).value

    assert updated.student_id == 1
    assert updated.status == AttendanceStatus.EXCUSED
    assert updated.notes == "Doctor"


def test_summary_counts_by_status():
    svc, _, _ = _service()
    svc.create_attendance(tenant_id=1, payload={"student_id": 1, "trip_id": 7, "status": "PRESENT"})

    summary = svc.get_transportation_summary(
        tenant_id=1, student_id=1, start_date=date(2026, 3, 1), end_date=date(2026, 3, 31)
    ).value
    assert summary.total_records == 1
    assert summary.present == 1
    assert svc.get_attendance_by_student(
        tenant_id=1, student_id=1, start_date=date(2026, 3, 2), end_date=date(2026, 3, 1)
    ).is_failure


def test_geofence_alerts_only_for_students_not_present():
    svc, _, hub = _service()
    sub = hub.subscribe([tenant_group(1)])
    svc.record_boarding(tenant_id=1, student_id=1, trip_id=7)
    sub.get(timeout=0)
    sub.get(timeout=0)

    alerts = svc.get_geofence_alerts(tenant_id=1, trip_id=7, position=Position(24.69, 46.685)).value

    assert [a.student_id for a in alerts] == [2]
    assert alerts[0].severity == AlertSeverity.HIGH
    assert alerts[0].vehicle_id == 3
    pushed = sub.get(timeout=0)
    assert pushed.event == "GeofenceAlert"
    assert pushed.payload["student_id"] == 2


def test_geofence_alerts_unknown_trip():
    svc, _, _ = _service()
    assert svc.get_geofence_alerts(tenant_id=1, trip_id=1, position=Position(0.0, 0.0)).not_found
