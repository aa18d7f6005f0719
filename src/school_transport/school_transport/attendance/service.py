from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Callable, Optional

from ..common.datetime_utils import now_local, parse_iso_date, parse_iso_datetime
from ..common.geo import Position
from ..core.enums import AttendanceStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..core.result import PagedResult, service_result
from ..geofence.evaluator import evaluate_student_not_boarded
from ..geofence.model import GeofenceAlert
from ..notifications.service import NotificationService
from ..routes.repository import RouteRepository
from ..students.repository import StudentRepository
from ..trips.repository import TripRepository
from .model import Attendance, AttendanceSearch, AttendanceSummary
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


def parse_attendance_status(value: Any) -> AttendanceStatus:
    try:
        return AttendanceStatus(str(value).upper())
    except ValueError:
        raise ValidationError("Invalid attendance status")


def _optional_timestamp(payload: dict, key: str, current: Optional[datetime]) -> Optional[datetime]:
    if key not in payload:
        return current
    raw = payload[key]
    if not raw:
        return None
    try:
        return parse_iso_datetime(str(raw))
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 timestamp")


def build_attendance(
    payload: dict,
    *,
    tenant_id: int,
    today: date,
    recorded_by: Optional[int] = None,
    base: Optional[Attendance] = None,
) -> Attendance:
    b = base
    try:
        student_id = int(payload.get("student_id", b.student_id if b else 0) or 0)
        trip_id = int(payload.get("trip_id", b.trip_id if b else 0) or 0)
    except (TypeError, ValueError):
        raise ValidationError("Student and trip are required")
    if student_id <= 0 or trip_id <= 0:
        raise ValidationError("Student and trip are required")

    raw_date = payload.get("attendance_date")
    try:
        attendance_date = parse_iso_date(str(raw_date)) if raw_date else (b.attendance_date if b else today)
    except ValueError:
        raise ValidationError("attendance_date must be YYYY-MM-DD")

    status_raw = payload.get("status")
    if not status_raw and not b:
        raise ValidationError("Status is required")

    return Attendance(
        attendance_id=b.attendance_id if b else 0,
        tenant_id=tenant_id,
        student_id=student_id,
        trip_id=trip_id,
        attendance_date=attendance_date,
        status=parse_attendance_status(status_raw) if status_raw else b.status,
        boarding_time=_optional_timestamp(payload, "boarding_time", b.boarding_time if b else None),
        alighting_time=_optional_timestamp(payload, "alighting_time", b.alighting_time if b else None),
        boarding_location=payload.get("boarding_location", b.boarding_location if b else None),
        alighting_location=payload.get("alighting_location", b.alighting_location if b else None),
        notes=payload.get("notes", b.notes if b else None),
        recorded_by=recorded_by if recorded_by is not None else (b.recorded_by if b else None),
    )


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        students: StudentRepository,
        trips: TripRepository,
        routes: RouteRepository,
        notifications: NotificationService,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._students = students
        self._trips = trips
        self._routes = routes
        self._notifications = notifications
        self._clock = clock

    def _require(self, tenant_id: int, attendance_id: int) -> Attendance:
        record = self._attendance.get_by_id(tenant_id, attendance_id)
        if not record:
            raise NotFoundError("Attendance record not found")
        return record

    def _stop_label(self, tenant_id: int, stop_id: Optional[int]) -> Optional[str]:
        if stop_id is None:
            return None
        stop = self._routes.get_stop(tenant_id, stop_id)
        return stop.name if stop else f"Stop {stop_id}"

    def _check_references(self, record: Attendance) -> None:
        if not self._students.get_by_id(record.tenant_id, record.student_id):
            raise ValidationError("Student not found")
        if not self._trips.get_by_id(record.tenant_id, record.trip_id):
            raise ValidationError("Trip not found")

    @service_result("An error occurred while retrieving the attendance record")
    def get_attendance(self, *, tenant_id: int, attendance_id: int) -> Attendance:
        return self._require(tenant_id, attendance_id)

    @service_result("An error occurred while retrieving attendance records")
    def search_attendance(
        self, *, tenant_id: int, criteria: AttendanceSearch, page: int = 1, page_size: int = 20
    ) -> PagedResult:
        items, total = self._attendance.search(tenant_id=tenant_id, criteria=criteria, page=page, page_size=page_size)
        return PagedResult(items=items, total_count=total, page=page, page_size=page_size)

    @service_result("An error occurred while creating the attendance record")
    def create_attendance(self, *, tenant_id: int, payload: dict, recorded_by: Optional[int] = None) -> Attendance:
        record = build_attendance(payload, tenant_id=tenant_id, today=self._clock().date(), recorded_by=recorded_by)
        self._check_references(record)
        if self._attendance.get_by_student_and_trip(tenant_id, record.student_id, record.trip_id):
            raise ValidationError("Attendance record already exists for this student and trip")
        attendance_id = self._attendance.create(record)
        return self._require(tenant_id, attendance_id)

    @service_result("An error occurred while updating the attendance record")
    def update_attendance(self, *, tenant_id: int, attendance_id: int, payload: dict) -> Attendance:
        existing = self._require(tenant_id, attendance_id)
        # student and trip are fixed once recorded
        fixed = {k: v for k, v in payload.items() if k not in ("student_id", "trip_id")}
        updated = build_attendance(fixed, tenant_id=tenant_id, today=self._clock().date(), base=existing)
        self._attendance.update(updated)
        return self._require(tenant_id, attendance_id)

    @service_result("An error occurred while deleting the attendance record")
    def delete_attendance(self, *, tenant_id: int, attendance_id: int, deleted_by: Optional[int] = None) -> bool:
        self._require(tenant_id, attendance_id)
        return self._attendance.soft_delete(tenant_id=tenant_id, attendance_id=attendance_id, deleted_by=deleted_by)

    @service_result("An error occurred while retrieving student attendance records")
    def get_attendance_by_student(
        self, *, tenant_id: int, student_id: int, start_date: date, end_date: date
    ) -> list[Attendance]:
        if end_date < start_date:
            raise ValidationError("End date must be on or after start date")
        return list(self._attendance.list_by_student(tenant_id, student_id, start_date, end_date))

    @service_result("An error occurred while retrieving trip attendance records")
    def get_attendance_by_trip(self, *, tenant_id: int, trip_id: int) -> list[Attendance]:
        return list(self._attendance.list_by_trip(tenant_id, trip_id))

    @service_result("An error occurred while retrieving transportation history")
    def get_transportation_summary(
        self, *, tenant_id: int, student_id: int, start_date: date, end_date: date
    ) -> AttendanceSummary:
        if not self._students.get_by_id(tenant_id, student_id):
            raise NotFoundError("Student not found")
        records = self._attendance.list_by_student(tenant_id, student_id, start_date, end_date)
        counts = {status: 0 for status in AttendanceStatus}
        for r in records:
            counts[r.status] += 1
        return AttendanceSummary(
            student_id=student_id,
            start_date=start_date,
            end_date=end_date,
            total_records=len(records),
            present=counts[AttendanceStatus.PRESENT],
            absent=counts[AttendanceStatus.ABSENT],
            late=counts[AttendanceStatus.LATE],
            excused=counts[AttendanceStatus.EXCUSED],
            no_show=counts[AttendanceStatus.NO_SHOW],
        )

    @service_result("An error occurred while recording boarding")
    def record_boarding(
        self,
        *,
        tenant_id: int,
        student_id: int,
        trip_id: int,
        stop_id: Optional[int] = None,
        boarding_time: Optional[datetime] = None,
        recorded_by: Optional[int] = None,
    ) -> bool:
        at = boarding_time or self._clock()
        location = self._stop_label(tenant_id, stop_id)
        existing = self._attendance.get_by_student_and_trip(tenant_id, student_id, trip_id)
        if existing is None:
            self._attendance.create(
                Attendance(
                    attendance_id=0,
                    tenant_id=tenant_id,
                    student_id=student_id,
                    trip_id=trip_id,
                    attendance_date=at.date(),
                    status=AttendanceStatus.PRESENT,
                    boarding_time=at,
                    boarding_location=location,
                    recorded_by=recorded_by,
                )
            )
        else:
            self._attendance.update(
                replace(
                    existing,
                    status=AttendanceStatus.PRESENT,
                    boarding_time=at,
                    boarding_location=location or existing.boarding_location,
                )
            )

        self._notifications.send_attendance_update(
            tenant_id=tenant_id, student_id=student_id, trip_id=trip_id, status=AttendanceStatus.PRESENT, location=location
        )
        self._notifications.send_student_pickup_notification(tenant_id=tenant_id, student_id=student_id, status="Boarded")
        return True

    @service_result("An error occurred while recording alighting")
    def record_alighting(
        self,
        *,
        tenant_id: int,
        student_id: int,
        trip_id: int,
        stop_id: Optional[int] = None,
        alighting_time: Optional[datetime] = None,
    ) -> bool:
        existing = self._attendance.get_by_student_and_trip(tenant_id, student_id, trip_id)
        if existing is None:
            raise ValidationError("No boarding record found for this student and trip")
        location = self._stop_label(tenant_id, stop_id)
        self._attendance.update(
            replace(
                existing,
                alighting_time=alighting_time or self._clock(),
                alighting_location=location or existing.alighting_location,
            )
        )
        self._notifications.send_student_pickup_notification(tenant_id=tenant_id, student_id=student_id, status="Dropped off")
        return True

    @service_result("An error occurred while evaluating geofence alerts")
    def get_geofence_alerts(self, *, tenant_id: int, trip_id: int, position: Position) -> list[GeofenceAlert]:
        """Student Not Boarded alerts for stops around `position` on the trip's route."""
        trip = self._trips.get_by_id(tenant_id, trip_id)
        if not trip:
            raise NotFoundError("Trip not found")
        route = self._routes.get_by_id(tenant_id, trip.route_id)
        if not route:
            raise NotFoundError("Route not found")

        stops = list(self._routes.list_stops(tenant_id, route.route_id))
        students = self._students.list_by_stops(tenant_id, [s.stop_id for s in stops])
        by_stop: dict[int, list] = {}
        for student in students:
            if student.route_stop_id is not None:
                by_stop.setdefault(student.route_stop_id, []).append(student)

        now = self._clock()
        present = self._attendance.present_student_ids(tenant_id, [s.student_id for s in students], now.date())
        alerts = evaluate_student_not_boarded(
            position, stops, by_stop, present, now=now, trip_id=trip.trip_id, vehicle_id=trip.vehicle_id
        )
        for alert in alerts:
            self._notifications.send_geofence_alert(tenant_id=tenant_id, alert=alert.as_payload())
        if alerts:
            logger.warning("Trip %s: %d student(s) not boarded near current position", trip_id, len(alerts))
        return alerts
