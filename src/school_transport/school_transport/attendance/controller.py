from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from flask import Flask

from ..common.datetime_utils import optional_datetime
from ..common.http import (
    body_int,
    body_position,
    current_identity,
    json_body,
    paging_args,
    query_date,
    query_enum,
    query_int,
    respond,
    roles_required,
    token_required,
)
from ..core.enums import STAFF_ROLES, AttendanceStatus, Role
from ..core.exceptions import ValidationError
from ..container import Container
from .model import AttendanceSearch

ATTENDANCE_RECORDERS = STAFF_ROLES | {Role.DRIVER}


def _event_time(data: dict, key: str) -> Optional[datetime]:
    try:
        return optional_datetime(data.get(key))
    except ValueError:
        raise ValidationError(f"{key} must be an ISO timestamp")


def _date_range() -> tuple[date, date]:
    start = query_date("start_date")
    end = query_date("end_date")
    if start is None or end is None:
        raise ValidationError("start_date and end_date are required")
    return start, end


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance", methods=["GET"], endpoint="list_attendance")
    @token_required
    def list_attendance():
        page, page_size = paging_args()
        criteria = AttendanceSearch(
            student_id=query_int("student_id"),
            trip_id=query_int("trip_id"),
            route_id=query_int("route_id"),
            status=query_enum("status", AttendanceStatus),
            date_from=query_date("date_from"),
            date_to=query_date("date_to"),
        )
        result = container.attendance_service.search_attendance(
            tenant_id=current_identity().tenant_id, criteria=criteria, page=page, page_size=page_size
        )
        return respond(result)

    @app.route("/api/attendance/<int:attendance_id>", methods=["GET"], endpoint="get_attendance")
    @token_required
    def get_attendance(attendance_id: int):
        result = container.attendance_service.get_attendance(
            tenant_id=current_identity().tenant_id, attendance_id=attendance_id
        )
        return respond(result)

    @app.route("/api/attendance", methods=["POST"], endpoint="create_attendance")
    @roles_required(*ATTENDANCE_RECORDERS)
    def create_attendance():
        me = current_identity()
        result = container.attendance_service.create_attendance(
            tenant_id=me.tenant_id, payload=json_body(), recorded_by=me.user_id
        )
        return respond(result, message="Attendance recorded successfully", status=201)

    @app.route("/api/attendance/<int:attendance_id>", methods=["PUT"], endpoint="update_attendance")
    @roles_required(*ATTENDANCE_RECORDERS)
    def update_attendance(attendance_id: int):
        result = container.attendance_service.update_attendance(
            tenant_id=current_identity().tenant_id, attendance_id=attendance_id, payload=json_body()
        )
        return respond(result, message="Attendance updated successfully")

    @app.route("/api/attendance/<int:attendance_id>", methods=["DELETE"], endpoint="delete_attendance")
    @roles_required(*STAFF_ROLES)
    def delete_attendance(attendance_id: int):
        me = current_identity()
        result = container.attendance_service.delete_attendance(
            tenant_id=me.tenant_id, attendance_id=attendance_id, deleted_by=me.user_id
        )
        return respond(result, message="Attendance deleted successfully")

    @app.route("/api/attendance/student/<int:student_id>", methods=["GET"], endpoint="attendance_by_student")
    @token_required
    def attendance_by_student(student_id: int):
        start, end = _date_range()
        result = container.attendance_service.get_attendance_by_student(
            tenant_id=current_identity().tenant_id, student_id=student_id, start_date=start, end_date=end
        )
        return respond(result)

    @app.route("/api/attendance/student/<int:student_id>/summary", methods=["GET"], endpoint="attendance_summary")
    @token_required
    def attendance_summary(student_id: int):
        start, end = _date_range()
        result = container.attendance_service.get_transportation_summary(
            tenant_id=current_identity().tenant_id, student_id=student_id, start_date=start, end_date=end
        )
        return respond(result)

    @app.route("/api/attendance/trip/<int:trip_id>", methods=["GET"], endpoint="attendance_by_trip")
    @token_required
    def attendance_by_trip(trip_id: int):
        result = container.attendance_service.get_attendance_by_trip(tenant_id=current_identity().tenant_id, trip_id=trip_id)
        return respond(result)

    @app.route("/api/attendance/boarding", methods=["POST"], endpoint="record_boarding")
    @roles_required(*ATTENDANCE_RECORDERS)
    def record_boarding():
        me = current_identity()
        data = json_body()
        result = container.attendance_service.record_boarding(
            tenant_id=me.tenant_id,
            student_id=body_int(data, "student_id"),
            trip_id=body_int(data, "trip_id"),
            stop_id=body_int(data, "stop_id", required=False),
            boarding_time=_event_time(data, "boarding_time"),
            recorded_by=me.user_id,
        )
        return respond(result, message="Boarding recorded")

    @app.route("/api/attendance/alighting", methods=["POST"], endpoint="record_alighting")
    @roles_required(*ATTENDANCE_RECORDERS)
    def record_alighting():
        data = json_body()
        result = container.attendance_service.record_alighting(
            tenant_id=current_identity().tenant_id,
            student_id=body_int(data, "student_id"),
            trip_id=body_int(data, "trip_id"),
            stop_id=body_int(data, "stop_id", required=False),
            alighting_time=_event_time(data, "alighting_time"),
        )
        return respond(result, message="Alighting recorded")

    @app.route("/api/attendance/trip/<int:trip_id>/geofence-alerts", methods=["POST"], endpoint="geofence_alerts")
    @roles_required(*ATTENDANCE_RECORDERS)
    def geofence_alerts(trip_id: int):
        result = container.attendance_service.get_geofence_alerts(
            tenant_id=current_identity().tenant_id, trip_id=trip_id, position=body_position(json_body())
        )
        return respond(result)
