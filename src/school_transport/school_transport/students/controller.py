from __future__ import annotations

from flask import Flask, request

from ..common.http import (
    current_identity,
    json_body,
    paging_args,
    query_enum,
    query_int,
    respond,
    roles_required,
    token_required,
)
from ..core.enums import STAFF_ROLES, StudentStatus
from ..core.exceptions import ValidationError
from ..container import Container
from .model import ParentAccount, StudentSearch


def _parent_account(data: dict):
    raw = data.get("parent")
    if not raw:
        return None
    if not isinstance(raw, dict):
        raise ValidationError("Parent must be an object")
    return ParentAccount(
        username=raw.get("username", ""),
        email=raw.get("email", ""),
        password=raw.get("password", ""),
        first_name=raw.get("first_name"),
        last_name=raw.get("last_name"),
        phone=raw.get("phone"),
    )


def register(app: Flask, container: Container) -> None:
    @app.route("/api/students", methods=["GET"], endpoint="list_students")
    @token_required
    def list_students():
        page, page_size = paging_args()
        criteria = StudentSearch(
            search_term=request.args.get("search") or None,
            grade=request.args.get("grade") or None,
            school=request.args.get("school") or None,
            status=query_enum("status", StudentStatus),
            route_id=query_int("route_id"),
            sort_by=request.args.get("sort_by") or None,
            sort_descending=request.args.get("sort_descending", "").lower() in ("1", "true", "yes"),
        )
        result = container.student_service.search_students(
            tenant_id=current_identity().tenant_id, criteria=criteria, page=page, page_size=page_size
        )
        return respond(result)

    @app.route("/api/students/<int:student_id>", methods=["GET"], endpoint="get_student")
    @token_required
    def get_student(student_id: int):
        return respond(container.student_service.get_student(tenant_id=current_identity().tenant_id, student_id=student_id))

    @app.route("/api/students/by-number/<student_number>", methods=["GET"], endpoint="get_student_by_number")
    @token_required
    def get_student_by_number(student_number: str):
        result = container.student_service.get_by_student_number(
            tenant_id=current_identity().tenant_id, student_number=student_number
        )
        return respond(result)

    @app.route("/api/students", methods=["POST"], endpoint="create_student")
    @roles_required(*STAFF_ROLES)
    def create_student():
        data = json_body()
        result = container.student_service.create_student(
            tenant_id=current_identity().tenant_id, payload=data, parent=_parent_account(data)
        )
        return respond(result, message="Student created successfully", status=201)

    @app.route("/api/students/<int:student_id>", methods=["PUT"], endpoint="update_student")
    @roles_required(*STAFF_ROLES)
    def update_student(student_id: int):
        result = container.student_service.update_student(
            tenant_id=current_identity().tenant_id, student_id=student_id, payload=json_body()
        )
        return respond(result, message="Student updated successfully")

    @app.route("/api/students/<int:student_id>", methods=["DELETE"], endpoint="delete_student")
    @roles_required(*STAFF_ROLES)
    def delete_student(student_id: int):
        me = current_identity()
        result = container.student_service.delete_student(
            tenant_id=me.tenant_id, student_id=student_id, deleted_by=me.user_id
        )
        return respond(result, message="Student deleted successfully")

    @app.route("/api/students/by-route/<int:route_id>", methods=["GET"], endpoint="students_by_route")
    @token_required
    def students_by_route(route_id: int):
        result = container.student_service.get_students_by_route(tenant_id=current_identity().tenant_id, route_id=route_id)
        return respond(result)

    @app.route("/api/students/<int:student_id>/route", methods=["PUT"], endpoint="assign_student_route")
    @roles_required(*STAFF_ROLES)
    def assign_student_route(student_id: int):
        data = json_body()
        try:
            route_id = int(data["route_id"])
            stop_raw = data.get("route_stop_id")
            route_stop_id = int(stop_raw) if stop_raw not in (None, "") else None
        except (KeyError, TypeError, ValueError):
            raise ValidationError("A valid route_id is required")
        result = container.student_service.assign_to_route(
            tenant_id=current_identity().tenant_id, student_id=student_id, route_id=route_id, route_stop_id=route_stop_id
        )
        return respond(result, message="Student assigned to route")

    @app.route("/api/students/<int:student_id>/route", methods=["DELETE"], endpoint="remove_student_route")
    @roles_required(*STAFF_ROLES)
    def remove_student_route(student_id: int):
        result = container.student_service.remove_from_route(tenant_id=current_identity().tenant_id, student_id=student_id)
        return respond(result, message="Student removed from route")

    @app.route("/api/students/bulk-status", methods=["PUT"], endpoint="bulk_student_status")
    @roles_required(*STAFF_ROLES)
    def bulk_student_status():
        data = json_body()
        try:
            status = StudentStatus(str(data.get("status", "")).upper())
            student_ids = [int(v) for v in data.get("student_ids") or []]
        except (TypeError, ValueError):
            raise ValidationError("A valid status and list of student ids are required")
        result = container.student_service.bulk_update_status(
            tenant_id=current_identity().tenant_id, student_ids=student_ids, status=status
        )
        return respond(result, message="Student statuses updated")

    @app.route("/api/students/statistics", methods=["GET"], endpoint="school_statistics")
    @roles_required(*STAFF_ROLES)
    def school_statistics():
        return respond(container.student_service.get_school_statistics(tenant_id=current_identity().tenant_id))
