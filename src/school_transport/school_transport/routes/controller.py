from __future__ import annotations

from flask import Flask, request

from ..common.http import current_identity, json_body, paging_args, query_enum, query_int, respond, roles_required, token_required
from ..core.enums import STAFF_ROLES, RouteStatus
from ..core.exceptions import ValidationError
from ..container import Container
from .model import RouteSearch


def register(app: Flask, container: Container) -> None:
    @app.route("/api/routes", methods=["GET"], endpoint="list_routes")
    @token_required
    def list_routes():
        page, page_size = paging_args()
        criteria = RouteSearch(
            search_term=request.args.get("search") or None,
            status=query_enum("status", RouteStatus),
            vehicle_id=query_int("vehicle_id"),
            driver_id=query_int("driver_id"),
        )
        result = container.route_service.search_routes(
            tenant_id=current_identity().tenant_id, criteria=criteria, page=page, page_size=page_size
        )
        return respond(result)

    @app.route("/api/routes/active", methods=["GET"], endpoint="active_routes")
    @token_required
    def active_routes():
        return respond(container.route_service.get_active_routes(tenant_id=current_identity().tenant_id))

    @app.route("/api/routes/<int:route_id>", methods=["GET"], endpoint="get_route")
    @token_required
    def get_route(route_id: int):
        return respond(container.route_service.get_route(tenant_id=current_identity().tenant_id, route_id=route_id))

    @app.route("/api/routes/by-number/<route_number>", methods=["GET"], endpoint="get_route_by_number")
    @token_required
    def get_route_by_number(route_number: str):
        result = container.route_service.get_by_route_number(
            tenant_id=current_identity().tenant_id, route_number=route_number
        )
        return respond(result)

    @app.route("/api/routes", methods=["POST"], endpoint="create_route")
    @roles_required(*STAFF_ROLES)
    def create_route():
        result = container.route_service.create_route(tenant_id=current_identity().tenant_id, payload=json_body())
        return respond(result, message="Route created successfully", status=201)

    @app.route("/api/routes/<int:route_id>", methods=["PUT"], endpoint="update_route")
    @roles_required(*STAFF_ROLES)
    def update_route(route_id: int):
        result = container.route_service.update_route(
            tenant_id=current_identity().tenant_id, route_id=route_id, payload=json_body()
        )
        return respond(result, message="Route updated successfully")

    @app.route("/api/routes/<int:route_id>", methods=["DELETE"], endpoint="delete_route")
    @roles_required(*STAFF_ROLES)
    def delete_route(route_id: int):
        me = current_identity()
        result = container.route_service.delete_route(tenant_id=me.tenant_id, route_id=route_id, deleted_by=me.user_id)
        return respond(result, message="Route deleted successfully")

    @app.route("/api/routes/<int:route_id>/stops", methods=["GET"], endpoint="route_stops")
    @token_required
    def route_stops(route_id: int):
        return respond(container.route_service.get_stops(tenant_id=current_identity().tenant_id, route_id=route_id))

    @app.route("/api/routes/<int:route_id>/stops", methods=["POST"], endpoint="add_route_stop")
    @roles_required(*STAFF_ROLES)
    def add_route_stop(route_id: int):
        result = container.route_service.add_stop(
            tenant_id=current_identity().tenant_id, route_id=route_id, payload=json_body()
        )
        return respond(result, message="Stop added successfully", status=201)

    @app.route("/api/routes/<int:route_id>/stops/<int:stop_id>", methods=["DELETE"], endpoint="remove_route_stop")
    @roles_required(*STAFF_ROLES)
    def remove_route_stop(route_id: int, stop_id: int):
        me = current_identity()
        result = container.route_service.remove_stop(
            tenant_id=me.tenant_id, route_id=route_id, stop_id=stop_id, deleted_by=me.user_id
        )
        return respond(result, message="Stop removed successfully")

    @app.route("/api/routes/<int:route_id>/students", methods=["GET"], endpoint="route_students")
    @token_required
    def route_students(route_id: int):
        return respond(container.route_service.get_students_on_route(tenant_id=current_identity().tenant_id, route_id=route_id))

    @app.route("/api/routes/<int:route_id>/capacity", methods=["GET"], endpoint="route_capacity")
    @token_required
    def route_capacity(route_id: int):
        vehicle_id = query_int("vehicle_id")
        if vehicle_id is None:
            raise ValidationError("vehicle_id is required")
        result = container.route_service.validate_route_capacity(
            tenant_id=current_identity().tenant_id, route_id=route_id, vehicle_id=vehicle_id
        )
        return respond(result)
