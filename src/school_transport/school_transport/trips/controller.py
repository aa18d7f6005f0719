from __future__ import annotations

from typing import Optional

from flask import Flask

from ..common.http import (
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
from ..core.enums import STAFF_ROLES, Role, TripStatus
from ..core.exceptions import ValidationError
from ..container import Container
from .model import TripSearch

TRIP_OPERATORS = STAFF_ROLES | {Role.DRIVER}


def _optional_number(data: dict, key: str) -> Optional[float]:
    raw = data.get(key)
    if raw in (None, ""):
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a number")


def register(app: Flask, container: Container) -> None:
    @app.route("/api/trips", methods=["GET"], endpoint="list_trips")
    @token_required
    def list_trips():
        page, page_size = paging_args()
        criteria = TripSearch(
            route_id=query_int("route_id"),
            vehicle_id=query_int("vehicle_id"),
            driver_id=query_int("driver_id"),
            status=query_enum("status", TripStatus),
            date_from=query_date("date_from"),
            date_to=query_date("date_to"),
        )
        result = container.trip_service.search_trips(
            tenant_id=current_identity().tenant_id, criteria=criteria, page=page, page_size=page_size
        )
        return respond(result)

    @app.route("/api/trips/active", methods=["GET"], endpoint="active_trips")
    @token_required
    def active_trips():
        result = container.trip_service.get_active_trips(tenant_id=current_identity().tenant_id, trip_date=query_date("date"))
        return respond(result)

    @app.route("/api/trips/by-route/<int:route_id>", methods=["GET"], endpoint="trips_by_route")
    @token_required
    def trips_by_route(route_id: int):
        trip_date = query_date("date")
        if trip_date is None:
            raise ValidationError("date is required")
        result = container.trip_service.get_trips_by_route_and_date(
            tenant_id=current_identity().tenant_id, route_id=route_id, trip_date=trip_date
        )
        return respond(result)

    @app.route("/api/trips/<int:trip_id>", methods=["GET"], endpoint="get_trip")
    @token_required
    def get_trip(trip_id: int):
        return respond(container.trip_service.get_trip(tenant_id=current_identity().tenant_id, trip_id=trip_id))

    @app.route("/api/trips", methods=["POST"], endpoint="create_trip")
    @roles_required(*STAFF_ROLES)
    def create_trip():
        result = container.trip_service.create_trip(tenant_id=current_identity().tenant_id, payload=json_body())
        return respond(result, message="Trip created successfully", status=201)

    @app.route("/api/trips/<int:trip_id>", methods=["PUT"], endpoint="update_trip")
    @roles_required(*STAFF_ROLES)
    def update_trip(trip_id: int):
        result = container.trip_service.update_trip(
            tenant_id=current_identity().tenant_id, trip_id=trip_id, payload=json_body()
        )
        return respond(result, message="Trip updated successfully")

    @app.route("/api/trips/<int:trip_id>", methods=["DELETE"], endpoint="delete_trip")
    @roles_required(*STAFF_ROLES)
    def delete_trip(trip_id: int):
        me = current_identity()
        result = container.trip_service.delete_trip(tenant_id=me.tenant_id, trip_id=trip_id, deleted_by=me.user_id)
        return respond(result, message="Trip deleted successfully")

    @app.route("/api/trips/<int:trip_id>/start", methods=["POST"], endpoint="start_trip")
    @roles_required(*TRIP_OPERATORS)
    def start_trip(trip_id: int):
        result = container.trip_service.start_trip(
            tenant_id=current_identity().tenant_id,
            trip_id=trip_id,
            start_mileage=_optional_number(json_body(), "start_mileage"),
        )
        return respond(result, message="Trip started")

    @app.route("/api/trips/<int:trip_id>/end", methods=["POST"], endpoint="end_trip")
    @roles_required(*TRIP_OPERATORS)
    def end_trip(trip_id: int):
        result = container.trip_service.end_trip(
            tenant_id=current_identity().tenant_id,
            trip_id=trip_id,
            end_mileage=_optional_number(json_body(), "end_mileage"),
        )
        return respond(result, message="Trip completed")

    @app.route("/api/trips/<int:trip_id>/cancel", methods=["POST"], endpoint="cancel_trip")
    @roles_required(*STAFF_ROLES)
    def cancel_trip(trip_id: int):
        result = container.trip_service.cancel_trip(
            tenant_id=current_identity().tenant_id, trip_id=trip_id, reason=json_body().get("reason")
        )
        return respond(result, message="Trip cancelled")
