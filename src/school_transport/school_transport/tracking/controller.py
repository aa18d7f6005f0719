from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import optional_datetime
from ..common.http import (
    body_int,
    body_position,
    current_identity,
    json_body,
    query_datetime,
    respond,
    roles_required,
    token_required,
)
from ..core.enums import STAFF_ROLES, Role
from ..core.exceptions import ValidationError
from ..container import Container

TRACKING_ROLES = STAFF_ROLES | {Role.DRIVER}


def register(app: Flask, container: Container) -> None:
    @app.route("/api/tracking/vehicles/<int:vehicle_id>/start", methods=["POST"], endpoint="start_tracking")
    @roles_required(*TRACKING_ROLES)
    def start_tracking(vehicle_id: int):
        result = container.tracking_service.start_tracking(
            tenant_id=current_identity().tenant_id, vehicle_id=vehicle_id, trip_id=body_int(json_body(), "trip_id")
        )
        return respond(result, message="Tracking started")

    @app.route("/api/tracking/vehicles/<int:vehicle_id>/stop", methods=["POST"], endpoint="stop_tracking")
    @roles_required(*TRACKING_ROLES)
    def stop_tracking(vehicle_id: int):
        result = container.tracking_service.stop_tracking(tenant_id=current_identity().tenant_id, vehicle_id=vehicle_id)
        return respond(result, message="Tracking stopped")

    @app.route("/api/tracking/vehicles/<int:vehicle_id>/location", methods=["POST"], endpoint="record_location")
    @roles_required(*TRACKING_ROLES)
    def record_location(vehicle_id: int):
        data = json_body()
        position = body_position(data)
        try:
            recorded_at = optional_datetime(data.get("recorded_at"))
        except ValueError:
            raise ValidationError("recorded_at must be an ISO timestamp")
        result = container.tracking_service.record_location(
            tenant_id=current_identity().tenant_id,
            vehicle_id=vehicle_id,
            latitude=position.latitude,
            longitude=position.longitude,
            recorded_at=recorded_at,
        )
        return respond(result, message="Location recorded", status=201)

    @app.route("/api/tracking/vehicles/<int:vehicle_id>/violations", methods=["POST"], endpoint="check_violations")
    @roles_required(*TRACKING_ROLES)
    def check_violations(vehicle_id: int):
        result = container.tracking_service.check_violations(
            tenant_id=current_identity().tenant_id, vehicle_id=vehicle_id, position=body_position(json_body())
        )
        return respond(result)

    @app.route("/api/tracking/trips/<int:trip_id>/eta/<int:stop_id>", methods=["GET"], endpoint="calculate_eta")
    @token_required
    def calculate_eta(trip_id: int, stop_id: int):
        result = container.tracking_service.calculate_eta(
            tenant_id=current_identity().tenant_id, trip_id=trip_id, stop_id=stop_id
        )
        return respond(result)

    @app.route("/api/tracking/vehicles/<int:vehicle_id>/history", methods=["GET"], endpoint="location_history")
    @token_required
    def location_history(vehicle_id: int):
        start = query_datetime("start")
        end = query_datetime("end")
        if start is None or end is None:
            raise ValidationError("start and end are required")
        result = container.tracking_service.get_location_history(
            tenant_id=current_identity().tenant_id, vehicle_id=vehicle_id, start=start, end=end
        )
        return respond(result)

    @app.route("/api/tracking/vehicles/active", methods=["GET"], endpoint="active_vehicle_locations")
    @token_required
    def active_vehicle_locations():
        return respond(container.tracking_service.get_active_vehicle_locations(tenant_id=current_identity().tenant_id))
