from __future__ import annotations

from flask import Flask, request

from ..common.http import current_identity, json_body, paging_args, query_date, query_enum, respond, roles_required, token_required
from ..core.enums import STAFF_ROLES, VehicleStatus, VehicleType
from ..core.exceptions import ValidationError
from ..container import Container
from .model import VehicleSearch


def _number(data: dict, key: str) -> float:
    try:
        return float(data[key])
    except (KeyError, TypeError, ValueError):
        raise ValidationError(f"A numeric {key} is required")


def register(app: Flask, container: Container) -> None:
    @app.route("/api/vehicles", methods=["GET"], endpoint="list_vehicles")
    @token_required
    def list_vehicles():
        page, page_size = paging_args()
        criteria = VehicleSearch(
            search_term=request.args.get("search") or None,
            status=query_enum("status", VehicleStatus),
            vehicle_type=query_enum("vehicle_type", VehicleType),
        )
        result = container.vehicle_service.search_vehicles(
            tenant_id=current_identity().tenant_id, criteria=criteria, page=page, page_size=page_size
        )
        return respond(result)

    @app.route("/api/vehicles/available", methods=["GET"], endpoint="available_vehicles")
    @token_required
    def available_vehicles():
        result = container.vehicle_service.get_available_vehicles(
            tenant_id=current_identity().tenant_id, on_date=query_date("date")
        )
        return respond(result)

    @app.route("/api/vehicles/status/<status>", methods=["GET"], endpoint="vehicles_by_status")
    @token_required
    def vehicles_by_status(status: str):
        return respond(container.vehicle_service.get_vehicles_by_status(tenant_id=current_identity().tenant_id, status=status))

    @app.route("/api/vehicles/type/<vehicle_type>", methods=["GET"], endpoint="vehicles_by_type")
    @token_required
    def vehicles_by_type(vehicle_type: str):
        result = container.vehicle_service.get_vehicles_by_type(
            tenant_id=current_identity().tenant_id, vehicle_type=vehicle_type
        )
        return respond(result)

    @app.route("/api/vehicles/<int:vehicle_id>", methods=["GET"], endpoint="get_vehicle")
    @token_required
    def get_vehicle(vehicle_id: int):
        return respond(container.vehicle_service.get_vehicle(tenant_id=current_identity().tenant_id, vehicle_id=vehicle_id))

    @app.route("/api/vehicles/by-number/<vehicle_number>", methods=["GET"], endpoint="get_vehicle_by_number")
    @token_required
    def get_vehicle_by_number(vehicle_number: str):
        result = container.vehicle_service.get_by_vehicle_number(
            tenant_id=current_identity().tenant_id, vehicle_number=vehicle_number
        )
        return respond(result)

    @app.route("/api/vehicles", methods=["POST"], endpoint="create_vehicle")
    @roles_required(*STAFF_ROLES)
    def create_vehicle():
        result = container.vehicle_service.create_vehicle(tenant_id=current_identity().tenant_id, payload=json_body())
        return respond(result, message="Vehicle created successfully", status=201)

    @app.route("/api/vehicles/<int:vehicle_id>", methods=["PUT"], endpoint="update_vehicle")
    @roles_required(*STAFF_ROLES)
    def update_vehicle(vehicle_id: int):
        result = container.vehicle_service.update_vehicle(
            tenant_id=current_identity().tenant_id, vehicle_id=vehicle_id, payload=json_body()
        )
        return respond(result, message="Vehicle updated successfully")

    @app.route("/api/vehicles/<int:vehicle_id>", methods=["DELETE"], endpoint="delete_vehicle")
    @roles_required(*STAFF_ROLES)
    def delete_vehicle(vehicle_id: int):
        me = current_identity()
        result = container.vehicle_service.delete_vehicle(tenant_id=me.tenant_id, vehicle_id=vehicle_id, deleted_by=me.user_id)
        return respond(result, message="Vehicle deleted successfully")

    @app.route("/api/vehicles/<int:vehicle_id>/driver", methods=["PUT"], endpoint="assign_vehicle_driver")
    @roles_required(*STAFF_ROLES)
    def assign_vehicle_driver(vehicle_id: int):
        driver_id = int(_number(json_body(), "driver_id"))
        result = container.vehicle_service.assign_driver(
            tenant_id=current_identity().tenant_id, vehicle_id=vehicle_id, driver_id=driver_id
        )
        return respond(result, message="Driver assigned to vehicle")

    @app.route("/api/vehicles/<int:vehicle_id>/driver", methods=["DELETE"], endpoint="unassign_vehicle_driver")
    @roles_required(*STAFF_ROLES)
    def unassign_vehicle_driver(vehicle_id: int):
        result = container.vehicle_service.unassign_driver(tenant_id=current_identity().tenant_id, vehicle_id=vehicle_id)
        return respond(result, message="Driver unassigned from vehicle")

    @app.route("/api/vehicles/<int:vehicle_id>/status", methods=["PUT"], endpoint="update_vehicle_status")
    @roles_required(*STAFF_ROLES)
    def update_vehicle_status(vehicle_id: int):
        result = container.vehicle_service.update_status(
            tenant_id=current_identity().tenant_id, vehicle_id=vehicle_id, status=json_body().get("status", "")
        )
        return respond(result, message="Vehicle status updated")

    @app.route("/api/vehicles/<int:vehicle_id>/mileage", methods=["PUT"], endpoint="update_vehicle_mileage")
    @roles_required(*STAFF_ROLES)
    def update_vehicle_mileage(vehicle_id: int):
        result = container.vehicle_service.update_mileage(
            tenant_id=current_identity().tenant_id, vehicle_id=vehicle_id, mileage=_number(json_body(), "mileage")
        )
        return respond(result, message="Vehicle mileage updated")
