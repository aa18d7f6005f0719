from __future__ import annotations

from flask import Flask, request

from ..common.http import current_identity, json_body, paging_args, query_date, query_enum, respond, roles_required, token_required
from ..core.enums import STAFF_ROLES, DriverStatus
from ..container import Container
from .model import DriverSearch


def register(app: Flask, container: Container) -> None:
    @app.route("/api/drivers", methods=["GET"], endpoint="list_drivers")
    @token_required
    def list_drivers():
        page, page_size = paging_args()
        criteria = DriverSearch(search_term=request.args.get("search") or None, status=query_enum("status", DriverStatus))
        result = container.driver_service.search_drivers(
            tenant_id=current_identity().tenant_id, criteria=criteria, page=page, page_size=page_size
        )
        return respond(result)

    @app.route("/api/drivers/available", methods=["GET"], endpoint="available_drivers")
    @token_required
    def available_drivers():
        result = container.driver_service.get_available_drivers(
            tenant_id=current_identity().tenant_id, on_date=query_date("date")
        )
        return respond(result)

    @app.route("/api/drivers/status/<status>", methods=["GET"], endpoint="drivers_by_status")
    @token_required
    def drivers_by_status(status: str):
        return respond(container.driver_service.get_drivers_by_status(tenant_id=current_identity().tenant_id, status=status))

    @app.route("/api/drivers/<int:driver_id>", methods=["GET"], endpoint="get_driver")
    @token_required
    def get_driver(driver_id: int):
        return respond(container.driver_service.get_driver(tenant_id=current_identity().tenant_id, driver_id=driver_id))

    @app.route("/api/drivers/by-license/<license_number>", methods=["GET"], endpoint="get_driver_by_license")
    @token_required
    def get_driver_by_license(license_number: str):
        result = container.driver_service.get_by_license_number(
            tenant_id=current_identity().tenant_id, license_number=license_number
        )
        return respond(result)

    @app.route("/api/drivers", methods=["POST"], endpoint="create_driver")
    @roles_required(*STAFF_ROLES)
    def create_driver():
        result = container.driver_service.create_driver(tenant_id=current_identity().tenant_id, payload=json_body())
        return respond(result, message="Driver created successfully", status=201)

    @app.route("/api/drivers/<int:driver_id>", methods=["PUT"], endpoint="update_driver")
    @roles_required(*STAFF_ROLES)
    def update_driver(driver_id: int):
        result = container.driver_service.update_driver(
            tenant_id=current_identity().tenant_id, driver_id=driver_id, payload=json_body()
        )
        return respond(result, message="Driver updated successfully")

    @app.route("/api/drivers/<int:driver_id>", methods=["DELETE"], endpoint="delete_driver")
    @roles_required(*STAFF_ROLES)
    def delete_driver(driver_id: int):
        me = current_identity()
        result = container.driver_service.delete_driver(tenant_id=me.tenant_id, driver_id=driver_id, deleted_by=me.user_id)
        return respond(result, message="Driver deleted successfully")
