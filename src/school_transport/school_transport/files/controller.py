from __future__ import annotations

import io
from pathlib import PurePosixPath

from flask import Flask, request, send_file

from ..common.http import fail, respond, roles_required, token_required
from ..core.enums import STAFF_ROLES
from ..container import Container


def register(app: Flask, container: Container) -> None:
    def uploaded():
        return request.files.get("file")

    @app.route("/api/files/drivers/<int:driver_id>", methods=["POST"], endpoint="upload_driver_document")
    @roles_required(*STAFF_ROLES)
    def upload_driver_document(driver_id: int):
        file = uploaded()
        if file is None:
            return fail("No file uploaded")
        result = container.file_service.upload_driver_document(
            driver_id=driver_id,
            filename=file.filename or "",
            stream=file.stream,
            document_type=request.form.get("document_type", "document"),
        )
        return respond(result, message="File uploaded successfully", status=201)

    @app.route("/api/files/vehicles/<int:vehicle_id>", methods=["POST"], endpoint="upload_vehicle_document")
    @roles_required(*STAFF_ROLES)
    def upload_vehicle_document(vehicle_id: int):
        file = uploaded()
        if file is None:
            return fail("No file uploaded")
        result = container.file_service.upload_vehicle_document(
            vehicle_id=vehicle_id,
            filename=file.filename or "",
            stream=file.stream,
            document_type=request.form.get("document_type", "document"),
        )
        return respond(result, message="File uploaded successfully", status=201)

    @app.route("/api/files/students/<int:student_id>/photo", methods=["POST"], endpoint="upload_student_photo")
    @roles_required(*STAFF_ROLES)
    def upload_student_photo(student_id: int):
        file = uploaded()
        if file is None:
            return fail("No file uploaded")
        result = container.file_service.upload_student_photo(
            student_id=student_id, filename=file.filename or "", stream=file.stream
        )
        return respond(result, message="Photo uploaded successfully", status=201)

    @app.route("/api/files/<path:path>", methods=["GET"], endpoint="get_file")
    @token_required
    def get_file(path: str):
        result = container.file_service.get_file(path=path)
        if result.is_failure:
            return respond(result)
        return send_file(io.BytesIO(result.value), download_name=PurePosixPath(path).name)

    @app.route("/api/files/<path:path>", methods=["DELETE"], endpoint="delete_file")
    @roles_required(*STAFF_ROLES)
    def delete_file(path: str):
        result = container.file_service.delete_file(path=path)
        if result.is_success and not result.value:
            return fail("File not found", 404)
        return respond(result, message="File deleted successfully")
