from __future__ import annotations

import io
from datetime import datetime

import pytest

from src.school_transport.school_transport.files.service import FileUploadService

NOW = datetime(2026, 3, 2, 10, 5, 30)


@pytest.fixture
def service(tmp_path):
    return FileUploadService(tmp_path, max_bytes=1024, clock=lambda: NOW)


def test_driver_document_is_stored_under_owner_folder(service, tmp_path):
    result = service.upload_driver_document(
        driver_id=4, filename="license.PDF", stream=io.BytesIO(b"%PDF-1.4"), document_type="driving license"
    )

    assert result.is_success
    stored = result.value
    assert stored.path == "drivers/4/driver_4_driving_license_20260302_100530.pdf"
    assert stored.url == f"/api/files/{stored.path}"
    assert stored.size == 8
    assert (tmp_path / stored.path).read_bytes() == b"%PDF-1.4"


def test_student_photo_rejects_documents(service):
    result = service.upload_student_photo(student_id=1, filename="notes.pdf", stream=io.BytesIO(b"data"))
    assert result.is_failure
    assert result.error == "Invalid image file type or size"


def test_oversized_and_empty_uploads_are_rejected(service):
    too_big = service.upload_vehicle_document(
        vehicle_id=2, filename="reg.png", stream=io.BytesIO(b"x" * 1025), document_type="registration"
    )
    empty = service.upload_vehicle_document(
        vehicle_id=2, filename="reg.png", stream=io.BytesIO(b""), document_type="registration"
    )
    assert too_big.is_failure
    assert empty.is_failure


def test_get_and_delete_round_trip(service):
    stored = service.upload_student_photo(student_id=9, filename="me.jpg", stream=io.BytesIO(b"\xff\xd8jpeg")).value

    assert service.get_file(path=stored.path).value == b"\xff\xd8jpeg"
    assert service.delete_file(path=stored.path).value is True
    assert service.delete_file(path=stored.path).value is False
    assert service.get_file(path=stored.path).not_found


def test_paths_cannot_escape_upload_root(service):
    result = service.get_file(path="../../etc/passwd")
    assert result.is_failure
    assert result.error == "Invalid file path"
