from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Callable, Optional

from werkzeug.utils import secure_filename

from ..common.datetime_utils import now_local
from ..core.constants import ALLOWED_DOCUMENT_EXTENSIONS, ALLOWED_IMAGE_EXTENSIONS, MAX_UPLOAD_BYTES
from ..core.enums import UploadKind
from ..core.exceptions import NotFoundError, ValidationError
from ..core.result import service_result

logger = logging.getLogger(__name__)

_PREFIX = {UploadKind.DRIVER: "driver", UploadKind.VEHICLE: "vehicle", UploadKind.STUDENT: "student"}


@dataclass(frozen=True)
class StoredFile:
    path: str
    url: str
    size: int


class FileUploadService:
    """Stores uploads on local disk under <root>/<kind>/<owner id>/."""

    def __init__(
        self,
        root: str | os.PathLike,
        *,
        max_bytes: int = MAX_UPLOAD_BYTES,
        clock: Callable[[], datetime] = now_local,
    ):
        self._root = Path(root).resolve()
        self._max_bytes = int(max_bytes)
        self._clock = clock

    def _resolve(self, relative: str) -> Path:
        target = (self._root / relative.replace("\\", "/").lstrip("/")).resolve()
        if target != self._root and self._root not in target.parents:
            raise ValidationError("Invalid file path")
        return target

    def _store(
        self,
        *,
        kind: UploadKind,
        owner_id: int,
        label: str,
        filename: Optional[str],
        stream: BinaryIO,
        allowed: frozenset[str],
        error: str,
    ) -> StoredFile:
        ext = Path(filename or "").suffix.lower()
        if ext not in allowed:
            raise ValidationError(error)
        data = stream.read(self._max_bytes + 1)
        if not data or len(data) > self._max_bytes:
            raise ValidationError(error)

        safe_label = secure_filename(label) or "file"
        name = f"{_PREFIX[kind]}_{int(owner_id)}_{safe_label}_{self._clock():%Y%m%d_%H%M%S}{ext}"
        relative = f"{kind.value}/{int(owner_id)}/{name}"
        target = self._resolve(relative)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.info("Stored upload %s (%d bytes)", relative, len(data))
        return StoredFile(path=relative, url=self.file_url(relative), size=len(data))

    @service_result("An error occurred while uploading the driver document")
    def upload_driver_document(self, *, driver_id: int, filename: str, stream: BinaryIO, document_type: str) -> StoredFile:
        return self._store(
            kind=UploadKind.DRIVER,
            owner_id=driver_id,
            label=document_type,
            filename=filename,
            stream=stream,
            allowed=ALLOWED_DOCUMENT_EXTENSIONS,
            error="Invalid file type or size",
        )

    @service_result("An error occurred while uploading the vehicle document")
    def upload_vehicle_document(self, *, vehicle_id: int, filename: str, stream: BinaryIO, document_type: str) -> StoredFile:
        return self._store(
            kind=UploadKind.VEHICLE,
            owner_id=vehicle_id,
            label=document_type,
            filename=filename,
            stream=stream,
            allowed=ALLOWED_DOCUMENT_EXTENSIONS,
            error="Invalid file type or size",
        )

    @service_result("An error occurred while uploading the student photo")
    def upload_student_photo(self, *, student_id: int, filename: str, stream: BinaryIO) -> StoredFile:
        return self._store(
            kind=UploadKind.STUDENT,
            owner_id=student_id,
            label="photo",
            filename=filename,
            stream=stream,
            allowed=ALLOWED_IMAGE_EXTENSIONS,
            error="Invalid image file type or size",
        )

    @service_result("An error occurred while reading the file")
    def get_file(self, *, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise NotFoundError("File not found")
        return target.read_bytes()

    @service_result("An error occurred while deleting the file")
    def delete_file(self, *, path: str) -> bool:
        target = self._resolve(path)
        if not target.is_file():
            return False
        target.unlink()
        logger.info("Deleted upload %s", path)
        return True

    def file_url(self, path: str) -> str:
        normalized = path.replace("\\", "/").lstrip("/")
        return f"/api/files/{normalized}"
