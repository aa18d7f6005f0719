from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import Attendance, AttendanceSearch


class AttendanceRepository(Protocol):
    def get_by_id(self, tenant_id: int, attendance_id: int) -> Optional[Attendance]:
        raise NotImplementedError

    def get_by_student_and_trip(self, tenant_id: int, student_id: int, trip_id: int) -> Optional[Attendance]:
        raise NotImplementedError

    def search(
        self, *, tenant_id: int, criteria: AttendanceSearch, page: int, page_size: int
    ) -> tuple[list[Attendance], int]:
        raise NotImplementedError

    def list_by_student(self, tenant_id: int, student_id: int, start: date, end: date) -> Sequence[Attendance]:
        raise NotImplementedError

    def list_by_trip(self, tenant_id: int, trip_id: int) -> Sequence[Attendance]:
        raise NotImplementedError

    def present_student_ids(self, tenant_id: int, student_ids: Sequence[int], on_date: date) -> set[int]:
        raise NotImplementedError

    def create(self, attendance: Attendance) -> int:
        raise NotImplementedError

    def update(self, attendance: Attendance) -> bool:
        raise NotImplementedError

    def soft_delete(self, *, tenant_id: int, attendance_id: int, deleted_by: Optional[int]) -> bool:
        raise NotImplementedError
