from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import Role, StudentStatus
from .model import SchoolStatistics, Student, StudentSearch


class StudentRepository(Protocol):
    def get_by_id(self, tenant_id: int, student_id: int) -> Optional[Student]:
        raise NotImplementedError

    def get_by_number(self, tenant_id: int, student_number: str) -> Optional[Student]:
        raise NotImplementedError

    def search(self, *, tenant_id: int, criteria: StudentSearch, page: int, page_size: int) -> tuple[list[Student], int]:
        raise NotImplementedError

    def list_by_route(self, tenant_id: int, route_id: int) -> Sequence[Student]:
        raise NotImplementedError

    def list_by_stops(self, tenant_id: int, stop_ids: Sequence[int]) -> Sequence[Student]:
        raise NotImplementedError

    def create(self, student: Student) -> int:
        raise NotImplementedError

    def create_with_parent(
        self,
        student: Student,
        *,
        username: str,
        email: str,
        password_hash: str,
        role: Role,
        first_name: Optional[str],
        last_name: Optional[str],
        phone: Optional[str],
    ) -> tuple[int, int]:
        """Insert parent user and student in one transaction; returns (student_id, user_id)."""

        raise NotImplementedError

    def update(self, student: Student) -> bool:
        raise NotImplementedError

    def set_route(self, *, tenant_id: int, student_id: int, route_id: Optional[int], route_stop_id: Optional[int]) -> bool:
        raise NotImplementedError

    def update_status_bulk(self, *, tenant_id: int, student_ids: Sequence[int], status: StudentStatus) -> int:
        raise NotImplementedError

    def soft_delete(self, *, tenant_id: int, student_id: int, deleted_by: Optional[int]) -> bool:
        raise NotImplementedError

    def school_statistics(self, tenant_id: int) -> Sequence[SchoolStatistics]:
        raise NotImplementedError
