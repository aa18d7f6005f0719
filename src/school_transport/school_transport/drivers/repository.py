from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import DriverStatus
from .model import Driver, DriverSearch


class DriverRepository(Protocol):
    def get_by_id(self, tenant_id: int, driver_id: int) -> Optional[Driver]:
        raise NotImplementedError

    def get_by_license(self, tenant_id: int, license_number: str) -> Optional[Driver]:
        raise NotImplementedError

    def get_by_employee_number(self, tenant_id: int, employee_number: str) -> Optional[Driver]:
        raise NotImplementedError

    def search(self, *, tenant_id: int, criteria: DriverSearch, page: int, page_size: int) -> tuple[list[Driver], int]:
        raise NotImplementedError

    def list_available(self, tenant_id: int, on_date: date) -> Sequence[Driver]:
        """Active drivers whose license is still valid on `on_date`."""

        raise NotImplementedError

    def list_by_status(self, tenant_id: int, status: DriverStatus) -> Sequence[Driver]:
        raise NotImplementedError

    def create(self, driver: Driver) -> int:
        raise NotImplementedError

    def update(self, driver: Driver) -> bool:
        raise NotImplementedError

    def soft_delete(self, *, tenant_id: int, driver_id: int, deleted_by: Optional[int]) -> bool:
        raise NotImplementedError
