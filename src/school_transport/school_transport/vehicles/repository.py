from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import VehicleStatus
from .model import Vehicle, VehicleSearch


class VehicleRepository(Protocol):
    def get_by_id(self, tenant_id: int, vehicle_id: int) -> Optional[Vehicle]:
        raise NotImplementedError

    def get_by_number(self, tenant_id: int, vehicle_number: str) -> Optional[Vehicle]:
        raise NotImplementedError

    def get_by_plate(self, tenant_id: int, license_plate: str) -> Optional[Vehicle]:
        raise NotImplementedError

    def search(self, *, tenant_id: int, criteria: VehicleSearch, page: int, page_size: int) -> tuple[list[Vehicle], int]:
        raise NotImplementedError

    def list_available(self, tenant_id: int, on_date: date) -> Sequence[Vehicle]:
        raise NotImplementedError

    def create(self, vehicle: Vehicle) -> int:
        raise NotImplementedError

    def update(self, vehicle: Vehicle) -> bool:
        raise NotImplementedError

    def set_driver(self, *, tenant_id: int, vehicle_id: int, driver_id: Optional[int]) -> bool:
        raise NotImplementedError

    def set_status(self, *, tenant_id: int, vehicle_id: int, status: VehicleStatus) -> bool:
        raise NotImplementedError

    def update_location(self, *, tenant_id: int, vehicle_id: int, latitude: float, longitude: float, at: datetime) -> bool:
        raise NotImplementedError

    def update_mileage(self, *, tenant_id: int, vehicle_id: int, mileage: float) -> bool:
        raise NotImplementedError

    def soft_delete(self, *, tenant_id: int, vehicle_id: int, deleted_by: Optional[int]) -> bool:
        raise NotImplementedError
