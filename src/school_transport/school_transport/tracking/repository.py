from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import VehicleLocation


class VehicleLocationRepository(Protocol):
    def add(self, location: VehicleLocation) -> int:
        raise NotImplementedError

    def latest(self, tenant_id: int, vehicle_id: int, *, before: Optional[datetime] = None) -> Optional[VehicleLocation]:
        raise NotImplementedError

    def latest_active(self, tenant_id: int, vehicle_id: int) -> Optional[VehicleLocation]:
        raise NotImplementedError

    def average_speed_since(self, tenant_id: int, vehicle_id: int, since: datetime) -> float:
        """Mean of the non-zero speeds recorded since `since`; 0 when there are none."""

        raise NotImplementedError

    def history(self, tenant_id: int, vehicle_id: int, start: datetime, end: datetime) -> Sequence[VehicleLocation]:
        raise NotImplementedError

    def deactivate_vehicle(self, tenant_id: int, vehicle_id: int) -> int:
        raise NotImplementedError

    def active_latest_per_vehicle(self, tenant_id: int) -> Sequence[VehicleLocation]:
        raise NotImplementedError
