from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import Trip, TripSearch


class TripRepository(Protocol):
    def get_by_id(self, tenant_id: int, trip_id: int) -> Optional[Trip]:
        raise NotImplementedError

    def search(self, *, tenant_id: int, criteria: TripSearch, page: int, page_size: int) -> tuple[list[Trip], int]:
        raise NotImplementedError

    def list_by_route_and_date(self, tenant_id: int, route_id: int, trip_date: date) -> Sequence[Trip]:
        raise NotImplementedError

    def list_active(self, tenant_id: int, trip_date: date) -> Sequence[Trip]:
        """IN_PROGRESS trips scheduled on the given day."""

        raise NotImplementedError

    def get_in_progress_for_vehicle(self, tenant_id: int, vehicle_id: int) -> Optional[Trip]:
        raise NotImplementedError

    def create(self, trip: Trip) -> int:
        raise NotImplementedError

    def update(self, trip: Trip) -> bool:
        raise NotImplementedError

    def soft_delete(self, *, tenant_id: int, trip_id: int, deleted_by: Optional[int]) -> bool:
        raise NotImplementedError
