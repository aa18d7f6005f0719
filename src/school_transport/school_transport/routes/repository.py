from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Route, RouteSearch, RouteStop


class RouteRepository(Protocol):
    def get_by_id(self, tenant_id: int, route_id: int) -> Optional[Route]:
        raise NotImplementedError

    def get_by_number(self, tenant_id: int, route_number: str) -> Optional[Route]:
        raise NotImplementedError

    def search(self, *, tenant_id: int, criteria: RouteSearch, page: int, page_size: int) -> tuple[list[Route], int]:
        raise NotImplementedError

    def create(self, route: Route) -> int:
        raise NotImplementedError

    def update(self, route: Route) -> bool:
        raise NotImplementedError

    def soft_delete(self, *, tenant_id: int, route_id: int, deleted_by: Optional[int]) -> bool:
        raise NotImplementedError

    def list_stops(self, tenant_id: int, route_id: int) -> Sequence[RouteStop]:
        """Active stops ordered by stop_order."""

        raise NotImplementedError

    def get_stop(self, tenant_id: int, stop_id: int) -> Optional[RouteStop]:
        raise NotImplementedError

    def add_stop(self, stop: RouteStop) -> int:
        raise NotImplementedError

    def remove_stop(self, *, tenant_id: int, stop_id: int, deleted_by: Optional[int]) -> bool:
        raise NotImplementedError
