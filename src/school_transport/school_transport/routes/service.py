from __future__ import annotations

from dataclasses import replace
from typing import Any, Optional

from ..common.datetime_utils import parse_hhmm
from ..common.validators import require_latitude, require_longitude, require_non_empty
from ..core.enums import RouteStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..core.result import PagedResult, service_result
from ..drivers.repository import DriverRepository
from ..students.model import Student
from ..students.repository import StudentRepository
from ..vehicles.repository import VehicleRepository
from .model import CapacityCheck, Route, RouteSearch, RouteStop
from .repository import RouteRepository


def _time_field(payload: dict, key: str, current: Any):
    raw = payload.get(key)
    if raw in (None, ""):
        return current
    try:
        return parse_hhmm(str(raw)[:5])
    except ValueError:
        raise ValidationError(f"{key} must be HH:MM")


def build_route(payload: dict, *, tenant_id: int, base: Optional[Route] = None) -> Route:
    b = base

    def pick(key: str, current: Any = None) -> Any:
        return payload[key] if key in payload else current

    status_raw = pick("status")
    try:
        status = RouteStatus(str(status_raw).upper()) if status_raw else (b.status if b else RouteStatus.ACTIVE)
    except ValueError:
        raise ValidationError(f"Invalid route status: {status_raw}")

    start = _time_field(payload, "start_time", b.start_time if b else None)
    end = _time_field(payload, "end_time", b.end_time if b else None)
    if start is None or end is None:
        raise ValidationError("Start time and end time are required")
    if end <= start:
        raise ValidationError("End time must be after start time")

    distance = float(pick("distance_km", b.distance_km if b else 0) or 0)
    duration = int(pick("estimated_duration_minutes", b.estimated_duration_minutes if b else 0) or 0)
    if distance < 0 or duration < 0:
        raise ValidationError("Distance and duration cannot be negative")

    return Route(
        route_id=b.route_id if b else 0,
        tenant_id=tenant_id,
        route_number=require_non_empty(pick("route_number", b.route_number if b else None), "Route number"),
        name=require_non_empty(pick("name", b.name if b else None), "Route name"),
        description=pick("description", b.description if b else None),
        status=status,
        start_time=start,
        end_time=end,
        distance_km=distance,
        estimated_duration_minutes=duration,
        start_location=pick("start_location", b.start_location if b else None),
        end_location=pick("end_location", b.end_location if b else None),
        vehicle_id=pick("vehicle_id", b.vehicle_id if b else None),
        driver_id=pick("driver_id", b.driver_id if b else None),
        notes=pick("notes", b.notes if b else None),
    )


class RouteService:
    def __init__(
        self,
        routes: RouteRepository,
        students: StudentRepository,
        vehicles: VehicleRepository,
        drivers: DriverRepository,
    ):
        self._routes = routes
        self._students = students
        self._vehicles = vehicles
        self._drivers = drivers

    def _require(self, tenant_id: int, route_id: int) -> Route:
        route = self._routes.get_by_id(tenant_id, route_id)
        if not route:
            raise NotFoundError("Route not found")
        return route

    def _with_stops(self, route: Route) -> Route:
        return replace(route, stops=tuple(self._routes.list_stops(route.tenant_id, route.route_id)))

    def _check_assignments(self, route: Route) -> None:
        if route.vehicle_id is not None and not self._vehicles.get_by_id(route.tenant_id, route.vehicle_id):
            raise NotFoundError("Vehicle not found")
        if route.driver_id is not None and not self._drivers.get_by_id(route.tenant_id, route.driver_id):
            raise NotFoundError("Driver not found")

    @service_result("An error occurred while retrieving the route")
    def get_route(self, *, tenant_id: int, route_id: int) -> Route:
        return self._with_stops(self._require(tenant_id, route_id))

    @service_result("An error occurred while retrieving the route")
    def get_by_route_number(self, *, tenant_id: int, route_number: str) -> Route:
        route = self._routes.get_by_number(tenant_id, route_number)
        if not route:
            raise NotFoundError("Route not found")
        return self._with_stops(route)

    @service_result("An error occurred while retrieving routes")
    def search_routes(self, *, tenant_id: int, criteria: RouteSearch, page: int = 1, page_size: int = 20) -> PagedResult:
        items, total = self._routes.search(tenant_id=tenant_id, criteria=criteria, page=page, page_size=page_size)
        return PagedResult(items=items, total_count=total, page=page, page_size=page_size)

    @service_result("An error occurred while retrieving active routes")
    def get_active_routes(self, *, tenant_id: int) -> list[Route]:
        items, _ = self._routes.search(
            tenant_id=tenant_id, criteria=RouteSearch(status=RouteStatus.ACTIVE), page=1, page_size=1000
        )
        return items

    @service_result("An error occurred while creating the route")
    def create_route(self, *, tenant_id: int, payload: dict) -> Route:
        route = build_route(payload, tenant_id=tenant_id)
        if self._routes.get_by_number(tenant_id, route.route_number):
            raise ValidationError("Route number already exists")
        self._check_assignments(route)
        route_id = self._routes.create(route)
        return self._with_stops(self._require(tenant_id, route_id))

    @service_result("An error occurred while updating the route")
    def update_route(self, *, tenant_id: int, route_id: int, payload: dict) -> Route:
        existing = self._require(tenant_id, route_id)
        updated = build_route(payload, tenant_id=tenant_id, base=existing)
        if updated.route_number != existing.route_number and self._routes.get_by_number(tenant_id, updated.route_number):
            raise ValidationError("Route number already exists")
        self._check_assignments(updated)
        self._routes.update(updated)
        return self._with_stops(self._require(tenant_id, route_id))

    @service_result("An error occurred while deleting the route")
    def delete_route(self, *, tenant_id: int, route_id: int, deleted_by: Optional[int] = None) -> bool:
        self._require(tenant_id, route_id)
        return self._routes.soft_delete(tenant_id=tenant_id, route_id=route_id, deleted_by=deleted_by)

    @service_result("An error occurred while retrieving route stops")
    def get_stops(self, *, tenant_id: int, route_id: int) -> list[RouteStop]:
        self._require(tenant_id, route_id)
        return list(self._routes.list_stops(tenant_id, route_id))

    @service_result("An error occurred while adding the stop")
    def add_stop(self, *, tenant_id: int, route_id: int, payload: dict) -> RouteStop:
        self._require(tenant_id, route_id)
        existing = self._routes.list_stops(tenant_id, route_id)
        order_raw = payload.get("stop_order")
        stop_order = int(order_raw) if order_raw not in (None, "") else len(existing) + 1
        if stop_order < 1:
            raise ValidationError("Stop order must be at least 1")
        if any(s.stop_order == stop_order for s in existing):
            raise ValidationError(f"A stop with order {stop_order} already exists on this route")
        if payload.get("latitude") is None or payload.get("longitude") is None:
            raise ValidationError("Latitude and longitude are required")

        stop = RouteStop(
            stop_id=0,
            tenant_id=tenant_id,
            route_id=route_id,
            name=require_non_empty(payload.get("name"), "Stop name"),
            latitude=require_latitude(payload["latitude"]),
            longitude=require_longitude(payload["longitude"]),
            stop_order=stop_order,
            address=payload.get("address"),
            scheduled_arrival=_time_field(payload, "scheduled_arrival", None),
            scheduled_departure=_time_field(payload, "scheduled_departure", None),
        )
        stop_id = self._routes.add_stop(stop)
        return replace(stop, stop_id=stop_id)

    @service_result("An error occurred while removing the stop")
    def remove_stop(self, *, tenant_id: int, route_id: int, stop_id: int, deleted_by: Optional[int] = None) -> bool:
        stop = self._routes.get_stop(tenant_id, stop_id)
        if not stop or stop.route_id != route_id:
            raise NotFoundError("Stop not found")
        return self._routes.remove_stop(tenant_id=tenant_id, stop_id=stop_id, deleted_by=deleted_by)

    @service_result("An error occurred while retrieving students on route")
    def get_students_on_route(self, *, tenant_id: int, route_id: int) -> list[Student]:
        self._require(tenant_id, route_id)
        return list(self._students.list_by_route(tenant_id, route_id))

    @service_result("An error occurred while validating route capacity")
    def validate_route_capacity(self, *, tenant_id: int, route_id: int, vehicle_id: int) -> CapacityCheck:
        self._require(tenant_id, route_id)
        vehicle = self._vehicles.get_by_id(tenant_id, vehicle_id)
        if not vehicle:
            raise NotFoundError("Vehicle not found")
        count = len(self._students.list_by_route(tenant_id, route_id))
        return CapacityCheck(route_id=route_id, vehicle_id=vehicle_id, student_count=count, vehicle_capacity=vehicle.capacity)
