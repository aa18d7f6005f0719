from __future__ import annotations

from dataclasses import dataclass, replace

from src.school_transport.school_transport.routes.service import RouteService


@dataclass(frozen=True)
class StubVehicle:
    vehicle_id: int
    capacity: int


class InMemoryRoutes:
    def __init__(self):
        self.rows = {}
        self.stops = {}

    def get_by_id(self, tenant_id, route_id):
        r = self.rows.get(route_id)
        return r if r and r.tenant_id == tenant_id else None

    def get_by_number(self, tenant_id, route_number):
        return next((r for r in self.rows.values() if r.tenant_id == tenant_id and r.route_number == route_number), None)

    def create(self, route):
        route_id = len(self.rows) + 1
        self.rows[route_id] = replace(route, route_id=route_id)
        return route_id

    def update(self, route):
        self.rows[route.route_id] = route
        return True

    def list_stops(self, tenant_id, route_id):
        return sorted((s for s in self.stops.values() if s.route_id == route_id), key=lambda s: s.stop_order)

    def get_stop(self, tenant_id, stop_id):
        return self.stops.get(stop_id)

    def add_stop(self, stop):
        stop_id = len(self.stops) + 1
        self.stops[stop_id] = replace(stop, stop_id=stop_id)
        return stop_id

    def remove_stop(self, *, tenant_id, stop_id, deleted_by):
        return self.stops.pop(stop_id, None) is not None


class FakeStudents:
    def __init__(self, count):
        self.count = count

    def list_by_route(self, tenant_id, route_id):
        return [object()] * self.count


class FakeVehicles:
    def get_by_id(self, tenant_id, vehicle_id):
        return StubVehicle(vehicle_id, capacity=2) if vehicle_id == 3 else None


class FakeDrivers:
    def get_by_id(self, tenant_id, driver_id):
        return object() if driver_id == 5 else None


def _service(student_count=0):
    routes = InMemoryRoutes()
    return RouteService(routes, FakeStudents(student_count), FakeVehicles(), FakeDrivers()), routes


def _payload(**overrides):
    values = {"route_number": "R-100", "name": "Olaya Morning Loop", "start_time": "06:30", "end_time": "07:30"}
    values.update(overrides)
    return values


def test_create_route_validations():
    svc, _ = _service()

    assert svc.create_route(tenant_id=1, payload=_payload(end_time="06:00")).error == "End time must be after start time"
    assert svc.create_route(tenant_id=1, payload=_payload(start_time="6.30")).error == "start_time must be HH:MM"
    assert svc.create_route(tenant_id=1, payload=_payload(vehicle_id=9)).error == "Vehicle not found"

    created = svc.create_route(tenant_id=1, payload=_payload(vehicle_id=3, driver_id=5))
    assert created.is_success
    assert created.value.is_fully_assigned
    assert created.value.display_name == "R-100 - Olaya Morning Loop"
    assert svc.create_route(tenant_id=1, payload=_payload()).error == "Route number already exists"


def test_stops_are_ordered_and_unique():
    svc, _ = _service()
    route_id = svc.create_route(tenant_id=1, payload=_payload()).value.route_id

    first = svc.add_stop(tenant_id=1, route_id=route_id, payload={"name": "A", "latitude": 24.69, "longitude": 46.685})
    assert first.value.stop_order == 1
    second = svc.add_stop(tenant_id=1, route_id=route_id, payload={"name": "B", "latitude": 24.66, "longitude": 46.73})
    assert second.value.stop_order == 2

    clash = svc.add_stop(tenant_id=1, route_id=route_id, payload={"name": "C", "latitude": 1, "longitude": 1, "stop_order": 2})
    assert clash.error == "A stop with order 2 already exists on this route"
    bad = svc.add_stop(tenant_id=1, route_id=route_id, payload={"name": "D", "latitude": 95, "longitude": 1})
    assert bad.is_failure

    route = svc.get_route(tenant_id=1, route_id=route_id).value
    assert [s.name for s in route.stops] == ["A", "B"]

    assert svc.remove_stop(tenant_id=1, route_id=99, stop_id=first.value.stop_id).not_found
    assert svc.remove_stop(tenant_id=1, route_id=route_id, stop_id=first.value.stop_id).value is True


def test_capacity_check():
    svc, _ = _service(student_count=3)
    route_id = svc.create_route(tenant_id=1, payload=_payload()).value.route_id

    check = svc.validate_route_capacity(tenant_id=1, route_id=route_id, vehicle_id=3).value
    assert check.student_count == 3
    assert check.vehicle_capacity == 2
    assert not check.has_capacity
    assert svc.validate_route_capacity(tenant_id=1, route_id=route_id, vehicle_id=8).not_found
