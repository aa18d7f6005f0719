from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from src.school_transport.school_transport.core.enums import VehicleStatus, VehicleType
from src.school_transport.school_transport.vehicles.service import DUPLICATE_VEHICLE, VehicleService

NOW = datetime(2026, 3, 2, 7, 0, 0)


class InMemoryVehicles:
    def __init__(self):
        self.rows = {}

    def get_by_id(self, tenant_id, vehicle_id):
        return self.rows.get(vehicle_id)

    def get_by_number(self, tenant_id, vehicle_number):
        return next((v for v in self.rows.values() if v.vehicle_number == vehicle_number), None)

    def get_by_plate(self, tenant_id, license_plate):
        return next((v for v in self.rows.values() if v.license_plate == license_plate), None)

    def create(self, vehicle):
        vehicle_id = len(self.rows) + 1
        self.rows[vehicle_id] = replace(vehicle, vehicle_id=vehicle_id)
        return vehicle_id

    def update(self, vehicle):
        self.rows[vehicle.vehicle_id] = vehicle
        return True

    def set_driver(self, *, tenant_id, vehicle_id, driver_id):
        self.rows[vehicle_id] = replace(self.rows[vehicle_id], driver_id=driver_id)
        return True

    def set_status(self, *, tenant_id, vehicle_id, status):
        self.rows[vehicle_id] = replace(self.rows[vehicle_id], status=status)
        return True

    def update_mileage(self, *, tenant_id, vehicle_id, mileage):
        self.rows[vehicle_id] = replace(self.rows[vehicle_id], mileage=mileage)
        return True

    def update_location(self, *, tenant_id, vehicle_id, latitude, longitude, at):
        self.rows[vehicle_id] = replace(
            self.rows[vehicle_id], current_latitude=latitude, current_longitude=longitude, last_location_update=at
        )
        return True


class FakeDrivers:
    def get_by_id(self, tenant_id, driver_id):
        return object() if driver_id == 5 else None


def _service():
    vehicles = InMemoryVehicles()
    return VehicleService(vehicles, FakeDrivers(), clock=lambda: NOW), vehicles


def _payload(**overrides):
    values = {
        "vehicle_number": "BUS-01",
        "license_plate": "ABC-1234",
        "vehicle_type": "bus",
        "make": "Mercedes",
        "model": "Sprinter",
        "year": 2022,
        "capacity": 30,
        "mileage": 1000,
    }
    values.update(overrides)
    return values


def test_create_and_duplicate_number_or_plate():
    svc, _ = _service()

    created = svc.create_vehicle(tenant_id=1, payload=_payload())
    assert created.is_success
    assert created.value.vehicle_type == VehicleType.BUS
    assert created.value.status == VehicleStatus.ACTIVE

    assert svc.create_vehicle(tenant_id=1, payload=_payload(license_plate="XYZ-9")).error == DUPLICATE_VEHICLE
    assert svc.create_vehicle(tenant_id=1, payload=_payload(vehicle_number="BUS-02")).error == DUPLICATE_VEHICLE


def test_update_may_keep_own_number():
    svc, _ = _service()
    vehicle_id = svc.create_vehicle(tenant_id=1, payload=_payload()).value.vehicle_id

    updated = svc.update_vehicle(tenant_id=1, vehicle_id=vehicle_id, payload={"color": "Yellow"})
    assert updated.is_success
    assert updated.value.color == "Yellow"


def test_field_validation():
    svc, _ = _service()
    assert svc.create_vehicle(tenant_id=1, payload=_payload(capacity=0)).error == "Capacity must be greater than 0"
    assert svc.create_vehicle(tenant_id=1, payload=_payload(year=1800)).error == "Year is out of range"
    assert svc.create_vehicle(tenant_id=1, payload=_payload(vehicle_type="boat")).error == "Invalid vehicle type"


def test_mileage_only_increases():
    svc, vehicles = _service()
    vehicle_id = svc.create_vehicle(tenant_id=1, payload=_payload()).value.vehicle_id

    assert svc.update_mileage(tenant_id=1, vehicle_id=vehicle_id, mileage=900).error == (
        "New mileage cannot be less than current mileage"
    )
    assert svc.update_mileage(tenant_id=1, vehicle_id=vehicle_id, mileage=1500).value is True
    assert vehicles.rows[vehicle_id].mileage == 1500.0


def test_driver_assignment_and_location():
    svc, vehicles = _service()
    vehicle_id = svc.create_vehicle(tenant_id=1, payload=_payload()).value.vehicle_id

    assert svc.assign_driver(tenant_id=1, vehicle_id=vehicle_id, driver_id=7).not_found
    assert svc.assign_driver(tenant_id=1, vehicle_id=vehicle_id, driver_id=5).value is True
    assert vehicles.rows[vehicle_id].driver_id == 5

    assert svc.update_location(tenant_id=1, vehicle_id=vehicle_id, latitude=24.7, longitude=46.7).value is True
    assert vehicles.rows[vehicle_id].last_location_update == NOW
    assert svc.update_status(tenant_id=1, vehicle_id=vehicle_id, status="maintenance").value is True
    assert vehicles.rows[vehicle_id].status == VehicleStatus.MAINTENANCE
