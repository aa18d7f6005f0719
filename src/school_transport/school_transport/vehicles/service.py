from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, Optional

from ..common.datetime_utils import now_local, optional_date
from ..common.validators import require_latitude, require_longitude, require_non_empty
from ..core.enums import VehicleStatus, VehicleType
from ..core.exceptions import NotFoundError, ValidationError
from ..core.result import PagedResult, service_result
from ..drivers.repository import DriverRepository
from .model import Vehicle, VehicleSearch
from .repository import VehicleRepository

DUPLICATE_VEHICLE = "A vehicle with this vehicle number or license plate already exists"


def parse_vehicle_status(value: Any) -> VehicleStatus:
    try:
        return VehicleStatus(str(value).upper())
    except ValueError:
        raise ValidationError("Invalid vehicle status")


def parse_vehicle_type(value: Any) -> VehicleType:
    try:
        return VehicleType(str(value).upper())
    except ValueError:
        raise ValidationError("Invalid vehicle type")


def build_vehicle(payload: dict, *, tenant_id: int, base: Optional[Vehicle] = None) -> Vehicle:
    b = base

    def pick(key: str, current: Any = None) -> Any:
        return payload[key] if key in payload else current

    def pick_date(key: str, current: Optional[date]) -> Optional[date]:
        return optional_date(payload[key]) if key in payload else current

    type_raw = pick("vehicle_type")
    if not type_raw and not b:
        raise ValidationError("Vehicle type is required")
    status_raw = pick("status")

    try:
        year = int(pick("year", b.year if b else 0) or 0)
        capacity = int(pick("capacity", b.capacity if b else 0) or 0)
        mileage = float(pick("mileage", b.mileage if b else 0) or 0)
    except (TypeError, ValueError):
        raise ValidationError("Year, capacity and mileage must be numbers")
    if not 1900 <= year <= datetime.now().year + 1:
        raise ValidationError("Year is out of range")
    if capacity <= 0:
        raise ValidationError("Capacity must be greater than 0")
    if mileage < 0:
        raise ValidationError("Mileage cannot be negative")

    return Vehicle(
        vehicle_id=b.vehicle_id if b else 0,
        tenant_id=tenant_id,
        vehicle_number=require_non_empty(pick("vehicle_number", b.vehicle_number if b else None), "Vehicle number"),
        license_plate=require_non_empty(pick("license_plate", b.license_plate if b else None), "License plate"),
        vehicle_type=parse_vehicle_type(type_raw) if type_raw else b.vehicle_type,
        make=require_non_empty(pick("make", b.make if b else None), "Make"),
        model=require_non_empty(pick("model", b.model if b else None), "Model"),
        year=year,
        capacity=capacity,
        status=parse_vehicle_status(status_raw) if status_raw else (b.status if b else VehicleStatus.ACTIVE),
        color=pick("color", b.color if b else None),
        vin=pick("vin", b.vin if b else None),
        mileage=mileage,
        fuel_type=pick("fuel_type", b.fuel_type if b else None),
        registration_expiry=pick_date("registration_expiry", b.registration_expiry if b else None),
        inspection_expiry=pick_date("inspection_expiry", b.inspection_expiry if b else None),
        insurance_expiry=pick_date("insurance_expiry", b.insurance_expiry if b else None),
        driver_id=b.driver_id if b else None,
        current_latitude=b.current_latitude if b else None,
        current_longitude=b.current_longitude if b else None,
        last_location_update=b.last_location_update if b else None,
        notes=pick("notes", b.notes if b else None),
    )


class VehicleService:
    def __init__(
        self,
        vehicles: VehicleRepository,
        drivers: DriverRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._vehicles = vehicles
        self._drivers = drivers
        self._clock = clock

    def _require(self, tenant_id: int, vehicle_id: int) -> Vehicle:
        vehicle = self._vehicles.get_by_id(tenant_id, vehicle_id)
        if not vehicle:
            raise NotFoundError("Vehicle not found")
        return vehicle

    def _check_unique(self, vehicle: Vehicle, existing: Optional[Vehicle] = None) -> None:
        for other in (
            self._vehicles.get_by_number(vehicle.tenant_id, vehicle.vehicle_number),
            self._vehicles.get_by_plate(vehicle.tenant_id, vehicle.license_plate),
        ):
            if other and (existing is None or other.vehicle_id != existing.vehicle_id):
                raise ValidationError(DUPLICATE_VEHICLE)

    @service_result("An error occurred while retrieving the vehicle")
    def get_vehicle(self, *, tenant_id: int, vehicle_id: int) -> Vehicle:
        return self._require(tenant_id, vehicle_id)

    @service_result("An error occurred while retrieving the vehicle")
    def get_by_vehicle_number(self, *, tenant_id: int, vehicle_number: str) -> Vehicle:
        vehicle = self._vehicles.get_by_number(tenant_id, vehicle_number)
        if not vehicle:
            raise NotFoundError("Vehicle not found")
        return vehicle

    @service_result("An error occurred while retrieving vehicles")
    def search_vehicles(self, *, tenant_id: int, criteria: VehicleSearch, page: int = 1, page_size: int = 20) -> PagedResult:
        items, total = self._vehicles.search(tenant_id=tenant_id, criteria=criteria, page=page, page_size=page_size)
        return PagedResult(items=items, total_count=total, page=page, page_size=page_size)

    @service_result("An error occurred while creating the vehicle")
    def create_vehicle(self, *, tenant_id: int, payload: dict) -> Vehicle:
        vehicle = build_vehicle(payload, tenant_id=tenant_id)
        self._check_unique(vehicle)
        vehicle_id = self._vehicles.create(vehicle)
        return self._require(tenant_id, vehicle_id)

    @service_result("An error occurred while updating the vehicle")
    def update_vehicle(self, *, tenant_id: int, vehicle_id: int, payload: dict) -> Vehicle:
        existing = self._require(tenant_id, vehicle_id)
        updated = build_vehicle(payload, tenant_id=tenant_id, base=existing)
        self._check_unique(updated, existing)
        self._vehicles.update(updated)
        return self._require(tenant_id, vehicle_id)

    @service_result("An error occurred while deleting the vehicle")
    def delete_vehicle(self, *, tenant_id: int, vehicle_id: int, deleted_by: Optional[int] = None) -> bool:
        self._require(tenant_id, vehicle_id)
        return self._vehicles.soft_delete(tenant_id=tenant_id, vehicle_id=vehicle_id, deleted_by=deleted_by)

    @service_result("An error occurred while retrieving available vehicles")
    def get_available_vehicles(self, *, tenant_id: int, on_date: Optional[date] = None) -> list[Vehicle]:
        return list(self._vehicles.list_available(tenant_id, on_date or self._clock().date()))

    @service_result("An error occurred while retrieving vehicles by status")
    def get_vehicles_by_status(self, *, tenant_id: int, status: str) -> list[Vehicle]:
        items, _ = self._vehicles.search(
            tenant_id=tenant_id, criteria=VehicleSearch(status=parse_vehicle_status(status)), page=1, page_size=1000
        )
        return items

    @service_result("An error occurred while retrieving vehicles by type")
    def get_vehicles_by_type(self, *, tenant_id: int, vehicle_type: str) -> list[Vehicle]:
        items, _ = self._vehicles.search(
            tenant_id=tenant_id, criteria=VehicleSearch(vehicle_type=parse_vehicle_type(vehicle_type)), page=1, page_size=1000
        )
        return items

    @service_result("An error occurred while assigning the driver to the vehicle")
    def assign_driver(self, *, tenant_id: int, vehicle_id: int, driver_id: int) -> bool:
        self._require(tenant_id, vehicle_id)
        if not self._drivers.get_by_id(tenant_id, driver_id):
            raise NotFoundError("Driver not found")
        return self._vehicles.set_driver(tenant_id=tenant_id, vehicle_id=vehicle_id, driver_id=driver_id)

    @service_result("An error occurred while unassigning the driver from the vehicle")
    def unassign_driver(self, *, tenant_id: int, vehicle_id: int) -> bool:
        self._require(tenant_id, vehicle_id)
        return self._vehicles.set_driver(tenant_id=tenant_id, vehicle_id=vehicle_id, driver_id=None)

    @service_result("An error occurred while updating the vehicle status")
    def update_status(self, *, tenant_id: int, vehicle_id: int, status: str) -> bool:
        parsed = parse_vehicle_status(status)
        self._require(tenant_id, vehicle_id)
        return self._vehicles.set_status(tenant_id=tenant_id, vehicle_id=vehicle_id, status=parsed)

    @service_result("An error occurred while updating the vehicle location")
    def update_location(self, *, tenant_id: int, vehicle_id: int, latitude: float, longitude: float) -> bool:
        self._require(tenant_id, vehicle_id)
        return self._vehicles.update_location(
            tenant_id=tenant_id,
            vehicle_id=vehicle_id,
            latitude=require_latitude(latitude),
            longitude=require_longitude(longitude),
            at=self._clock(),
        )

    @service_result("An error occurred while updating the vehicle mileage")
    def update_mileage(self, *, tenant_id: int, vehicle_id: int, mileage: float) -> bool:
        vehicle = self._require(tenant_id, vehicle_id)
        if mileage < vehicle.mileage:
            raise ValidationError("New mileage cannot be less than current mileage")
        return self._vehicles.update_mileage(tenant_id=tenant_id, vehicle_id=vehicle_id, mileage=float(mileage))
