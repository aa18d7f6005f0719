from __future__ import annotations

from datetime import date
from typing import Any, Callable, Optional

from ..common.datetime_utils import optional_date
from ..common.validators import optional_email, require_non_empty
from ..common.value_objects import Address, FullName
from ..core.enums import DriverStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..core.result import PagedResult, service_result
from .model import Driver, DriverSearch
from .repository import DriverRepository


def parse_driver_status(value: Any) -> DriverStatus:
    try:
        return DriverStatus(str(value).upper())
    except ValueError:
        raise ValidationError("Invalid driver status")


def build_driver(payload: dict, *, tenant_id: int, base: Optional[Driver] = None) -> Driver:
    b = base

    def pick(key: str, current: Any = None) -> Any:
        return payload[key] if key in payload else current

    def pick_date(key: str, current: Optional[date]) -> Optional[date]:
        return optional_date(payload[key]) if key in payload else current

    addr = payload.get("address")
    address = b.address if b else None
    if addr:
        address = Address(
            street=addr.get("street", ""), city=addr.get("city", ""), state=addr.get("state", ""),
            zip_code=addr.get("zip_code", ""), country=addr.get("country") or "USA",
        )

    license_expiry = pick_date("license_expiry", b.license_expiry if b else None)
    hire_date = pick_date("hire_date", b.hire_date if b else None)
    if license_expiry is None:
        raise ValidationError("License expiry is required")
    if hire_date is None:
        raise ValidationError("Hire date is required")

    status_raw = pick("status")
    return Driver(
        driver_id=b.driver_id if b else 0,
        tenant_id=tenant_id,
        employee_number=require_non_empty(pick("employee_number", b.employee_number if b else None), "Employee number"),
        name=FullName(
            first_name=require_non_empty(pick("first_name", b.name.first_name if b else None), "First name"),
            last_name=require_non_empty(pick("last_name", b.name.last_name if b else None), "Last name"),
            middle_name=pick("middle_name", b.name.middle_name if b else None) or None,
        ),
        license_number=require_non_empty(pick("license_number", b.license_number if b else None), "License number"),
        license_expiry=license_expiry,
        phone=require_non_empty(pick("phone", b.phone if b else None), "Phone"),
        hire_date=hire_date,
        status=parse_driver_status(status_raw) if status_raw else (b.status if b else DriverStatus.ACTIVE),
        email=optional_email(pick("email", b.email if b else None)),
        address=address,
        date_of_birth=pick_date("date_of_birth", b.date_of_birth if b else None),
        emergency_contact=pick("emergency_contact", b.emergency_contact if b else None),
        emergency_phone=pick("emergency_phone", b.emergency_phone if b else None),
        medical_certificate_expiry=pick_date("medical_certificate_expiry", b.medical_certificate_expiry if b else None),
        background_check_date=pick_date("background_check_date", b.background_check_date if b else None),
        last_training_date=pick_date("last_training_date", b.last_training_date if b else None),
        user_id=pick("user_id", b.user_id if b else None),
        notes=pick("notes", b.notes if b else None),
    )


class DriverService:
    def __init__(self, drivers: DriverRepository, *, today: Callable[[], date] = date.today):
        self._drivers = drivers
        self._today = today

    def _require(self, tenant_id: int, driver_id: int) -> Driver:
        driver = self._drivers.get_by_id(tenant_id, driver_id)
        if not driver:
            raise NotFoundError("Driver not found")
        return driver

    def _check_unique(self, driver: Driver, existing: Optional[Driver] = None) -> None:
        other = self._drivers.get_by_license(driver.tenant_id, driver.license_number)
        if other and (existing is None or other.driver_id != existing.driver_id):
            raise ValidationError("A driver with this license number already exists")
        other = self._drivers.get_by_employee_number(driver.tenant_id, driver.employee_number)
        if other and (existing is None or other.driver_id != existing.driver_id):
            raise ValidationError("A driver with this employee number already exists")

    @service_result("An error occurred while retrieving the driver")
    def get_driver(self, *, tenant_id: int, driver_id: int) -> Driver:
        return self._require(tenant_id, driver_id)

    @service_result("An error occurred while retrieving the driver")
    def get_by_license_number(self, *, tenant_id: int, license_number: str) -> Driver:
        driver = self._drivers.get_by_license(tenant_id, license_number)
        if not driver:
            raise NotFoundError("Driver not found")
        return driver

    @service_result("An error occurred while retrieving drivers")
    def search_drivers(self, *, tenant_id: int, criteria: DriverSearch, page: int = 1, page_size: int = 20) -> PagedResult:
        items, total = self._drivers.search(tenant_id=tenant_id, criteria=criteria, page=page, page_size=page_size)
        return PagedResult(items=items, total_count=total, page=page, page_size=page_size)

    @service_result("An error occurred while creating the driver")
    def create_driver(self, *, tenant_id: int, payload: dict) -> Driver:
        driver = build_driver(payload, tenant_id=tenant_id)
        self._check_unique(driver)
        driver_id = self._drivers.create(driver)
        return self._require(tenant_id, driver_id)

    @service_result("An error occurred while updating the driver")
    def update_driver(self, *, tenant_id: int, driver_id: int, payload: dict) -> Driver:
        existing = self._require(tenant_id, driver_id)
        updated = build_driver(payload, tenant_id=tenant_id, base=existing)
        self._check_unique(updated, existing)
        self._drivers.update(updated)
        return self._require(tenant_id, driver_id)

    @service_result("An error occurred while deleting the driver")
    def delete_driver(self, *, tenant_id: int, driver_id: int, deleted_by: Optional[int] = None) -> bool:
        self._require(tenant_id, driver_id)
        return self._drivers.soft_delete(tenant_id=tenant_id, driver_id=driver_id, deleted_by=deleted_by)

    @service_result("An error occurred while retrieving available drivers")
    def get_available_drivers(self, *, tenant_id: int, on_date: Optional[date] = None) -> list[Driver]:
        return list(self._drivers.list_available(tenant_id, on_date or self._today()))

    @service_result("An error occurred while retrieving drivers by status")
    def get_drivers_by_status(self, *, tenant_id: int, status: str) -> list[Driver]:
        return list(self._drivers.list_by_status(tenant_id, parse_driver_status(status)))
