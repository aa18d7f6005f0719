from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..common.datetime_utils import years_between
from ..common.value_objects import Address, FullName
from ..core.enums import DriverStatus


@dataclass(frozen=True)
class Driver:
    driver_id: int
    tenant_id: int
    employee_number: str
    name: FullName
    license_number: str
    license_expiry: date
    phone: str
    hire_date: date
    status: DriverStatus = DriverStatus.ACTIVE
    email: Optional[str] = None
    address: Optional[Address] = None
    date_of_birth: Optional[date] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    medical_certificate_expiry: Optional[date] = None
    background_check_date: Optional[date] = None
    last_training_date: Optional[date] = None
    user_id: Optional[int] = None
    notes: Optional[str] = None

    def is_license_valid(self, today: date) -> bool:
        return self.license_expiry > today

    def is_medical_certificate_valid(self, today: date) -> bool:
        return self.medical_certificate_expiry is not None and self.medical_certificate_expiry > today

    def age(self, today: date) -> Optional[int]:
        return years_between(self.date_of_birth, today) if self.date_of_birth else None

    def years_of_service(self, today: date) -> int:
        return years_between(self.hire_date, today)


@dataclass(frozen=True)
class DriverSearch:
    search_term: Optional[str] = None
    status: Optional[DriverStatus] = None
