from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import VehicleStatus, VehicleType


@dataclass(frozen=True)
class Vehicle:
    vehicle_id: int
    tenant_id: int
    vehicle_number: str
    license_plate: str
    vehicle_type: VehicleType
    make: str
    model: str
    year: int
    capacity: int
    status: VehicleStatus = VehicleStatus.ACTIVE
    color: Optional[str] = None
    vin: Optional[str] = None
    mileage: float = 0.0
    fuel_type: Optional[str] = None
    registration_expiry: Optional[date] = None
    inspection_expiry: Optional[date] = None
    insurance_expiry: Optional[date] = None
    driver_id: Optional[int] = None
    current_latitude: Optional[float] = None
    current_longitude: Optional[float] = None
    last_location_update: Optional[datetime] = None
    notes: Optional[str] = None

    def is_registration_valid(self, today: date) -> bool:
        return self.registration_expiry is not None and self.registration_expiry > today

    def is_inspection_valid(self, today: date) -> bool:
        return self.inspection_expiry is not None and self.inspection_expiry > today

    def is_insurance_valid(self, today: date) -> bool:
        return self.insurance_expiry is not None and self.insurance_expiry > today

    def is_operational(self, today: date) -> bool:
        return (
            self.status == VehicleStatus.ACTIVE
            and self.is_registration_valid(today)
            and self.is_inspection_valid(today)
            and self.is_insurance_valid(today)
        )

    @property
    def display_name(self) -> str:
        return f"{self.vehicle_number} - {self.make} {self.model} ({self.license_plate})"

    __json_properties__ = ("display_name",)


@dataclass(frozen=True)
class VehicleSearch:
    search_term: Optional[str] = None
    status: Optional[VehicleStatus] = None
    vehicle_type: Optional[VehicleType] = None
