from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class FullName:
    first_name: str
    last_name: str
    middle_name: Optional[str] = None

    def __post_init__(self):
        if not self.first_name or not self.first_name.strip():
            raise ValidationError("First name is required")
        if not self.last_name or not self.last_name.strip():
            raise ValidationError("Last name is required")

    @property
    def full_name(self) -> str:
        if self.middle_name:
            return f"{self.first_name} {self.middle_name} {self.last_name}"
        return f"{self.first_name} {self.last_name}"

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class Address:
    street: str
    city: str
    state: str
    zip_code: str
    country: str = "USA"

    def __post_init__(self):
        for label, value in (("Street", self.street), ("City", self.city), ("State", self.state), ("Zip code", self.zip_code)):
            if not value or not value.strip():
                raise ValidationError(f"{label} is required")

    @property
    def full_address(self) -> str:
        return f"{self.street}, {self.city}, {self.state} {self.zip_code}, {self.country}"

    def __str__(self) -> str:
        return self.full_address
