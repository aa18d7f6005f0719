from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ...core.enums import PaymentMethod, SecurityCheckType


@dataclass(frozen=True)
class PaymentSecurityRequest:
    amount: float
    currency: str = "USD"
    card_number: Optional[str] = None
    cvv: Optional[str] = None
    billing_address: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    customer_email: Optional[str] = None
    customer_ip: Optional[str] = None


@dataclass(frozen=True)
class SecurityCheckResult:
    check_type: SecurityCheckType
    passed: bool
    risk_score: int
    message: str


class SecurityCheck(ABC):
    """Strategy Pattern: one independent rule of the payment risk model."""

    # a failed check with this flag set makes the whole validation invalid
    affects_validity: bool = True

    def applies(self, request: PaymentSecurityRequest) -> bool:
        return True

    @abstractmethod
    def run(self, request: PaymentSecurityRequest) -> SecurityCheckResult:
        raise NotImplementedError
