from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import PaymentMethod, PaymentStatus, PaymentType


@dataclass(frozen=True)
class Payment:
    payment_id: int
    tenant_id: int
    student_id: int
    payment_number: str
    amount: float
    payment_type: PaymentType
    due_date: date
    currency: str = "USD"
    status: PaymentStatus = PaymentStatus.PENDING
    paid_date: Optional[datetime] = None
    payment_method: Optional[PaymentMethod] = None
    transaction_id: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None

    @property
    def is_paid(self) -> bool:
        return self.status == PaymentStatus.COMPLETED

    @property
    def is_pending(self) -> bool:
        return self.status in (PaymentStatus.PENDING, PaymentStatus.PROCESSING)

    @property
    def display_amount(self) -> str:
        return f"{self.currency} {self.amount:.2f}"

    def is_overdue(self, today: date) -> bool:
        return not self.is_paid and self.due_date < today

    def days_overdue(self, today: date) -> int:
        return (today - self.due_date).days if self.is_overdue(today) else 0

    __json_properties__ = ("is_paid", "display_amount")


@dataclass(frozen=True)
class PaymentSearch:
    student_id: Optional[int] = None
    payment_number: Optional[str] = None
    payment_type: Optional[PaymentType] = None
    payment_method: Optional[PaymentMethod] = None
    status: Optional[PaymentStatus] = None
    amount_from: Optional[float] = None
    amount_to: Optional[float] = None
    due_from: Optional[date] = None
    due_to: Optional[date] = None
    # when set, only unpaid payments due before this day
    overdue_as_of: Optional[date] = None
