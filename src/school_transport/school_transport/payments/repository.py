from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import PaymentMethod
from .model import Payment, PaymentSearch


class PaymentRepository(Protocol):
    def get_by_id(self, tenant_id: int, payment_id: int) -> Optional[Payment]:
        raise NotImplementedError

    def search(self, *, tenant_id: int, criteria: PaymentSearch, page: int, page_size: int) -> tuple[list[Payment], int]:
        raise NotImplementedError

    def list_by_student(self, tenant_id: int, student_id: int, start: date, end: date) -> Sequence[Payment]:
        raise NotImplementedError

    def list_overdue(self, tenant_id: int, today: date) -> Sequence[Payment]:
        raise NotImplementedError

    def count_all(self, tenant_id: int) -> int:
        """Every payment ever created for the tenant, deleted rows included."""

        raise NotImplementedError

    def create(self, payment: Payment) -> int:
        raise NotImplementedError

    def update(self, payment: Payment) -> bool:
        raise NotImplementedError

    def mark_completed(
        self, *, tenant_id: int, payment_id: int, method: PaymentMethod, transaction_id: str, paid_at: datetime
    ) -> bool:
        raise NotImplementedError

    def soft_delete(self, *, tenant_id: int, payment_id: int, deleted_by: Optional[int]) -> bool:
        raise NotImplementedError
