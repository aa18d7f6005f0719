from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Callable, Optional

from ..common.datetime_utils import now_local, parse_iso_date
from ..core.enums import PaymentMethod, PaymentStatus, PaymentType
from ..core.exceptions import NotFoundError, ValidationError
from ..core.result import PagedResult, service_result
from ..students.repository import StudentRepository
from .gateway import CardPaymentRequest, CardPaymentResult, PaymentGatewayService, parse_provider
from .model import Payment, PaymentSearch
from .repository import PaymentRepository

logger = logging.getLogger(__name__)


def _parse_enum(enum_cls, value: Any, label: str):
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        raise ValidationError(f"Invalid {label}")


def parse_payment_method(value: Any) -> PaymentMethod:
    return _parse_enum(PaymentMethod, value, "payment method")


def parse_payment_status(value: Any) -> PaymentStatus:
    return _parse_enum(PaymentStatus, value, "payment status")


def parse_payment_type(value: Any) -> PaymentType:
    return _parse_enum(PaymentType, value, "payment type")


def build_payment(payload: dict, *, tenant_id: int, payment_number: str = "", base: Optional[Payment] = None) -> Payment:
    b = base
    try:
        amount = float(payload.get("amount", b.amount if b else 0) or 0)
    except (TypeError, ValueError):
        raise ValidationError("Amount must be a number")
    if amount <= 0:
        raise ValidationError("Amount must be greater than 0")

    currency = str(payload.get("currency", b.currency if b else "USD") or "USD").upper()
    if len(currency) != 3:
        raise ValidationError("Currency must be a 3-letter code")

    type_raw = payload.get("payment_type")
    if not type_raw and not b:
        raise ValidationError("Payment type is required")

    due_raw = payload.get("due_date")
    if not due_raw and not b:
        raise ValidationError("Due date is required")
    try:
        due_date = parse_iso_date(str(due_raw)) if due_raw else b.due_date
    except ValueError:
        raise ValidationError("due_date must be YYYY-MM-DD")

    method_raw = payload.get("payment_method")
    try:
        student_id = int(payload.get("student_id", b.student_id if b else 0) or 0)
    except (TypeError, ValueError):
        raise ValidationError("Student is required")
    if student_id <= 0:
        raise ValidationError("Student is required")

    return Payment(
        payment_id=b.payment_id if b else 0,
        tenant_id=tenant_id,
        student_id=student_id,
        payment_number=b.payment_number if b else payment_number,
        amount=round(amount, 2),
        currency=currency,
        payment_type=parse_payment_type(type_raw) if type_raw else b.payment_type,
        status=b.status if b else PaymentStatus.PENDING,
        due_date=due_date,
        paid_date=b.paid_date if b else None,
        payment_method=parse_payment_method(method_raw) if method_raw else (b.payment_method if b else None),
        transaction_id=b.transaction_id if b else None,
        description=payload.get("description", b.description if b else None),
        notes=payload.get("notes", b.notes if b else None),
    )


class PaymentService:
    def __init__(
        self,
        payments: PaymentRepository,
        students: StudentRepository,
        gateway: PaymentGatewayService,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._payments = payments
        self._students = students
        self._gateway = gateway
        self._clock = clock

    def _require(self, tenant_id: int, payment_id: int) -> Payment:
        payment = self._payments.get_by_id(tenant_id, payment_id)
        if not payment:
            raise NotFoundError("Payment not found")
        return payment

    def _next_number(self, tenant_id: int) -> str:
        count = self._payments.count_all(tenant_id)
        return f"PAY-{self._clock():%Y%m}-{count + 1:04d}"

    @service_result("An error occurred while retrieving the payment")
    def get_payment(self, *, tenant_id: int, payment_id: int) -> Payment:
        return self._require(tenant_id, payment_id)

    @service_result("An error occurred while retrieving payments")
    def search_payments(
        self, *, tenant_id: int, criteria: PaymentSearch, page: int = 1, page_size: int = 20, overdue_only: bool = False
    ) -> PagedResult:
        if overdue_only:
            criteria = replace(criteria, overdue_as_of=self._clock().date())
        items, total = self._payments.search(tenant_id=tenant_id, criteria=criteria, page=page, page_size=page_size)
        return PagedResult(items=items, total_count=total, page=page, page_size=page_size)

    @service_result("An error occurred while creating the payment")
    def create_payment(self, *, tenant_id: int, payload: dict) -> Payment:
        payment = build_payment(payload, tenant_id=tenant_id, payment_number=self._next_number(tenant_id))
        if not self._students.get_by_id(tenant_id, payment.student_id):
            raise ValidationError("Student not found")
        payment_id = self._payments.create(payment)
        return self._require(tenant_id, payment_id)

    @service_result("An error occurred while updating the payment")
    def update_payment(self, *, tenant_id: int, payment_id: int, payload: dict) -> Payment:
        existing = self._require(tenant_id, payment_id)
        fixed = {k: v for k, v in payload.items() if k != "student_id"}
        self._payments.update(build_payment(fixed, tenant_id=tenant_id, base=existing))
        return self._require(tenant_id, payment_id)

    @service_result("An error occurred while deleting the payment")
    def delete_payment(self, *, tenant_id: int, payment_id: int, deleted_by: Optional[int] = None) -> bool:
        payment = self._require(tenant_id, payment_id)
        if payment.status == PaymentStatus.COMPLETED:
            raise ValidationError("Cannot delete a completed payment")
        return self._payments.soft_delete(tenant_id=tenant_id, payment_id=payment_id, deleted_by=deleted_by)

    @service_result("An error occurred while retrieving student payments")
    def get_payments_by_student(
        self, *, tenant_id: int, student_id: int, start_date: date, end_date: date
    ) -> list[Payment]:
        return list(self._payments.list_by_student(tenant_id, student_id, start_date, end_date))

    @service_result("An error occurred while retrieving overdue payments")
    def get_overdue_payments(self, *, tenant_id: int) -> list[Payment]:
        return list(self._payments.list_overdue(tenant_id, self._clock().date()))

    @service_result("An error occurred while processing the payment")
    def process_payment(
        self, *, tenant_id: int, payment_id: int, payment_method: str, transaction_id: Optional[str] = None
    ) -> bool:
        method = parse_payment_method(payment_method)
        payment = self._require(tenant_id, payment_id)
        if payment.status == PaymentStatus.COMPLETED:
            raise ValidationError("Payment has already been processed")
        completed = self._payments.mark_completed(
            tenant_id=tenant_id,
            payment_id=payment_id,
            method=method,
            transaction_id=transaction_id or str(uuid.uuid4()),
            paid_at=self._clock(),
        )
        if not completed:
            raise ValidationError("Payment has already been processed")
        logger.info("Payment %s processed via %s", payment.payment_number, method.value)
        return True

    @service_result("An error occurred while processing the card payment")
    def pay_by_card(
        self,
        *,
        tenant_id: int,
        payment_id: int,
        card_number: str,
        cvv: str,
        billing_address: Optional[str] = None,
        gateway_provider: Optional[str] = None,
        customer_ip: Optional[str] = None,
    ) -> CardPaymentResult:
        """Charge an open payment through the simulated gateway and complete it on approval."""
        payment = self._require(tenant_id, payment_id)
        if payment.status == PaymentStatus.COMPLETED:
            raise ValidationError("Payment has already been processed")

        charged = self._gateway.process_card_payment(
            tenant_id=tenant_id,
            request=CardPaymentRequest(
                amount=payment.amount,
                currency=payment.currency,
                card_number=card_number or "",
                cvv=cvv or "",
                billing_address=billing_address,
                gateway_provider=parse_provider(gateway_provider),
                customer_ip=customer_ip,
            ),
        )
        if charged.is_failure:
            return charged

        result: CardPaymentResult = charged.value
        if result.is_successful:
            completed = self._payments.mark_completed(
                tenant_id=tenant_id,
                payment_id=payment_id,
                method=PaymentMethod.CREDIT_CARD,
                transaction_id=result.transaction_id,
                paid_at=result.processed_at,
            )
            if not completed:
                logger.error(
                    "Payment %s was completed concurrently; card charge %s needs a refund",
                    payment.payment_number,
                    result.transaction_id,
                )
                raise ValidationError("Payment has already been processed")
        return result
