from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime

from src.school_transport.school_transport.core.enums import PaymentMethod, PaymentStatus
from src.school_transport.school_transport.payments.gateway import PaymentGatewayService
from src.school_transport.school_transport.payments.model import Payment
from src.school_transport.school_transport.payments.security.scorer import PaymentRiskScorer
from src.school_transport.school_transport.payments.service import PaymentService

NOW = datetime(2026, 3, 2, 9, 0, 0)


class InMemoryPayments:
    def __init__(self):
        self.rows: dict[int, Payment] = {}
        self.deleted: set[int] = set()

    def get_by_id(self, tenant_id, payment_id):
        p = self.rows.get(payment_id)
        return p if p and payment_id not in self.deleted else None

    def count_all(self, tenant_id):
        return len(self.rows)

    def list_overdue(self, tenant_id, today):
        return [p for p in self.rows.values() if p.payment_id not in self.deleted and p.is_overdue(today)]

    def create(self, payment):
        payment_id = len(self.rows) + 1
        self.rows[payment_id] = replace(payment, payment_id=payment_id)
        return payment_id

    def update(self, payment):
        self.rows[payment.payment_id] = payment
        return True

    def mark_completed(self, *, tenant_id, payment_id, method, transaction_id, paid_at):
        p = self.rows[payment_id]
        if p.status == PaymentStatus.COMPLETED:
            return False
        self.rows[payment_id] = replace(
            p, status=PaymentStatus.COMPLETED, payment_method=method, transaction_id=transaction_id, paid_date=paid_at
        )
        return True

    def soft_delete(self, *, tenant_id, payment_id, deleted_by):
        self.deleted.add(payment_id)
        return True


class FakeStudents:
    def get_by_id(self, tenant_id, student_id):
        return object() if student_id == 1 else None


def _service():
    payments = InMemoryPayments()
    gateway = PaymentGatewayService(PaymentRiskScorer(), clock=lambda: NOW)
    return PaymentService(payments, FakeStudents(), gateway, clock=lambda: NOW), payments


def _payload(**overrides):
    values = {"student_id": 1, "amount": "350.5", "payment_type": "fee", "due_date": "2026-03-15"}
    values.update(overrides)
    return values


def test_payment_numbers_are_sequential_per_month():
    svc, _ = _service()

    first = svc.create_payment(tenant_id=1, payload=_payload()).value
    second = svc.create_payment(tenant_id=1, payload=_payload()).value

    assert first.payment_number == "PAY-202603-0001"
    assert second.payment_number == "PAY-202603-0002"
    assert first.amount == 350.5
    assert first.status == PaymentStatus.PENDING


def test_payment_number_not_reused_after_delete():
    svc, _ = _service()
    first = svc.create_payment(tenant_id=1, payload=_payload()).value
    svc.delete_payment(tenant_id=1, payment_id=first.payment_id)

    assert svc.create_payment(tenant_id=1, payload=_payload()).value.payment_number == "PAY-202603-0002"


def test_validation_messages():
    svc, _ = _service()
    assert svc.create_payment(tenant_id=1, payload=_payload(amount=0)).error == "Amount must be greater than 0"
    assert svc.create_payment(tenant_id=1, payload=_payload(currency="US")).error == "Currency must be a 3-letter code"
    assert svc.create_payment(tenant_id=1, payload=_payload(student_id=5)).error == "Student not found"
    assert svc.create_payment(tenant_id=1, payload=_payload(payment_type="gift")).error == "Invalid payment type"


def test_process_once_and_completed_cannot_be_deleted():
    svc, payments = _service()
    payment_id = svc.create_payment(tenant_id=1, payload=_payload()).value.payment_id

    assert svc.process_payment(tenant_id=1, payment_id=payment_id, payment_method="cash").value is True
    stored = payments.rows[payment_id]
    assert stored.status == PaymentStatus.COMPLETED
    assert stored.payment_method == PaymentMethod.CASH
    assert stored.paid_date == NOW

    again = svc.process_payment(tenant_id=1, payment_id=payment_id, payment_method="cash")
    assert again.error == "Payment has already been processed"
    assert svc.delete_payment(tenant_id=1, payment_id=payment_id).error == "Cannot delete a completed payment"


def test_overdue_uses_clock():
    svc, _ = _service()
    svc.create_payment(tenant_id=1, payload=_payload(due_date="2026-02-01"))
    svc.create_payment(tenant_id=1, payload=_payload(due_date="2026-04-01"))

    overdue = svc.get_overdue_payments(tenant_id=1).value
    assert [p.due_date for p in overdue] == [date(2026, 2, 1)]
    assert overdue[0].days_overdue(NOW.date()) == 29


def test_card_payment_completes_on_approval_only():
    svc, payments = _service()
    declined_id = svc.create_payment(tenant_id=1, payload=_payload()).value.payment_id
    approved_id = svc.create_payment(tenant_id=1, payload=_payload()).value.payment_id

    declined = svc.pay_by_card(tenant_id=1, payment_id=declined_id, card_number="4000000000000000", cvv="123")
    assert declined.is_success
    assert not declined.value.is_successful
    assert payments.rows[declined_id].status == PaymentStatus.PENDING

    approved = svc.pay_by_card(tenant_id=1, payment_id=approved_id, card_number="4242424242424242", cvv="123")
    assert approved.value.is_successful
    assert payments.rows[approved_id].status == PaymentStatus.COMPLETED
    assert payments.rows[approved_id].transaction_id == approved.value.transaction_id


def test_card_payment_security_failure_is_reported():
    svc, payments = _service()
    payment_id = svc.create_payment(tenant_id=1, payload=_payload()).value.payment_id

    result = svc.pay_by_card(tenant_id=1, payment_id=payment_id, card_number="4242", cvv="123")

    assert result.is_failure
    assert payments.rows[payment_id].status == PaymentStatus.PENDING


def test_card_payment_fails_when_completed_concurrently():
    svc, payments = _service()
    payment_id = svc.create_payment(tenant_id=1, payload=_payload()).value.payment_id
    original = payments.mark_completed

    def completed_elsewhere_first(**kwargs):
        original(**{**kwargs, "transaction_id": "OTHER-TXN"})
        return original(**kwargs)

    payments.mark_completed = completed_elsewhere_first

    result = svc.pay_by_card(tenant_id=1, payment_id=payment_id, card_number="4242424242424242", cvv="123")

    assert result.is_failure
    assert result.error == "Payment has already been processed"
    assert payments.rows[payment_id].transaction_id == "OTHER-TXN"
