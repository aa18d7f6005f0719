from __future__ import annotations

from typing import Optional

from flask import Flask, request

from ..common.http import (
    current_identity,
    json_body,
    ok,
    paging_args,
    query_date,
    query_enum,
    query_float,
    query_int,
    respond,
    roles_required,
    token_required,
)
from ..core.enums import ADMIN_ROLES, STAFF_ROLES, PaymentMethod, PaymentStatus, PaymentType, Role
from ..core.exceptions import ValidationError
from ..container import Container
from .model import PaymentSearch
from .security.base import PaymentSecurityRequest

PAYERS = STAFF_ROLES | {Role.PARENT}


def _parse_method(value) -> Optional[PaymentMethod]:
    if value in (None, ""):
        return None
    try:
        return PaymentMethod(str(value).upper())
    except ValueError:
        raise ValidationError("Invalid payment method")


def register(app: Flask, container: Container) -> None:
    @app.route("/api/payments", methods=["GET"], endpoint="list_payments")
    @token_required
    def list_payments():
        page, page_size = paging_args()
        criteria = PaymentSearch(
            student_id=query_int("student_id"),
            payment_number=request.args.get("payment_number") or None,
            payment_type=query_enum("payment_type", PaymentType),
            payment_method=query_enum("payment_method", PaymentMethod),
            status=query_enum("status", PaymentStatus),
            amount_from=query_float("amount_from"),
            amount_to=query_float("amount_to"),
            due_from=query_date("due_from"),
            due_to=query_date("due_to"),
        )
        result = container.payment_service.search_payments(
            tenant_id=current_identity().tenant_id,
            criteria=criteria,
            page=page,
            page_size=page_size,
            overdue_only=request.args.get("overdue", "").lower() in ("1", "true", "yes"),
        )
        return respond(result)

    @app.route("/api/payments/overdue", methods=["GET"], endpoint="overdue_payments")
    @roles_required(*STAFF_ROLES)
    def overdue_payments():
        return respond(container.payment_service.get_overdue_payments(tenant_id=current_identity().tenant_id))

    @app.route("/api/payments/student/<int:student_id>", methods=["GET"], endpoint="payments_by_student")
    @token_required
    def payments_by_student(student_id: int):
        start = query_date("start_date")
        end = query_date("end_date")
        if start is None or end is None:
            raise ValidationError("start_date and end_date are required")
        result = container.payment_service.get_payments_by_student(
            tenant_id=current_identity().tenant_id, student_id=student_id, start_date=start, end_date=end
        )
        return respond(result)

    @app.route("/api/payments/<int:payment_id>", methods=["GET"], endpoint="get_payment")
    @token_required
    def get_payment(payment_id: int):
        return respond(container.payment_service.get_payment(tenant_id=current_identity().tenant_id, payment_id=payment_id))

    @app.route("/api/payments", methods=["POST"], endpoint="create_payment")
    @roles_required(*STAFF_ROLES)
    def create_payment():
        result = container.payment_service.create_payment(tenant_id=current_identity().tenant_id, payload=json_body())
        return respond(result, message="Payment created successfully", status=201)

    @app.route("/api/payments/<int:payment_id>", methods=["PUT"], endpoint="update_payment")
    @roles_required(*STAFF_ROLES)
    def update_payment(payment_id: int):
        result = container.payment_service.update_payment(
            tenant_id=current_identity().tenant_id, payment_id=payment_id, payload=json_body()
        )
        return respond(result, message="Payment updated successfully")

    @app.route("/api/payments/<int:payment_id>", methods=["DELETE"], endpoint="delete_payment")
    @roles_required(*STAFF_ROLES)
    def delete_payment(payment_id: int):
        me = current_identity()
        result = container.payment_service.delete_payment(tenant_id=me.tenant_id, payment_id=payment_id, deleted_by=me.user_id)
        return respond(result, message="Payment deleted successfully")

    @app.route("/api/payments/<int:payment_id>/process", methods=["POST"], endpoint="process_payment")
    @roles_required(*STAFF_ROLES)
    def process_payment(payment_id: int):
        data = json_body()
        result = container.payment_service.process_payment(
            tenant_id=current_identity().tenant_id,
            payment_id=payment_id,
            payment_method=data.get("payment_method", ""),
            transaction_id=data.get("transaction_id"),
        )
        return respond(result, message="Payment processed successfully")

    @app.route("/api/payments/<int:payment_id>/card", methods=["POST"], endpoint="pay_by_card")
    @roles_required(*PAYERS)
    def pay_by_card(payment_id: int):
        tenant_id = current_identity().tenant_id
        data = json_body()
        charged = container.payment_service.pay_by_card(
            tenant_id=tenant_id,
            payment_id=payment_id,
            card_number=str(data.get("card_number") or ""),
            cvv=str(data.get("cvv") or ""),
            billing_address=data.get("billing_address"),
            gateway_provider=data.get("gateway_provider"),
            customer_ip=request.remote_addr,
        )
        if charged.is_failure or not charged.value.is_successful:
            return respond(charged)
        receipt = container.payment_gateway.generate_receipt(tenant_id=tenant_id, result=charged.value)
        return ok({"payment": charged.value, "receipt": receipt.value if receipt.is_success else None}, "Payment completed")

    @app.route("/api/payments/gateway/initialize", methods=["POST"], endpoint="initialize_gateway")
    @roles_required(*ADMIN_ROLES)
    def initialize_gateway():
        data = json_body()
        result = container.payment_gateway.initialize_gateway(
            tenant_id=current_identity().tenant_id,
            provider=data.get("provider", ""),
            merchant_id=data.get("merchant_id", ""),
        )
        return respond(result, message="Payment gateway initialized")

    @app.route("/api/payments/security/validate", methods=["POST"], endpoint="validate_payment_security")
    @roles_required(*PAYERS)
    def validate_payment_security():
        data = json_body()
        try:
            amount = float(data.get("amount"))
        except (TypeError, ValueError):
            raise ValidationError("A numeric amount is required")
        security_request = PaymentSecurityRequest(
            amount=amount,
            currency=data.get("currency") or "USD",
            card_number=data.get("card_number"),
            cvv=data.get("cvv"),
            billing_address=data.get("billing_address"),
            payment_method=_parse_method(data.get("payment_method")),
            customer_email=data.get("customer_email"),
            customer_ip=request.remote_addr,
        )
        return respond(container.payment_gateway.validate_security(request=security_request))
