"""Simulated card gateway.

There is no real processor behind this module: outcomes are decided by the
card number (ending 0000 is declined, ending 1111 is rejected as invalid).
"""

from __future__ import annotations

import base64
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..core.constants import PROCESSING_FEE_RATE
from ..core.enums import GatewayProvider, PaymentMethod
from ..core.exceptions import ValidationError
from ..core.result import service_result
from .security.base import PaymentSecurityRequest
from .security.scorer import PaymentRiskScorer, RiskAssessment

logger = logging.getLogger(__name__)

MERCHANT_NAME = "Rihla School Transportation"
MERCHANT_ADDRESS = "123 Education Street, Riyadh, Saudi Arabia"
MERCHANT_PHONE = "+966-11-123-4567"

_SUPPORTED_METHODS = {
    GatewayProvider.STRIPE: ("CreditCard", "DebitCard", "BankTransfer", "ApplePay", "GooglePay"),
    GatewayProvider.PAYPAL: ("PayPal", "CreditCard", "DebitCard", "BankTransfer"),
    GatewayProvider.MADA: ("Mada", "CreditCard", "DebitCard", "STC Pay"),
}
_DEFAULT_METHODS = ("CreditCard", "DebitCard", "BankTransfer")

_API_ENDPOINTS = {
    GatewayProvider.STRIPE: "https://api.stripe.com/v1",
    GatewayProvider.PAYPAL: "https://api.paypal.com/v2",
    GatewayProvider.MADA: "https://api.mada.sa/v1",
}


@dataclass(frozen=True)
class GatewayConfig:
    provider: GatewayProvider
    merchant_id: str
    tenant_id: int
    api_endpoint: str
    webhook_endpoint: str
    initialized_at: datetime
    supported_methods: tuple[str, ...] = ()
    security_level: str = "PCI-DSS Level 1"
    is_active: bool = True


@dataclass(frozen=True)
class CardPaymentRequest:
    amount: float
    card_number: str
    cvv: str
    currency: str = "USD"
    billing_address: Optional[str] = None
    gateway_provider: Optional[GatewayProvider] = None
    customer_ip: Optional[str] = None


@dataclass(frozen=True)
class CardPaymentResult:
    transaction_id: str
    gateway_transaction_id: str
    amount: float
    currency: str
    status: str
    processed_at: datetime
    gateway_provider: GatewayProvider
    masked_card_number: str
    card_type: str
    authorization_code: str
    processing_fee: float
    gateway_response: str
    failure_reason: Optional[str] = None
    receipt_number: Optional[str] = None
    security_validation: Optional[RiskAssessment] = field(default=None, repr=False)

    @property
    def is_successful(self) -> bool:
        return self.status == "Completed"

    __json_properties__ = ("is_successful",)


@dataclass(frozen=True)
class PaymentReceipt:
    receipt_number: str
    transaction_id: str
    tenant_id: int
    generated_at: datetime
    content: str
    signature: str


def parse_provider(value: Optional[str]) -> GatewayProvider:
    if not value:
        return GatewayProvider.STRIPE
    for provider in GatewayProvider:
        if provider.value.lower() == str(value).strip().lower():
            return provider
    raise ValidationError(f"Unsupported payment gateway: {value}")


def mask_card_number(card_number: Optional[str]) -> str:
    if not card_number or len(card_number) < 4:
        return "****"
    return f"****-****-****-{card_number[-4:]}"


def detect_card_type(card_number: Optional[str]) -> str:
    if not card_number:
        return "Unknown"
    return {"4": "Visa", "5": "Mastercard", "3": "American Express"}.get(card_number[0], "Unknown")


def authorization_code(now: datetime) -> str:
    return f"AUTH{int(now.timestamp() * 1_000_000) % 1_000_000:06d}"


def receipt_number(transaction_id: str, now: datetime) -> str:
    return f"RCP-{now:%Y%m%d}-{transaction_id[:8]}"


def receipt_signature(receipt_no: str, transaction_id: str, generated_at: datetime) -> str:
    content = f"{receipt_no}{transaction_id}{generated_at:%Y%m%d%H%M%S}"
    return base64.b64encode(content.encode("utf-8")).decode("ascii")[:16]


def render_receipt(result: CardPaymentResult) -> str:
    lines = [
        "===========================================",
        "           PAYMENT RECEIPT",
        "===========================================",
        f"Merchant: {MERCHANT_NAME}",
        f"Address: {MERCHANT_ADDRESS}",
        f"Phone: {MERCHANT_PHONE}",
        "",
        f"Transaction Date: {result.processed_at:%Y-%m-%d %H:%M:%S}",
        f"Transaction ID: {result.transaction_id}",
        f"Authorization Code: {result.authorization_code}",
        "",
        f"Payment Method: {result.card_type} {result.masked_card_number}",
        f"Amount: {result.amount:,.2f} {result.currency}",
        f"Status: {result.status}",
        "",
        "Description: Student Transportation Fee",
        "",
        "===========================================",
        "Thank you for using Rihla Transportation!",
        "===========================================",
    ]
    return "\n".join(lines)


class PaymentGatewayService:
    def __init__(self, scorer: PaymentRiskScorer, *, clock: Callable[[], datetime] = now_local):
        self._scorer = scorer
        self._clock = clock

    @service_result("An error occurred while initializing the payment gateway")
    def initialize_gateway(self, *, tenant_id: int, provider: str, merchant_id: str) -> GatewayConfig:
        parsed = parse_provider(provider)
        if not merchant_id or not str(merchant_id).strip():
            raise ValidationError("Merchant ID is required for gateway initialization")
        slug = parsed.value.lower()
        config = GatewayConfig(
            provider=parsed,
            merchant_id=str(merchant_id).strip(),
            tenant_id=tenant_id,
            api_endpoint=_API_ENDPOINTS.get(parsed, f"https://api.{slug}.com/v1"),
            webhook_endpoint=f"/api/webhooks/{slug}",
            initialized_at=self._clock(),
            supported_methods=_SUPPORTED_METHODS.get(parsed, _DEFAULT_METHODS),
        )
        logger.info("Payment gateway %s initialized for tenant %s", parsed.value, tenant_id)
        return config

    @service_result("An error occurred during security validation")
    def validate_security(self, *, request: PaymentSecurityRequest) -> RiskAssessment:
        return self._scorer.assess(request)

    @service_result("An error occurred while processing the credit card payment")
    def process_card_payment(self, *, tenant_id: int, request: CardPaymentRequest) -> CardPaymentResult:
        assessment = self._scorer.assess(
            PaymentSecurityRequest(
                amount=request.amount,
                currency=request.currency,
                card_number=request.card_number,
                cvv=request.cvv,
                billing_address=request.billing_address,
                payment_method=PaymentMethod.CREDIT_CARD,
                customer_ip=request.customer_ip,
            )
        )
        if not assessment.is_valid:
            raise ValidationError("Security validation failed: High risk transaction")

        now = self._clock()
        transaction_id = str(uuid.uuid4())
        status, response, reason, receipt_no = "Completed", "APPROVED", None, receipt_number(transaction_id, now)
        if request.card_number.endswith("0000"):
            status, response, reason, receipt_no = "Failed", "DECLINED", "Insufficient funds", None
        elif request.card_number.endswith("1111"):
            status, response, reason, receipt_no = "Failed", "INVALID_CARD", "Invalid card number", None

        result = CardPaymentResult(
            transaction_id=transaction_id,
            gateway_transaction_id=f"gw_{int(now.timestamp() * 1_000_000)}",
            amount=request.amount,
            currency=request.currency,
            status=status,
            processed_at=now,
            gateway_provider=request.gateway_provider or GatewayProvider.STRIPE,
            masked_card_number=mask_card_number(request.card_number),
            card_type=detect_card_type(request.card_number),
            authorization_code=authorization_code(now),
            processing_fee=round(request.amount * PROCESSING_FEE_RATE, 2),
            gateway_response=response,
            failure_reason=reason,
            receipt_number=receipt_no,
            security_validation=assessment,
        )
        logger.info(
            "Credit card payment processed for tenant %s. Transaction ID: %s, Status: %s, Amount: %s",
            tenant_id,
            transaction_id,
            status,
            request.amount,
        )
        return result

    @service_result("An error occurred while generating the payment receipt")
    def generate_receipt(self, *, tenant_id: int, result: CardPaymentResult) -> PaymentReceipt:
        if not result.is_successful:
            raise ValidationError("Receipts are only issued for completed payments")
        now = self._clock()
        number = result.receipt_number or receipt_number(result.transaction_id, now)
        return PaymentReceipt(
            receipt_number=number,
            transaction_id=result.transaction_id,
            tenant_id=tenant_id,
            generated_at=now,
            content=render_receipt(result),
            signature=receipt_signature(number, result.transaction_id, now),
        )
