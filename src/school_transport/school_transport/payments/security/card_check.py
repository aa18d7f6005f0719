from __future__ import annotations

from ...core.enums import CARD_PAYMENT_METHODS, SecurityCheckType
from .base import PaymentSecurityRequest, SecurityCheck, SecurityCheckResult


class CardSecurityCheck(SecurityCheck):
    """CVV length; only for card payments."""

    def applies(self, request: PaymentSecurityRequest) -> bool:
        return request.payment_method in CARD_PAYMENT_METHODS

    def run(self, request: PaymentSecurityRequest) -> SecurityCheckResult:
        passed = bool(request.cvv) and len(request.cvv) >= 3
        return SecurityCheckResult(
            check_type=SecurityCheckType.CARD_SECURITY,
            passed=passed,
            risk_score=0 if passed else 20,
            message="Card security validation passed" if passed else "Invalid CVV",
        )
