from __future__ import annotations

from ...core.enums import SecurityCheckType
from .base import PaymentSecurityRequest, SecurityCheck, SecurityCheckResult


class AddressVerificationCheck(SecurityCheck):
    """Billing address length. A failure adds risk but never invalidates on its own."""

    affects_validity = False

    def applies(self, request: PaymentSecurityRequest) -> bool:
        return bool(request.billing_address)

    def run(self, request: PaymentSecurityRequest) -> SecurityCheckResult:
        passed = bool(request.billing_address) and len(request.billing_address) > 10
        return SecurityCheckResult(
            check_type=SecurityCheckType.ADDRESS_VERIFICATION,
            passed=passed,
            risk_score=0 if passed else 10,
            message="Address verification successful" if passed else "Address verification failed",
        )
