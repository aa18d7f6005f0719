from __future__ import annotations

from ...core.constants import HIGH_AMOUNT_THRESHOLD
from ...core.enums import SecurityCheckType
from .base import PaymentSecurityRequest, SecurityCheck, SecurityCheckResult


class FraudDetectionCheck(SecurityCheck):
    """Amount heuristic. Never fails, only adds risk."""

    def run(self, request: PaymentSecurityRequest) -> SecurityCheckResult:
        if request.amount > HIGH_AMOUNT_THRESHOLD:
            return SecurityCheckResult(
                check_type=SecurityCheckType.FRAUD_DETECTION,
                passed=True,
                risk_score=15,
                message="High amount transaction flagged for review",
            )
        return SecurityCheckResult(
            check_type=SecurityCheckType.FRAUD_DETECTION,
            passed=True,
            risk_score=0,
            message="No fraud indicators detected",
        )
