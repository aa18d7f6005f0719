from __future__ import annotations

from ...core.enums import SecurityCheckType
from .base import PaymentSecurityRequest, SecurityCheck, SecurityCheckResult


class RateLimitCheck(SecurityCheck):
    def run(self, request: PaymentSecurityRequest) -> SecurityCheckResult:
        return SecurityCheckResult(
            check_type=SecurityCheckType.RATE_LIMITING,
            passed=True,
            risk_score=0,
            message="Rate limit check passed",
        )
