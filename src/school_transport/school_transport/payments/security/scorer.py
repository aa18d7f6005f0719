from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from ...core.constants import HIGH_RISK_THRESHOLD, MEDIUM_RISK_THRESHOLD
from ...core.enums import RiskLevel
from .address_check import AddressVerificationCheck
from .base import PaymentSecurityRequest, SecurityCheck, SecurityCheckResult
from .card_check import CardSecurityCheck
from .fraud_check import FraudDetectionCheck
from .pci_check import PciComplianceCheck
from .rate_limit_check import RateLimitCheck

logger = logging.getLogger(__name__)


def classify_risk(score: int) -> RiskLevel:
    if score > HIGH_RISK_THRESHOLD:
        return RiskLevel.HIGH
    if score >= MEDIUM_RISK_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


@dataclass(frozen=True)
class RiskAssessment:
    is_valid: bool
    risk_score: int
    risk_level: RiskLevel
    checks: tuple[SecurityCheckResult, ...]


def default_checks() -> tuple[SecurityCheck, ...]:
    return (
        PciComplianceCheck(),
        CardSecurityCheck(),
        FraudDetectionCheck(),
        RateLimitCheck(),
        AddressVerificationCheck(),
    )


class PaymentRiskScorer:
    """Runs every applicable check, sums their risk and classifies the total.

    Checks are independent of each other; the order only affects how results
    are listed.
    """

    def __init__(self, checks: Sequence[SecurityCheck] | None = None):
        self._checks = tuple(checks) if checks is not None else default_checks()

    def assess(self, request: PaymentSecurityRequest) -> RiskAssessment:
        results: list[SecurityCheckResult] = []
        is_valid = True
        for check in self._checks:
            if not check.applies(request):
                continue
            result = check.run(request)
            results.append(result)
            if not result.passed and check.affects_validity:
                is_valid = False

        score = sum(r.risk_score for r in results)
        level = classify_risk(score)
        if level == RiskLevel.HIGH:
            is_valid = False

        logger.info("Payment security validation completed. Valid: %s, Risk Score: %s", is_valid, score)
        return RiskAssessment(is_valid=is_valid, risk_score=score, risk_level=level, checks=tuple(results))
