from __future__ import annotations

from src.school_transport.school_transport.core.enums import PaymentMethod, RiskLevel, SecurityCheckType
from src.school_transport.school_transport.payments.security.base import (
    PaymentSecurityRequest,
    SecurityCheck,
    SecurityCheckResult,
)
from src.school_transport.school_transport.payments.security.scorer import PaymentRiskScorer, classify_risk

CARD = "4242424242424242"


class FixedRiskCheck(SecurityCheck):
    def __init__(self, risk: int):
        self.risk = risk

    def run(self, request):
        return SecurityCheckResult(
            check_type=SecurityCheckType.FRAUD_DETECTION, passed=True, risk_score=self.risk, message="fixed"
        )


def _request(**overrides) -> PaymentSecurityRequest:
    values = dict(
        amount=120.0,
        card_number=CARD,
        cvv="123",
        billing_address="King Fahd Road, Riyadh 12211",
        payment_method=PaymentMethod.CREDIT_CARD,
    )
    values.update(overrides)
    return PaymentSecurityRequest(**values)


def test_clean_card_payment_is_low_risk_and_valid():
    assessment = PaymentRiskScorer().assess(_request())

    assert assessment.is_valid
    assert assessment.risk_score == 0
    assert assessment.risk_level == RiskLevel.LOW


def test_short_cvv_fails_card_check_with_risk_20():
    assessment = PaymentRiskScorer().assess(_request(cvv="12"))

    card = [c for c in assessment.checks if c.check_type == SecurityCheckType.CARD_SECURITY]
    assert len(card) == 1
    assert not card[0].passed
    assert card[0].risk_score == 20
    assert assessment.risk_score == 20
    assert not assessment.is_valid


def test_card_check_skipped_for_cash():
    assessment = PaymentRiskScorer().assess(_request(cvv=None, payment_method=PaymentMethod.CASH))
    assert SecurityCheckType.CARD_SECURITY not in {c.check_type for c in assessment.checks}


def test_high_amount_and_bad_address_reach_medium_but_stay_valid():
    assessment = PaymentRiskScorer().assess(_request(amount=1500.0, billing_address="short"))

    assert assessment.risk_score == 25
    assert assessment.risk_level == RiskLevel.MEDIUM
    assert assessment.is_valid


def test_short_card_number_invalidates_without_risk():
    assessment = PaymentRiskScorer().assess(_request(card_number="4242"))
    assert not assessment.is_valid
    assert assessment.risk_score == 0


def test_score_above_high_threshold_is_invalid():
    assessment = PaymentRiskScorer(checks=[FixedRiskCheck(30), FixedRiskCheck(25)]).assess(_request())

    assert assessment.risk_score == 55
    assert assessment.risk_level == RiskLevel.HIGH
    assert not assessment.is_valid


def test_assessment_is_repeatable():
    scorer = PaymentRiskScorer()
    request = _request(amount=2000.0, cvv="1")
    assert scorer.assess(request) == scorer.assess(request)


def test_classify_risk_boundaries():
    assert classify_risk(24) == RiskLevel.LOW
    assert classify_risk(25) == RiskLevel.MEDIUM
    assert classify_risk(50) == RiskLevel.MEDIUM
    assert classify_risk(51) == RiskLevel.HIGH
