from __future__ import annotations

import pytest

from src.school_transport.school_transport.core.exceptions import DeliveryError
from src.school_transport.school_transport.notifications.sms import SmsService, backoff_delays


class FlakyGateway:
    def __init__(self, failures: int):
        self.failures = failures
        self.sent: list[tuple[str, str]] = []

    def send(self, *, to, message, sender_id):
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("provider unavailable")
        self.sent.append((to, message))


def _service(gateway, *, api_key="key", sleeps=None):
    recorder = sleeps if sleeps is not None else []
    return SmsService(gateway, api_key=api_key, sender_id="Rihla", sleep=recorder.append)


def test_not_configured_returns_false_without_sending():
    gateway = FlakyGateway(0)
    assert _service(gateway, api_key=None).send_sms("+966500000001", "hello") is False
    assert gateway.sent == []


def test_retries_with_exponential_backoff_then_succeeds():
    sleeps: list[float] = []
    gateway = FlakyGateway(2)

    assert _service(gateway, sleeps=sleeps).send_sms("+966500000001", "hello") is True
    assert sleeps == [1.0, 2.0]
    assert gateway.sent == [("+966500000001", "hello")]


def test_raises_after_last_attempt():
    sleeps: list[float] = []

    with pytest.raises(DeliveryError):
        _service(FlakyGateway(3), sleeps=sleeps).send_sms("+966500000001", "hello")
    assert sleeps == [1.0, 2.0]


def test_bulk_reports_each_number():
    gateway = FlakyGateway(3)
    outcome = _service(gateway).send_bulk_sms(["+1", "+2"], "bus delayed")
    assert outcome == {"+1": False, "+2": True}


def test_emergency_alert_prefix():
    gateway = FlakyGateway(0)
    _service(gateway).send_emergency_alert(["+1"], "Accident on route R-100")
    assert gateway.sent[0][1] == "EMERGENCY: Accident on route R-100 - Rihla Transportation"


def test_backoff_delays():
    assert backoff_delays(4, 0.5) == [0.5, 1.0, 2.0]
    assert backoff_delays(1, 1.0) == []
