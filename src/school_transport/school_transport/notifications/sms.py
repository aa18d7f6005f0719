from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Callable, Optional, Protocol, Sequence

from ..core.constants import SMS_BASE_DELAY_SECONDS, SMS_MAX_RETRIES
from ..core.exceptions import DeliveryError

logger = logging.getLogger(__name__)


class SmsGateway(Protocol):
    def send(self, *, to: str, message: str, sender_id: Optional[str]) -> None:
        raise NotImplementedError


class LoggingSmsGateway(SmsGateway):
    """Stand-in provider: records the outgoing message in the log only."""

    def send(self, *, to: str, message: str, sender_id: Optional[str]) -> None:
        logger.info("SMS to %s from %s: %s", to, sender_id or "-", message)


def backoff_delays(max_retries: int = SMS_MAX_RETRIES, base_delay: float = SMS_BASE_DELAY_SECONDS) -> list[float]:
    """Pauses between attempts: base, 2*base, 4*base... (one fewer than attempts)."""
    return [base_delay * (2**i) for i in range(max(max_retries - 1, 0))]


class SmsService:
    def __init__(
        self,
        gateway: SmsGateway,
        *,
        api_key: Optional[str],
        sender_id: Optional[str] = None,
        max_retries: int = SMS_MAX_RETRIES,
        base_delay: float = SMS_BASE_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._gateway = gateway
        self._api_key = api_key
        self._sender_id = sender_id
        self._max_retries = max(1, int(max_retries))
        self._base_delay = float(base_delay)
        self._sleep = sleep

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def send_sms(self, phone_number: str, message: str) -> bool:
        """Send one message; returns False when SMS is not configured.

        Raises DeliveryError once every attempt has failed.
        """
        if not self.is_configured:
            logger.warning("SMS service not configured. Message would be sent to %s: %s", phone_number, message)
            return False

        delays = backoff_delays(self._max_retries, self._base_delay)
        for attempt in range(1, self._max_retries + 1):
            try:
                self._gateway.send(to=phone_number, message=message, sender_id=self._sender_id)
                logger.info("SMS sent successfully to %s", phone_number)
                return True
            except Exception as exc:
                if attempt == self._max_retries:
                    logger.error("Failed to send SMS to %s after %d attempts", phone_number, attempt)
                    raise DeliveryError(f"Failed to send SMS to {phone_number}") from exc
                delay = delays[attempt - 1]
                logger.warning("SMS to %s failed (attempt %d), retrying in %.1fs: %s", phone_number, attempt, delay, exc)
                self._sleep(delay)
        return False

    def send_bulk_sms(self, phone_numbers: Sequence[str], message: str) -> dict[str, bool]:
        """Per-number outcome; one failing number does not stop the rest."""
        outcome: dict[str, bool] = {}
        for number in phone_numbers:
            try:
                outcome[number] = self.send_sms(number, message)
            except DeliveryError:
                outcome[number] = False
        return outcome

    def send_emergency_alert(self, phone_numbers: Sequence[str], message: str) -> dict[str, bool]:
        return self.send_bulk_sms(phone_numbers, f"EMERGENCY: {message} - Rihla Transportation")

    def send_parent_notification(self, parent_phone: str, student_name: str, message: str) -> bool:
        return self.send_sms(parent_phone, f"Rihla Alert - {student_name}: {message}")

    def send_trip_delay_notification(self, parent_phone: str, student_name: str, delay_minutes: int) -> bool:
        return self.send_sms(
            parent_phone,
            f"Rihla Update - {student_name}'s trip is delayed by {delay_minutes} minutes. "
            "We apologize for the inconvenience.",
        )

    def send_pickup_confirmation(self, parent_phone: str, student_name: str, pickup_time: datetime) -> bool:
        return self.send_sms(
            parent_phone, f"Rihla Confirmation - {student_name} has been picked up at {pickup_time:%H:%M}. Have a great day!"
        )
