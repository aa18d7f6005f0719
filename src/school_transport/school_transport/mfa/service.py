from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..core.exceptions import NotFoundError, ValidationError
from ..core.result import Result, service_result
from ..users.model import User
from ..users.repository import UserRepository
from .qr import otpauth_url
from .totp import generate_backup_codes, generate_secret, verify_totp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MfaSetup:
    secret: str
    otpauth_url: str
    backup_codes: list[str]


class MfaService:
    """TOTP second factor with single-use backup codes."""

    def __init__(self, users: UserRepository, *, clock: Callable[[], float] = time.time):
        self._users = users
        self._clock = clock

    def _require_user(self, tenant_id: int, user_id: int) -> User:
        user = self._users.get_by_id(tenant_id, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    @service_result("Error setting up MFA")
    def setup_mfa(self, *, tenant_id: int, user_id: int) -> MfaSetup:
        user = self._require_user(tenant_id, user_id)
        if user.mfa_enabled:
            raise ValidationError("MFA is already enabled for this user")

        secret = generate_secret()
        codes = generate_backup_codes()
        self._users.update_mfa(tenant_id=tenant_id, user_id=user_id, secret=secret, enabled=False, backup_codes=codes)
        logger.info("MFA secret issued for user %s (tenant %s)", user_id, tenant_id)
        return MfaSetup(secret=secret, otpauth_url=otpauth_url(user.email, secret), backup_codes=codes)

    @service_result("Error verifying MFA code")
    def verify_mfa_code(self, *, tenant_id: int, user_id: int, code: str) -> bool:
        user = self._require_user(tenant_id, user_id)
        if not user.mfa_secret:
            raise ValidationError("MFA is not set up for this user")

        code = (code or "").strip()
        if code and code in user.backup_codes:
            remaining = [c for c in user.backup_codes if c != code]
            self._users.update_mfa(
                tenant_id=tenant_id,
                user_id=user_id,
                secret=user.mfa_secret,
                enabled=user.mfa_enabled,
                backup_codes=remaining,
            )
            logger.info("Backup code consumed for user %s (%d left)", user_id, len(remaining))
            return True

        return verify_totp(user.mfa_secret, code, self._clock())

    def _require_valid_code(self, tenant_id: int, user_id: int, code: str) -> None:
        verified = self.verify_mfa_code(tenant_id=tenant_id, user_id=user_id, code=code)
        if not verified.is_success or not verified.value:
            raise ValidationError("Invalid verification code")

    @service_result("Error enabling MFA")
    def enable_mfa(self, *, tenant_id: int, user_id: int, verification_code: str) -> bool:
        user = self._require_user(tenant_id, user_id)
        if not user.mfa_secret:
            raise ValidationError("MFA setup is required before enabling")
        self._require_valid_code(tenant_id, user_id, verification_code)

        # re-read: verifying with a backup code changes the stored list
        user = self._require_user(tenant_id, user_id)
        self._users.update_mfa(
            tenant_id=tenant_id, user_id=user_id, secret=user.mfa_secret, enabled=True, backup_codes=user.backup_codes
        )
        return True

    @service_result("Error disabling MFA")
    def disable_mfa(self, *, tenant_id: int, user_id: int, verification_code: str) -> bool:
        user = self._require_user(tenant_id, user_id)
        if not user.mfa_enabled:
            raise ValidationError("MFA is not enabled for this user")
        self._require_valid_code(tenant_id, user_id, verification_code)

        self._users.update_mfa(tenant_id=tenant_id, user_id=user_id, secret=None, enabled=False, backup_codes=())
        return True

    def qr_payload(self, *, tenant_id: int, user_id: int) -> Optional[str]:
        """otpauth URL for a user who has a pending or active secret."""
        user = self._users.get_by_id(tenant_id, user_id)
        if not user or not user.mfa_secret:
            return None
        return otpauth_url(user.email, user.mfa_secret)
