from __future__ import annotations

from dataclasses import dataclass, field

from ..core.constants import MIN_PASSWORD_LENGTH, PASSWORD_SPECIAL_CHARS
from ..core.enums import PasswordStrength


@dataclass(frozen=True)
class PasswordValidation:
    is_valid: bool
    errors: list[str] = field(default_factory=list)


class PasswordPolicyService:
    """Complexity rules applied to every new password."""

    def _checks(self, password: str) -> list[tuple[bool, str]]:
        return [
            (len(password) >= MIN_PASSWORD_LENGTH, f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"),
            (any(c.isupper() for c in password), "Password must contain at least one uppercase letter"),
            (any(c.islower() for c in password), "Password must contain at least one lowercase letter"),
            (any(c.isdigit() for c in password), "Password must contain at least one number"),
            (any(c in PASSWORD_SPECIAL_CHARS for c in password), "Password must contain at least one special character"),
        ]

    def validate_password(self, password: str) -> PasswordValidation:
        errors = [message for passed, message in self._checks(password or "") if not passed]
        return PasswordValidation(is_valid=not errors, errors=errors)

    def get_password_strength(self, password: str) -> PasswordStrength:
        score = sum(1 for passed, _ in self._checks(password or "") if passed)
        if score == 5:
            return PasswordStrength.STRONG
        if score in (3, 4):
            return PasswordStrength.MEDIUM
        return PasswordStrength.WEAK
