from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: platform account (admin, driver, parent, ...).

    Note: plain data object, no DB access code here.
    """

    user_id: int
    tenant_id: int
    username: str
    email: str
    password_hash: str
    role: Role
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool = True
    mfa_secret: Optional[str] = None
    mfa_enabled: bool = False
    backup_codes: tuple[str, ...] = ()
    failed_login_attempts: int = 0
    locked_until: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    def is_locked(self, now: datetime) -> bool:
        return self.locked_until is not None and self.locked_until > now


@dataclass(frozen=True)
class PublicUser:
    """What the API returns for a user (no secrets)."""

    user_id: int
    tenant_id: int
    username: str
    email: str
    role: Role
    first_name: Optional[str]
    last_name: Optional[str]
    phone: Optional[str]
    is_active: bool
    mfa_enabled: bool
    last_login_at: Optional[datetime]

    @classmethod
    def from_user(cls, user: User) -> "PublicUser":
        return cls(
            user_id=user.user_id,
            tenant_id=user.tenant_id,
            username=user.username,
            email=user.email,
            role=user.role,
            first_name=user.first_name,
            last_name=user.last_name,
            phone=user.phone,
            is_active=user.is_active,
            mfa_enabled=user.mfa_enabled,
            last_login_at=user.last_login_at,
        )
