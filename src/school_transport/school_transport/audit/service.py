from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..core.result import PagedResult, Result, service_result
from .repository import AuditLogRepository

logger = logging.getLogger(__name__)

SECURITY_ACTIONS = (
    "Login",
    "Logout",
    "PasswordChange",
    "MfaSetup",
    "MfaVerification",
    "AccountLockout",
    "AccountUnlock",
    "PermissionDenied",
)


class AuditLogService:
    """Records security-relevant events. Writing an event never raises into the caller."""

    def __init__(self, logs: AuditLogRepository, *, clock: Callable[[], datetime] = now_local):
        self._logs = logs
        self._clock = clock

    @service_result("Failed to log audit event")
    def log_event(
        self,
        *,
        tenant_id: int,
        user_id: Optional[int],
        email: Optional[str],
        action: str,
        ip_address: str = "",
        user_agent: str = "",
        success: bool,
        details: str = "",
    ) -> bool:
        self._logs.add(
            tenant_id=tenant_id,
            user_id=user_id,
            email=email,
            action=action,
            ip_address=ip_address,
            user_agent=user_agent,
            success=success,
            details=details,
            created_at=self._clock(),
        )
        logger.info("audit action=%s user=%s tenant=%s success=%s", action, user_id, tenant_id, success)
        return True

    def log_login_attempt(self, *, tenant_id: int, user_id: Optional[int], email: str, ip_address: str, user_agent: str, success: bool, details: str) -> Result[bool]:
        return self.log_event(tenant_id=tenant_id, user_id=user_id, email=email, action="Login", ip_address=ip_address, user_agent=user_agent, success=success, details=details)

    def log_logout(self, *, tenant_id: int, user_id: int, email: str, ip_address: str, user_agent: str) -> Result[bool]:
        return self.log_event(tenant_id=tenant_id, user_id=user_id, email=email, action="Logout", ip_address=ip_address, user_agent=user_agent, success=True, details="User logged out")

    def log_password_change(self, *, tenant_id: int, user_id: int, email: str, ip_address: str, user_agent: str, success: bool) -> Result[bool]:
        details = "Password changed successfully" if success else "Password change failed"
        return self.log_event(tenant_id=tenant_id, user_id=user_id, email=email, action="PasswordChange", ip_address=ip_address, user_agent=user_agent, success=success, details=details)

    def log_mfa_setup(self, *, tenant_id: int, user_id: int, email: str, ip_address: str, user_agent: str, success: bool) -> Result[bool]:
        details = "MFA setup completed" if success else "MFA setup failed"
        return self.log_event(tenant_id=tenant_id, user_id=user_id, email=email, action="MfaSetup", ip_address=ip_address, user_agent=user_agent, success=success, details=details)

    def log_mfa_verification(self, *, tenant_id: int, user_id: int, email: str, ip_address: str, user_agent: str, success: bool) -> Result[bool]:
        details = "MFA verification successful" if success else "MFA verification failed"
        return self.log_event(tenant_id=tenant_id, user_id=user_id, email=email, action="MfaVerification", ip_address=ip_address, user_agent=user_agent, success=success, details=details)

    def log_account_lockout(self, *, tenant_id: int, user_id: int, email: str, ip_address: str, user_agent: str) -> Result[bool]:
        return self.log_event(tenant_id=tenant_id, user_id=user_id, email=email, action="AccountLockout", ip_address=ip_address, user_agent=user_agent, success=False, details="Account locked due to failed login attempts")

    def log_account_unlock(self, *, tenant_id: int, user_id: int, email: str, ip_address: str, user_agent: str) -> Result[bool]:
        return self.log_event(tenant_id=tenant_id, user_id=user_id, email=email, action="AccountUnlock", ip_address=ip_address, user_agent=user_agent, success=True, details="Account unlocked")

    def log_role_change(self, *, tenant_id: int, user_id: int, email: str, old_role: str, new_role: str, ip_address: str, user_agent: str) -> Result[bool]:
        return self.log_event(tenant_id=tenant_id, user_id=user_id, email=email, action="RoleChange", ip_address=ip_address, user_agent=user_agent, success=True, details=f"Role changed from {old_role} to {new_role}")

    def log_permission_denied(self, *, tenant_id: int, user_id: Optional[int], email: str, action: str, resource: str, ip_address: str, user_agent: str) -> Result[bool]:
        return self.log_event(tenant_id=tenant_id, user_id=user_id, email=email, action="PermissionDenied", ip_address=ip_address, user_agent=user_agent, success=False, details=f"Access denied to {resource} for action {action}")

    @service_result("Failed to retrieve audit logs")
    def get_audit_logs(
        self,
        *,
        tenant_id: int,
        page: int = 1,
        page_size: int = 50,
        user_id: Optional[int] = None,
        action: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> PagedResult:
        items, total = self._logs.search(
            tenant_id=tenant_id,
            user_id=user_id,
            actions=[action] if action else None,
            start=start,
            end=end,
            page=page,
            page_size=page_size,
        )
        return PagedResult(items=items, total_count=total, page=page, page_size=page_size)

    @service_result("Failed to count audit logs")
    def get_audit_log_count(
        self,
        *,
        tenant_id: int,
        user_id: Optional[int] = None,
        action: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> int:
        _, total = self._logs.search(
            tenant_id=tenant_id, user_id=user_id, actions=[action] if action else None, start=start, end=end, page=1, page_size=1
        )
        return total

    @service_result("Failed to retrieve security events")
    def get_security_events(self, *, tenant_id: int, page: int = 1, page_size: int = 50) -> PagedResult:
        items, total = self._logs.search(tenant_id=tenant_id, actions=SECURITY_ACTIONS, page=page, page_size=page_size)
        return PagedResult(items=items, total_count=total, page=page, page_size=page_size)
