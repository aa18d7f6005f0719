from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..audit.service import AuditLogService
from ..common.datetime_utils import now_local
from ..common.validators import optional_email, require_non_empty
from ..core.constants import LOCKOUT_MINUTES, MAX_FAILED_LOGINS
from ..core.enums import ADMIN_ROLES, Role
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from ..core.result import PagedResult, Result, service_result
from ..mfa.service import MfaService
from .model import PublicUser, User
from .password_policy import PasswordPolicyService
from .repository import UserRepository
from .tokens import TokenService

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid username or password"


@dataclass(frozen=True)
class AuthSession:
    """Returned to the client after a successful login."""

    access_token: str
    token_type: str
    expires_in: int
    user: PublicUser


@dataclass(frozen=True)
class RequestContext:
    ip_address: str = ""
    user_agent: str = ""


def _check_password(user: User, password: str) -> bool:
    try:
        return check_password_hash(user.password_hash, password)
    except ValueError:
        # placeholder hashes like 'CHANGE_ME' or corrupted values
        return False


class AuthService:
    """Use case: authenticate user (login), logout, change password."""

    def __init__(
        self,
        users: UserRepository,
        mfa: MfaService,
        audit: AuditLogService,
        tokens: TokenService,
        policy: PasswordPolicyService,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._users = users
        self._mfa = mfa
        self._audit = audit
        self._tokens = tokens
        self._policy = policy
        self._clock = clock

    @service_result("An error occurred during login")
    def authenticate(
        self,
        *,
        tenant_id: int,
        username: str,
        password: str,
        mfa_code: Optional[str] = None,
        ctx: RequestContext = RequestContext(),
    ) -> Result[AuthSession]:
        username = require_non_empty(username, "Username")
        now = self._clock()

        user = self._users.get_by_username(tenant_id, username)
        if not user or not user.is_active:
            self._audit.log_login_attempt(
                tenant_id=tenant_id, user_id=None, email=username, ip_address=ctx.ip_address,
                user_agent=ctx.user_agent, success=False, details="Unknown or inactive account",
            )
            raise AuthenticationError(INVALID_CREDENTIALS)

        if user.is_locked(now):
            self._audit.log_login_attempt(
                tenant_id=tenant_id, user_id=user.user_id, email=user.email, ip_address=ctx.ip_address,
                user_agent=ctx.user_agent, success=False, details="Account is locked",
            )
            raise AuthenticationError("Account is locked. Please try again later")

        if not _check_password(user, password):
            self._register_failure(user, now, ctx)
            raise AuthenticationError(INVALID_CREDENTIALS)

        if user.mfa_enabled:
            if not mfa_code:
                return Result.failure("MFA code required", errors=["mfa_required"])
            verified = self._mfa.verify_mfa_code(tenant_id=tenant_id, user_id=user.user_id, code=mfa_code)
            ok = verified.is_success and bool(verified.value)
            self._audit.log_mfa_verification(
                tenant_id=tenant_id, user_id=user.user_id, email=user.email,
                ip_address=ctx.ip_address, user_agent=ctx.user_agent, success=ok,
            )
            if not ok:
                self._register_failure(user, now, ctx)
                raise AuthenticationError("Invalid MFA code")

        self._users.record_login(
            tenant_id=tenant_id, user_id=user.user_id, failed_login_attempts=0, locked_until=None, last_login_at=now
        )
        self._audit.log_login_attempt(
            tenant_id=tenant_id, user_id=user.user_id, email=user.email, ip_address=ctx.ip_address,
            user_agent=ctx.user_agent, success=True, details="Login successful",
        )
        return Result.success(
            AuthSession(
                access_token=self._tokens.issue(user),
                token_type="Bearer",
                expires_in=self._tokens.max_age_seconds,
                user=PublicUser.from_user(user),
            )
        )

    def _register_failure(self, user: User, now: datetime, ctx: RequestContext) -> None:
        attempts = user.failed_login_attempts + 1
        locked_until = None
        if attempts >= MAX_FAILED_LOGINS:
            locked_until = now + timedelta(minutes=LOCKOUT_MINUTES)
        self._users.record_login(
            tenant_id=user.tenant_id, user_id=user.user_id, failed_login_attempts=attempts, locked_until=locked_until
        )
        self._audit.log_login_attempt(
            tenant_id=user.tenant_id, user_id=user.user_id, email=user.email, ip_address=ctx.ip_address,
            user_agent=ctx.user_agent, success=False, details=f"Failed login attempt {attempts}",
        )
        if locked_until is not None:
            logger.warning("User %s locked until %s after %d failed logins", user.user_id, locked_until, attempts)
            self._audit.log_account_lockout(
                tenant_id=user.tenant_id, user_id=user.user_id, email=user.email,
                ip_address=ctx.ip_address, user_agent=ctx.user_agent,
            )

    @service_result("An error occurred during logout")
    def logout(self, *, tenant_id: int, user_id: int, ctx: RequestContext = RequestContext()) -> bool:
        user = self._users.get_by_id(tenant_id, user_id)
        email = user.email if user else ""
        self._audit.log_logout(tenant_id=tenant_id, user_id=user_id, email=email, ip_address=ctx.ip_address, user_agent=ctx.user_agent)
        return True

    @service_result("An error occurred while changing the password")
    def change_password(
        self,
        *,
        tenant_id: int,
        user_id: int,
        current_password: str,
        new_password: str,
        ctx: RequestContext = RequestContext(),
    ) -> Result[bool]:
        user = self._users.get_by_id(tenant_id, user_id)
        if not user:
            raise NotFoundError("User not found")

        def audit(success: bool) -> None:
            self._audit.log_password_change(
                tenant_id=tenant_id, user_id=user_id, email=user.email,
                ip_address=ctx.ip_address, user_agent=ctx.user_agent, success=success,
            )

        if not _check_password(user, current_password):
            audit(False)
            raise AuthenticationError("Current password is incorrect")

        validation = self._policy.validate_password(new_password)
        if not validation.is_valid:
            audit(False)
            return Result.failure("Password does not meet policy requirements", errors=validation.errors)

        self._users.update_password(tenant_id=tenant_id, user_id=user_id, password_hash=generate_password_hash(new_password))
        audit(True)
        return Result.success(True)


class UserService:
    """Use case: manage platform accounts (admin)."""

    def __init__(self, users: UserRepository, policy: PasswordPolicyService, audit: AuditLogService):
        self._users = users
        self._policy = policy
        self._audit = audit

    @service_result("An error occurred while creating the user")
    def create_user(
        self,
        *,
        tenant_id: int,
        actor_role: Role,
        username: str,
        email: str,
        password: str,
        role: Role,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Result[PublicUser]:
        username = require_non_empty(username, "Username")
        email = optional_email(require_non_empty(email, "Email"))
        if role == Role.SUPER_ADMIN and actor_role != Role.SUPER_ADMIN:
            raise AuthorizationError("Only a super admin can create super admins")

        validation = self._policy.validate_password(password)
        if not validation.is_valid:
            return Result.failure("Password does not meet policy requirements", errors=validation.errors)

        if self._users.get_by_username(tenant_id, username):
            raise ValidationError("Username already exists")
        if self._users.get_by_email(tenant_id, email):
            raise ValidationError("Email already exists")

        user_id = self._users.create_user(
            tenant_id=tenant_id,
            username=username,
            email=email,
            password_hash=generate_password_hash(password),
            role=role,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
        )
        user = self._users.get_by_id(tenant_id, user_id)
        return Result.success(PublicUser.from_user(user))

    @service_result("An error occurred while retrieving the user")
    def get_user(self, *, tenant_id: int, user_id: int) -> PublicUser:
        user = self._users.get_by_id(tenant_id, user_id)
        if not user:
            raise NotFoundError("User not found")
        return PublicUser.from_user(user)

    @service_result("An error occurred while retrieving users")
    def list_users(self, *, tenant_id: int, role: Optional[Role] = None, page: int = 1, page_size: int = 20) -> PagedResult:
        users, total = self._users.list_users(tenant_id=tenant_id, role=role, page=page, page_size=page_size)
        return PagedResult(items=[PublicUser.from_user(u) for u in users], total_count=total, page=page, page_size=page_size)

    @service_result("An error occurred while changing the role")
    def change_role(self, *, tenant_id: int, actor_role: Role, user_id: int, new_role: Role, ctx: RequestContext = RequestContext()) -> bool:
        if actor_role not in ADMIN_ROLES:
            raise AuthorizationError("You do not have permission to change roles")
        user = self._users.get_by_id(tenant_id, user_id)
        if not user:
            raise NotFoundError("User not found")
        if Role.SUPER_ADMIN in (user.role, new_role) and actor_role != Role.SUPER_ADMIN:
            raise AuthorizationError("Only a super admin can grant or revoke super admin")

        self._users.update_role(tenant_id=tenant_id, user_id=user_id, role=new_role)
        self._audit.log_role_change(
            tenant_id=tenant_id, user_id=user_id, email=user.email, old_role=user.role.value, new_role=new_role.value,
            ip_address=ctx.ip_address, user_agent=ctx.user_agent,
        )
        return True

    @service_result("An error occurred while unlocking the account")
    def unlock_account(self, *, tenant_id: int, user_id: int, ctx: RequestContext = RequestContext()) -> bool:
        user = self._users.get_by_id(tenant_id, user_id)
        if not user:
            raise NotFoundError("User not found")
        self._users.record_login(tenant_id=tenant_id, user_id=user_id, failed_login_attempts=0, locked_until=None)
        self._audit.log_account_unlock(
            tenant_id=tenant_id, user_id=user_id, email=user.email, ip_address=ctx.ip_address, user_agent=ctx.user_agent
        )
        return True

    @service_result("An error occurred while deleting the user")
    def delete_user(self, *, tenant_id: int, actor_id: int, user_id: int) -> bool:
        if actor_id == user_id:
            raise ValidationError("You cannot delete your own account")
        user = self._users.get_by_id(tenant_id, user_id)
        if not user:
            raise NotFoundError("User not found")
        if user.role == Role.SUPER_ADMIN:
            raise ValidationError("Cannot delete a super admin account")
        return self._users.soft_delete(tenant_id=tenant_id, user_id=user_id, deleted_by=actor_id)
