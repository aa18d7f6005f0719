from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

from werkzeug.security import check_password_hash, generate_password_hash

from src.school_transport.school_transport.audit.service import AuditLogService
from src.school_transport.school_transport.core.enums import Role
from src.school_transport.school_transport.mfa.service import MfaService
from src.school_transport.school_transport.mfa.totp import totp
from src.school_transport.school_transport.users.model import User
from src.school_transport.school_transport.users.password_policy import PasswordPolicyService
from src.school_transport.school_transport.users.service import AuthService, UserService
from src.school_transport.school_transport.users.tokens import TokenService

NOW = datetime(2026, 3, 2, 8, 0, 0)
PASSWORD = "Str0ng!Passw0rd"
SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"


class FakeUsersRepo:
    def __init__(self, *users: User):
        self.users = {u.user_id: u for u in users}

    def get_by_id(self, tenant_id, user_id):
        u = self.users.get(int(user_id))
        return u if u and u.tenant_id == tenant_id else None

    def get_by_username(self, tenant_id, username):
        return next((u for u in self.users.values() if u.tenant_id == tenant_id and u.username == username), None)

    def get_by_email(self, tenant_id, email):
        return next((u for u in self.users.values() if u.tenant_id == tenant_id and u.email == email), None)

    def create_user(self, *, tenant_id, username, email, password_hash, role, first_name=None, last_name=None, phone=None):
        user_id = max(self.users, default=0) + 1
        self.users[user_id] = User(
            user_id=user_id, tenant_id=tenant_id, username=username, email=email,
            password_hash=password_hash, role=role, first_name=first_name, last_name=last_name, phone=phone,
        )
        return user_id

    def record_login(self, *, tenant_id, user_id, failed_login_attempts, locked_until, last_login_at=None):
        u = self.users[user_id]
        self.users[user_id] = replace(
            u,
            failed_login_attempts=failed_login_attempts,
            locked_until=locked_until,
            last_login_at=last_login_at or u.last_login_at,
        )
        return True

    def update_password(self, *, tenant_id, user_id, password_hash):
        self.users[user_id] = replace(self.users[user_id], password_hash=password_hash)
        return True

    def update_role(self, *, tenant_id, user_id, role):
        self.users[user_id] = replace(self.users[user_id], role=role)
        return True

    def update_mfa(self, *, tenant_id, user_id, secret, enabled, backup_codes):
        self.users[user_id] = replace(self.users[user_id], mfa_secret=secret, mfa_enabled=enabled, backup_codes=tuple(backup_codes))
        return True

    def soft_delete(self, *, tenant_id, user_id, deleted_by):
        return self.users.pop(user_id, None) is not None


class FakeAuditRepo:
    def __init__(self):
        self.rows: list[dict] = []

    def add(self, **row):
        self.rows.append(row)
        return len(self.rows)

    def actions(self):
        return [r["action"] for r in self.rows]


def _user(**overrides) -> User:
    values = dict(
        user_id=1, tenant_id=1, username="admin", email="admin@rihla.test",
        password_hash=generate_password_hash(PASSWORD), role=Role.TENANT_ADMIN,
    )
    values.update(overrides)
    return User(**values)


def _services(*users: User, unix_time: float = 59.0):
    repo = FakeUsersRepo(*users)
    audit_repo = FakeAuditRepo()
    audit = AuditLogService(audit_repo, clock=lambda: NOW)
    mfa = MfaService(repo, clock=lambda: unix_time)
    tokens = TokenService("test-secret", max_age_seconds=3600)
    auth = AuthService(repo, mfa, audit, tokens, PasswordPolicyService(), clock=lambda: NOW)
    return auth, repo, audit_repo, tokens


def test_login_issues_token_and_resets_failures():
    auth, repo, audit_repo, tokens = _services(_user(failed_login_attempts=2))

    result = auth.authenticate(tenant_id=1, username="admin", password=PASSWORD)

    assert result.is_success
    session = result.value
    assert session.token_type == "Bearer"
    identity = tokens.load(session.access_token)
    assert identity.user_id == 1 and identity.role == Role.TENANT_ADMIN
    assert repo.users[1].failed_login_attempts == 0
    assert repo.users[1].last_login_at == NOW
    assert audit_repo.rows[-1]["success"] is True


def test_unknown_user_gets_generic_message():
    auth, _, audit_repo, _ = _services(_user())

    result = auth.authenticate(tenant_id=1, username="ghost", password=PASSWORD)

    assert result.is_failure
    assert result.error == "Invalid username or password"
    assert audit_repo.actions() == ["Login"]


def test_fifth_failure_locks_account():
    auth, repo, audit_repo, _ = _services(_user())

    for _ in range(5):
        assert auth.authenticate(tenant_id=1, username="admin", password="wrong").is_failure

    assert repo.users[1].failed_login_attempts == 5
    assert repo.users[1].locked_until == NOW + timedelta(minutes=15)
    assert "AccountLockout" in audit_repo.actions()

    locked = auth.authenticate(tenant_id=1, username="admin", password=PASSWORD)
    assert locked.is_failure
    assert "locked" in locked.error


def test_mfa_user_needs_code():
    auth, _, _, _ = _services(_user(mfa_secret=SECRET, mfa_enabled=True))

    missing = auth.authenticate(tenant_id=1, username="admin", password=PASSWORD)
    assert missing.is_failure
    assert missing.errors == ("mfa_required",)

    bad = auth.authenticate(tenant_id=1, username="admin", password=PASSWORD, mfa_code="000000")
    assert bad.is_failure

    good = auth.authenticate(tenant_id=1, username="admin", password=PASSWORD, mfa_code=totp(SECRET, 59))
    assert good.is_success


def test_backup_code_is_single_use():
    auth, repo, _, _ = _services(_user(mfa_secret=SECRET, mfa_enabled=True, backup_codes=("12345678",)))

    assert auth.authenticate(tenant_id=1, username="admin", password=PASSWORD, mfa_code="12345678").is_success
    assert repo.users[1].backup_codes == ()
    assert auth.authenticate(tenant_id=1, username="admin", password=PASSWORD, mfa_code="12345678").is_failure


def test_change_password_enforces_policy():
    auth, repo, audit_repo, _ = _services(_user())

    weak = auth.change_password(tenant_id=1, user_id=1, current_password=PASSWORD, new_password="weak")
    assert weak.is_failure
    assert weak.errors

    wrong = auth.change_password(tenant_id=1, user_id=1, current_password="nope", new_password="N3w!Password99")
    assert wrong.is_failure

    done = auth.change_password(tenant_id=1, user_id=1, current_password=PASSWORD, new_password="N3w!Password99")
    assert done.is_success
    assert check_password_hash(repo.users[1].password_hash, "N3w!Password99")
    assert [r["success"] for r in audit_repo.rows if r["action"] == "PasswordChange"] == [False, False, True]


def test_user_service_rules():
    repo = FakeUsersRepo(_user(), _user(user_id=2, username="root", email="root@rihla.test", role=Role.SUPER_ADMIN))
    audit = AuditLogService(FakeAuditRepo(), clock=lambda: NOW)
    users = UserService(repo, PasswordPolicyService(), audit)

    created = users.create_user(
        tenant_id=1, actor_role=Role.TENANT_ADMIN, username="driver1", email="d1@rihla.test",
        password=PASSWORD, role=Role.DRIVER,
    )
    assert created.is_success
    assert created.value.role == Role.DRIVER

    dup = users.create_user(
        tenant_id=1, actor_role=Role.TENANT_ADMIN, username="driver1", email="x@rihla.test",
        password=PASSWORD, role=Role.DRIVER,
    )
    assert dup.error == "Username already exists"

    escalate = users.create_user(
        tenant_id=1, actor_role=Role.TENANT_ADMIN, username="boss", email="b@rihla.test",
        password=PASSWORD, role=Role.SUPER_ADMIN,
    )
    assert escalate.is_failure

    assert users.delete_user(tenant_id=1, actor_id=1, user_id=1).is_failure
    assert users.delete_user(tenant_id=1, actor_id=1, user_id=2).is_failure
    assert users.delete_user(tenant_id=1, actor_id=1, user_id=99).not_found
