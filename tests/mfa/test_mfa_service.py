from __future__ import annotations

from dataclasses import replace

from src.school_transport.school_transport.core.enums import Role
from src.school_transport.school_transport.mfa.qr import render_png
from src.school_transport.school_transport.mfa.service import MfaService
from src.school_transport.school_transport.mfa.totp import totp
from src.school_transport.school_transport.users.model import User

CLOCK = 1_700_000_000.0


class FakeUsersRepo:
    def __init__(self, user: User):
        self.user = user

    def get_by_id(self, tenant_id, user_id):
        if tenant_id == self.user.tenant_id and user_id == self.user.user_id:
            return self.user
        return None

    def update_mfa(self, *, tenant_id, user_id, secret, enabled, backup_codes):
        self.user = replace(self.user, mfa_secret=secret, mfa_enabled=enabled, backup_codes=tuple(backup_codes))
        return True


def _service():
    repo = FakeUsersRepo(
        User(user_id=7, tenant_id=1, username="parent", email="parent@rihla.test", password_hash="x", role=Role.PARENT)
    )
    return MfaService(repo, clock=lambda: CLOCK), repo


def test_setup_then_enable_with_current_code():
    mfa, repo = _service()

    setup = mfa.setup_mfa(tenant_id=1, user_id=7)
    assert setup.is_success
    assert setup.value.otpauth_url.startswith("otpauth://totp/")
    assert len(setup.value.backup_codes) == 8
    assert repo.user.mfa_secret == setup.value.secret
    assert not repo.user.mfa_enabled

    enabled = mfa.enable_mfa(tenant_id=1, user_id=7, verification_code=totp(setup.value.secret, CLOCK))
    assert enabled.is_success
    assert repo.user.mfa_enabled


def test_setup_rejected_when_already_enabled():
    mfa, repo = _service()
    repo.user = replace(repo.user, mfa_secret="GEZDGNBVGY3TQOJQ", mfa_enabled=True)

    result = mfa.setup_mfa(tenant_id=1, user_id=7)
    assert result.is_failure
    assert result.error == "MFA is already enabled for this user"


def test_disable_clears_secret_and_codes():
    mfa, repo = _service()
    secret = mfa.setup_mfa(tenant_id=1, user_id=7).value.secret
    mfa.enable_mfa(tenant_id=1, user_id=7, verification_code=totp(secret, CLOCK))

    assert mfa.disable_mfa(tenant_id=1, user_id=7, verification_code=totp(secret, CLOCK)).is_success
    assert repo.user.mfa_secret is None
    assert repo.user.backup_codes == ()
    assert mfa.qr_payload(tenant_id=1, user_id=7) is None


def test_verify_without_setup_fails():
    mfa, _ = _service()
    assert mfa.verify_mfa_code(tenant_id=1, user_id=7, code="123456").is_failure
    assert mfa.verify_mfa_code(tenant_id=1, user_id=99, code="123456").not_found


def test_qr_png_is_png():
    data = render_png("otpauth://totp/Rihla:parent?secret=GEZDGNBVGY3TQOJQ")
    assert data.startswith(b"\x89PNG")
