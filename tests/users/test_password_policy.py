from __future__ import annotations

import pytest

from src.school_transport.school_transport.core.enums import PasswordStrength
from src.school_transport.school_transport.users.password_policy import PasswordPolicyService


@pytest.fixture
def policy():
    return PasswordPolicyService()


def test_strong_password_passes(policy):
    result = policy.validate_password("Str0ng!Passw0rd")
    assert result.is_valid
    assert result.errors == []
    assert policy.get_password_strength("Str0ng!Passw0rd") == PasswordStrength.STRONG


def test_every_failed_rule_is_reported(policy):
    result = policy.validate_password("short")
    assert not result.is_valid
    assert len(result.errors) == 4
    assert "Password must be at least 12 characters long" in result.errors


@pytest.mark.parametrize(
    "password,expected",
    [
        ("", PasswordStrength.WEAK),
        ("abc", PasswordStrength.WEAK),
        ("abcDEF123", PasswordStrength.MEDIUM),
        ("abcdefghijklM", PasswordStrength.MEDIUM),
    ],
)
def test_strength_buckets(policy, password, expected):
    assert policy.get_password_strength(password) == expected


def test_none_is_treated_as_empty(policy):
    assert not policy.validate_password(None).is_valid
