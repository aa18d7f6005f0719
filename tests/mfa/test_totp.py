from __future__ import annotations

import base64

from src.school_transport.school_transport.mfa.totp import (
    generate_backup_codes,
    generate_secret,
    hotp,
    totp,
    verify_totp,
)

# ASCII "12345678901234567890" in base32
RFC_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"


def test_known_vector():
    assert totp(RFC_SECRET, 59) == "287082"
    assert totp(RFC_SECRET, 59, digits=8) == "94287082"


def test_hotp_counter_zero():
    assert hotp(RFC_SECRET, 0) == "755224"


def test_verify_accepts_adjacent_step_only():
    code = totp(RFC_SECRET, 59)
    assert verify_totp(RFC_SECRET, code, 59)
    assert verify_totp(RFC_SECRET, code, 59 + 30)
    assert not verify_totp(RFC_SECRET, code, 59 + 90)


def test_verify_rejects_malformed_codes():
    assert not verify_totp(RFC_SECRET, "", 59)
    assert not verify_totp(RFC_SECRET, "28708", 59)
    assert not verify_totp(RFC_SECRET, "abcdef", 59)
    assert not verify_totp("", "287082", 59)


def test_generated_secret_is_base32():
    secret = generate_secret()
    padded = secret + "=" * (-len(secret) % 8)
    assert len(base64.b32decode(padded)) == 20


def test_backup_codes_are_eight_digits():
    codes = generate_backup_codes()
    assert len(codes) == 8
    assert all(len(c) == 8 and c.isdigit() for c in codes)
