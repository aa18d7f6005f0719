from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
import struct

from ..core.constants import MFA_BACKUP_CODE_COUNT, MFA_CODE_DIGITS, MFA_TIME_STEP_SECONDS


def generate_secret() -> str:
    """160-bit random secret, base32 without padding (what authenticator apps expect)."""
    return base64.b32encode(secrets.token_bytes(20)).decode("ascii").rstrip("=")


def generate_backup_codes(count: int = MFA_BACKUP_CODE_COUNT) -> list[str]:
    return [f"{secrets.randbelow(10**8):08d}" for _ in range(count)]


def _secret_bytes(secret: str) -> bytes:
    secret = secret.strip().replace(" ", "").upper()
    return base64.b32decode(secret + "=" * (-len(secret) % 8))


def hotp(secret: str, counter: int, *, digits: int = MFA_CODE_DIGITS) -> str:
    digest = hmac.new(_secret_bytes(secret), struct.pack(">Q", counter), hashlib.sha1).digest()
    offset = digest[-1] & 0x0F
    binary = struct.unpack(">I", digest[offset:offset + 4])[0] & 0x7FFFFFFF
    return str(binary % (10**digits)).zfill(digits)


def totp(secret: str, unix_time: float, *, step: int = MFA_TIME_STEP_SECONDS, digits: int = MFA_CODE_DIGITS) -> str:
    return hotp(secret, int(unix_time) // step, digits=digits)


def verify_totp(secret: str, code: str, unix_time: float, *, window: int = 1, step: int = MFA_TIME_STEP_SECONDS) -> bool:
    """Accept the code for the current step or up to `window` steps either side."""
    if not secret or not code or len(code) != MFA_CODE_DIGITS or not code.isdigit():
        return False
    counter = int(unix_time) // step
    return any(
        hmac.compare_digest(hotp(secret, counter + drift), code)
        for drift in range(-window, window + 1)
    )
