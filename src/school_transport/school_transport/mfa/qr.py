from __future__ import annotations

import io
from urllib.parse import quote

import qrcode

from ..core.constants import MFA_ISSUER


def otpauth_url(account_name: str, secret: str, *, issuer: str = MFA_ISSUER) -> str:
    label = f"{quote(issuer)}:{quote(account_name)}"
    return f"otpauth://totp/{label}?secret={secret}&issuer={quote(issuer)}"


def render_png(data: str) -> bytes:
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=2,
    )
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
