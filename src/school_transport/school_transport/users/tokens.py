from __future__ import annotations

import logging
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..common.http import Identity
from ..core.enums import Role
from .model import User

logger = logging.getLogger(__name__)


class TokenService:
    """Signed, expiring bearer tokens carrying the caller's tenant and role."""

    def __init__(self, secret_key: str, *, max_age_seconds: int, salt: str = "school-transport-auth"):
        self._serializer = URLSafeTimedSerializer(secret_key, salt=salt)
        self._max_age = int(max_age_seconds)

    @property
    def max_age_seconds(self) -> int:
        return self._max_age

    def issue(self, user: User) -> str:
        return self._serializer.dumps(
            {"user_id": user.user_id, "tenant_id": user.tenant_id, "role": user.role.value, "username": user.username}
        )

    def load(self, token: str) -> Optional[Identity]:
        try:
            data = self._serializer.loads(token, max_age=self._max_age)
        except SignatureExpired:
            return None
        except BadSignature:
            logger.warning("Rejected bearer token with bad signature")
            return None
        return Identity(
            user_id=int(data["user_id"]),
            tenant_id=int(data["tenant_id"]),
            role=Role(data["role"]),
            username=str(data["username"]),
        )
