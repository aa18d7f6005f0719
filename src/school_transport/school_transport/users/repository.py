from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import User


class UserRepository(Protocol):
    """Repository interface for User.

    Note (DIP): services depend on this interface, not on a concrete database.
    """

    def get_by_id(self, tenant_id: int, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_username(self, tenant_id: int, username: str) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, tenant_id: int, email: str) -> Optional[User]:
        raise NotImplementedError

    def create_user(
        self,
        *,
        tenant_id: int,
        username: str,
        email: str,
        password_hash: str,
        role: Role,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def list_users(self, *, tenant_id: int, role: Optional[Role], page: int, page_size: int) -> tuple[list[User], int]:
        raise NotImplementedError

    def record_login(
        self,
        *,
        tenant_id: int,
        user_id: int,
        failed_login_attempts: int,
        locked_until: Optional[datetime],
        last_login_at: Optional[datetime] = None,
    ) -> bool:
        raise NotImplementedError

    def update_password(self, *, tenant_id: int, user_id: int, password_hash: str) -> bool:
        raise NotImplementedError

    def update_role(self, *, tenant_id: int, user_id: int, role: Role) -> bool:
        raise NotImplementedError

    def update_mfa(
        self,
        *,
        tenant_id: int,
        user_id: int,
        secret: Optional[str],
        enabled: bool,
        backup_codes: Sequence[str],
    ) -> bool:
        raise NotImplementedError

    def soft_delete(self, *, tenant_id: int, user_id: int, deleted_by: Optional[int]) -> bool:
        raise NotImplementedError
