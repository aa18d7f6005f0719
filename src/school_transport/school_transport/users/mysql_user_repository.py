from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, page_sql, soft_delete_row
from .model import User
from .repository import UserRepository

_COLUMNS = """
    user_id, tenant_id, username, email, password_hash, role, first_name, last_name, phone, is_active,
    mfa_secret, mfa_enabled, backup_codes, failed_login_attempts, locked_until, last_login_at
"""


def _row_to_user(r: dict) -> User:
    codes = r.get("backup_codes") or ""
    return User(
        user_id=int(r["user_id"]),
        tenant_id=int(r["tenant_id"]),
        username=r["username"],
        email=r["email"],
        password_hash=r["password_hash"],
        role=Role(r["role"]),
        first_name=r.get("first_name"),
        last_name=r.get("last_name"),
        phone=r.get("phone"),
        is_active=bool(r.get("is_active", True)),
        mfa_secret=r.get("mfa_secret"),
        mfa_enabled=bool(r.get("mfa_enabled", False)),
        backup_codes=tuple(c for c in codes.split(",") if c),
        failed_login_attempts=int(r.get("failed_login_attempts") or 0),
        locked_until=r.get("locked_until"),
        last_login_at=r.get("last_login_at"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _get_one(self, where: str, params: tuple) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE {where} AND is_deleted=0", params)
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def get_by_id(self, tenant_id: int, user_id: int) -> Optional[User]:
        return self._get_one("tenant_id=%s AND user_id=%s", (int(tenant_id), int(user_id)))

    def get_by_username(self, tenant_id: int, username: str) -> Optional[User]:
        return self._get_one("tenant_id=%s AND username=%s", (int(tenant_id), username))

    def get_by_email(self, tenant_id: int, email: str) -> Optional[User]:
        return self._get_one("tenant_id=%s AND email=%s", (int(tenant_id), email))

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
        with db_cursor(self._conn_factory) as (_, cur):
            return insert_user(
                cur,
                tenant_id=tenant_id,
                username=username,
                email=email,
                password_hash=password_hash,
                role=role,
                first_name=first_name,
                last_name=last_name,
                phone=phone,
            )

    def list_users(self, *, tenant_id: int, role: Optional[Role], page: int, page_size: int) -> tuple[list[User], int]:
        clauses = ["tenant_id=%s", "is_deleted=0"]
        params: list[object] = [int(tenant_id)]
        if role is not None:
            clauses.append("role=%s")
            params.append(role.value)
        where = " AND ".join(clauses)
        limit, limit_params = page_sql(page, page_size)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM users WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("n", 0))
            cur.execute(
                f"SELECT {_COLUMNS} FROM users WHERE {where} ORDER BY user_id DESC {limit}",
                tuple(params) + limit_params,
            )
            return [_row_to_user(r) for r in fetchall(cur)], total

    def record_login(
        self,
        *,
        tenant_id: int,
        user_id: int,
        failed_login_attempts: int,
        locked_until: Optional[datetime],
        last_login_at: Optional[datetime] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE users
                SET failed_login_attempts=%s, locked_until=%s, last_login_at=COALESCE(%s, last_login_at), updated_at=NOW()
                WHERE tenant_id=%s AND user_id=%s
                """,
                (int(failed_login_attempts), locked_until, last_login_at, int(tenant_id), int(user_id)),
            )
            return cur.rowcount > 0

    def update_password(self, *, tenant_id: int, user_id: int, password_hash: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET password_hash=%s, updated_at=NOW() WHERE tenant_id=%s AND user_id=%s AND is_deleted=0",
                (password_hash, int(tenant_id), int(user_id)),
            )
            return cur.rowcount > 0

    def update_role(self, *, tenant_id: int, user_id: int, role: Role) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET role=%s, updated_at=NOW() WHERE tenant_id=%s AND user_id=%s AND is_deleted=0",
                (role.value, int(tenant_id), int(user_id)),
            )
            return cur.rowcount > 0

    def update_mfa(
        self,
        *,
        tenant_id: int,
        user_id: int,
        secret: Optional[str],
        enabled: bool,
        backup_codes: Sequence[str],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE users
                SET mfa_secret=%s, mfa_enabled=%s, backup_codes=%s, updated_at=NOW()
                WHERE tenant_id=%s AND user_id=%s AND is_deleted=0
                """,
                (secret, int(enabled), ",".join(backup_codes) or None, int(tenant_id), int(user_id)),
            )
            return cur.rowcount > 0

    def soft_delete(self, *, tenant_id: int, user_id: int, deleted_by: Optional[int]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            return soft_delete_row(cur, table="users", id_column="user_id", row_id=user_id, tenant_id=tenant_id, deleted_by=deleted_by)


def insert_user(
    cur,
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
    """INSERT on an already-open cursor so callers can share one transaction."""
    cur.execute(
        """
        INSERT INTO users(tenant_id, username, email, password_hash, role, first_name, last_name, phone, is_active)
        VALUES(%s,%s,%s,%s,%s,%s,%s,%s,1)
        """,
        (int(tenant_id), username, email, password_hash, role.value, first_name, last_name, phone),
    )
    return int(cur.lastrowid)
