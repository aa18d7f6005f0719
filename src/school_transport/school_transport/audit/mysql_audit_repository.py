from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, page_sql, where_sql
from .model import AuditLog
from .repository import AuditLogRepository


def _row_to_log(r: dict) -> AuditLog:
    return AuditLog(
        audit_id=int(r["audit_id"]),
        tenant_id=int(r["tenant_id"]),
        user_id=r.get("user_id"),
        email=r.get("email"),
        action=r["action"],
        ip_address=r.get("ip_address"),
        user_agent=r.get("user_agent"),
        success=bool(r["success"]),
        details=r.get("details"),
        created_at=r["created_at"],
    )


class MySQLAuditLogRepository(AuditLogRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def add(
        self,
        *,
        tenant_id: int,
        user_id: Optional[int],
        email: Optional[str],
        action: str,
        ip_address: Optional[str],
        user_agent: Optional[str],
        success: bool,
        details: Optional[str],
        created_at: datetime,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO audit_logs(tenant_id, user_id, email, action, ip_address, user_agent, success, details, created_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (tenant_id, user_id, email, action, ip_address, (user_agent or "")[:500], int(success), details, created_at),
            )
            return int(cur.lastrowid)

    def search(
        self,
        *,
        tenant_id: int,
        user_id: Optional[int] = None,
        actions: Optional[Sequence[str]] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[AuditLog], int]:
        clauses = ["tenant_id=%s"]
        params: list[object] = [int(tenant_id)]

        if user_id is not None:
            clauses.append("user_id=%s")
            params.append(int(user_id))
        if actions:
            clauses.append(f"action IN ({', '.join(['%s'] * len(actions))})")
            params.extend(actions)
        if start is not None:
            clauses.append("created_at >= %s")
            params.append(start)
        if end is not None:
            clauses.append("created_at <= %s")
            params.append(end)

        where = where_sql(clauses)
        limit, limit_params = page_sql(page, page_size)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM audit_logs WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("n", 0))
            cur.execute(
                f"""
                SELECT audit_id, tenant_id, user_id, email, action, ip_address, user_agent, success, details, created_at
                FROM audit_logs
                WHERE {where}
                ORDER BY created_at DESC
                {limit}
                """,
                tuple(params) + limit_params,
            )
            return [_row_to_log(r) for r in fetchall(cur)], total
