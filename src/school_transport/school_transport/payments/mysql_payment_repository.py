from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from ..core.enums import PaymentMethod, PaymentStatus, PaymentType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, page_sql, soft_delete_row, where_sql
from .model import Payment, PaymentSearch
from .repository import PaymentRepository

_COLUMNS = """
    payment_id, tenant_id, student_id, payment_number, amount, currency, payment_type, status, due_date, paid_date,
    payment_method, transaction_id, description, notes
"""


def _row_to_payment(r: dict) -> Payment:
    method = r.get("payment_method")
    return Payment(
        payment_id=int(r["payment_id"]),
        tenant_id=int(r["tenant_id"]),
        student_id=int(r["student_id"]),
        payment_number=r["payment_number"],
        amount=float(r["amount"]),
        currency=r.get("currency") or "USD",
        payment_type=PaymentType(r["payment_type"]),
        status=PaymentStatus(r["status"]),
        due_date=r["due_date"],
        paid_date=r.get("paid_date"),
        payment_method=PaymentMethod(method) if method else None,
        transaction_id=r.get("transaction_id"),
        description=r.get("description"),
        notes=r.get("notes"),
    )


def _payment_params(p: Payment) -> tuple:
    return (
        int(p.student_id), p.payment_number, p.amount, p.currency, p.payment_type.value, p.status.value, p.due_date,
        p.paid_date, p.payment_method.value if p.payment_method else None, p.transaction_id, p.description, p.notes,
    )


class MySQLPaymentRepository(PaymentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select(self, where: str, params: tuple, suffix: str = "") -> list[Payment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM payments WHERE {where} AND is_deleted=0 {suffix}", params)
            return [_row_to_payment(r) for r in fetchall(cur)]

    def get_by_id(self, tenant_id: int, payment_id: int) -> Optional[Payment]:
        rows = self._select("tenant_id=%s AND payment_id=%s", (int(tenant_id), int(payment_id)))
        return rows[0] if rows else None

    def search(self, *, tenant_id: int, criteria: PaymentSearch, page: int, page_size: int) -> tuple[list[Payment], int]:
        clauses = ["tenant_id=%s", "is_deleted=0"]
        params: list[object] = [int(tenant_id)]
        if criteria.student_id is not None:
            clauses.append("student_id=%s")
            params.append(int(criteria.student_id))
        if criteria.payment_number:
            clauses.append("payment_number LIKE %s")
            params.append(f"%{criteria.payment_number}%")
        if criteria.payment_type is not None:
            clauses.append("payment_type=%s")
            params.append(criteria.payment_type.value)
        if criteria.payment_method is not None:
            clauses.append("payment_method=%s")
            params.append(criteria.payment_method.value)
        if criteria.status is not None:
            clauses.append("status=%s")
            params.append(criteria.status.value)
        if criteria.amount_from is not None:
            clauses.append("amount >= %s")
            params.append(criteria.amount_from)
        if criteria.amount_to is not None:
            clauses.append("amount <= %s")
            params.append(criteria.amount_to)
        if criteria.due_from is not None:
            clauses.append("due_date >= %s")
            params.append(criteria.due_from)
        if criteria.due_to is not None:
            clauses.append("due_date <= %s")
            params.append(criteria.due_to)
        if criteria.overdue_as_of is not None:
            clauses.append("due_date < %s AND status <> %s")
            params.extend([criteria.overdue_as_of, PaymentStatus.COMPLETED.value])

        where = where_sql(clauses)
        limit, limit_params = page_sql(page, page_size)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM payments WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("n", 0))
            cur.execute(
                f"SELECT {_COLUMNS} FROM payments WHERE {where} ORDER BY created_at DESC {limit}",
                tuple(params) + limit_params,
            )
            return [_row_to_payment(r) for r in fetchall(cur)], total

    def list_by_student(self, tenant_id: int, student_id: int, start: date, end: date) -> Sequence[Payment]:
        return self._select(
            "tenant_id=%s AND student_id=%s AND created_at >= %s AND created_at < %s",
            (int(tenant_id), int(student_id), start, end + timedelta(days=1)),
            "ORDER BY created_at DESC",
        )

    def list_overdue(self, tenant_id: int, today: date) -> Sequence[Payment]:
        return self._select(
            "tenant_id=%s AND due_date < %s AND status <> %s",
            (int(tenant_id), today, PaymentStatus.COMPLETED.value),
            "ORDER BY due_date",
        )

    def count_all(self, tenant_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM payments WHERE tenant_id=%s", (int(tenant_id),))
            return int((fetchone(cur) or {}).get("n", 0))

    def create(self, payment: Payment) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO payments(
                    tenant_id, student_id, payment_number, amount, currency, payment_type, status, due_date, paid_date,
                    payment_method, transaction_id, description, notes, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (int(payment.tenant_id),) + _payment_params(payment) + (datetime.now(),),
            )
            return int(cur.lastrowid)

    def update(self, payment: Payment) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE payments
                SET student_id=%s, payment_number=%s, amount=%s, currency=%s, payment_type=%s, status=%s, due_date=%s,
                    paid_date=%s, payment_method=%s, transaction_id=%s, description=%s, notes=%s, updated_at=%s
                WHERE tenant_id=%s AND payment_id=%s AND is_deleted=0
                """,
                _payment_params(payment) + (datetime.now(), int(payment.tenant_id), int(payment.payment_id)),
            )
            return cur.rowcount > 0

    def mark_completed(
        self, *, tenant_id: int, payment_id: int, method: PaymentMethod, transaction_id: str, paid_at: datetime
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            # a completed payment is never completed twice
            cur.execute(
                """
                UPDATE payments
                SET status=%s, payment_method=%s, transaction_id=%s, paid_date=%s, updated_at=%s
                WHERE tenant_id=%s AND payment_id=%s AND is_deleted=0 AND status <> %s
                """,
                (
                    PaymentStatus.COMPLETED.value,
                    method.value,
                    transaction_id,
                    paid_at,
                    datetime.now(),
                    int(tenant_id),
                    int(payment_id),
                    PaymentStatus.COMPLETED.value,
                ),
            )
            return cur.rowcount > 0

    def soft_delete(self, *, tenant_id: int, payment_id: int, deleted_by: Optional[int]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            return soft_delete_row(cur, table="payments", id_column="payment_id", row_id=payment_id, tenant_id=tenant_id, deleted_by=deleted_by)
