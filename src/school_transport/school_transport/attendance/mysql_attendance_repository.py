from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, page_sql, soft_delete_row, where_sql
from .model import Attendance, AttendanceSearch
from .repository import AttendanceRepository

_COLUMNS = """
    a.attendance_id, a.tenant_id, a.student_id, a.trip_id, a.attendance_date, a.status, a.boarding_time,
    a.alighting_time, a.boarding_location, a.alighting_location, a.notes, a.recorded_by
"""


def _row_to_attendance(r: dict) -> Attendance:
    return Attendance(
        attendance_id=int(r["attendance_id"]),
        tenant_id=int(r["tenant_id"]),
        student_id=int(r["student_id"]),
        trip_id=int(r["trip_id"]),
        attendance_date=r["attendance_date"],
        status=AttendanceStatus(r["status"]),
        boarding_time=r.get("boarding_time"),
        alighting_time=r.get("alighting_time"),
        boarding_location=r.get("boarding_location"),
        alighting_location=r.get("alighting_location"),
        notes=r.get("notes"),
        recorded_by=r.get("recorded_by"),
    )


def _attendance_params(a: Attendance) -> tuple:
    return (
        int(a.student_id), int(a.trip_id), a.attendance_date, a.status.value, a.boarding_time, a.alighting_time,
        a.boarding_location, a.alighting_location, a.notes, a.recorded_by,
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select(self, where: str, params: tuple, suffix: str = "") -> list[Attendance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance a WHERE {where} AND a.is_deleted=0 {suffix}", params)
            return [_row_to_attendance(r) for r in fetchall(cur)]

    def get_by_id(self, tenant_id: int, attendance_id: int) -> Optional[Attendance]:
        rows = self._select("a.tenant_id=%s AND a.attendance_id=%s", (int(tenant_id), int(attendance_id)))
        return rows[0] if rows else None

    def get_by_student_and_trip(self, tenant_id: int, student_id: int, trip_id: int) -> Optional[Attendance]:
        rows = self._select(
            "a.tenant_id=%s AND a.student_id=%s AND a.trip_id=%s", (int(tenant_id), int(student_id), int(trip_id))
        )
        return rows[0] if rows else None

    def search(
        self, *, tenant_id: int, criteria: AttendanceSearch, page: int, page_size: int
    ) -> tuple[list[Attendance], int]:
        joins = ""
        clauses = ["a.tenant_id=%s", "a.is_deleted=0"]
        params: list[object] = [int(tenant_id)]
        if criteria.student_id is not None:
            clauses.append("a.student_id=%s")
            params.append(int(criteria.student_id))
        if criteria.trip_id is not None:
            clauses.append("a.trip_id=%s")
            params.append(int(criteria.trip_id))
        if criteria.route_id is not None:
            joins = "JOIN trips t ON t.trip_id = a.trip_id AND t.tenant_id = a.tenant_id"
            clauses.append("t.route_id=%s")
            params.append(int(criteria.route_id))
        if criteria.status is not None:
            clauses.append("a.status=%s")
            params.append(criteria.status.value)
        if criteria.date_from is not None:
            clauses.append("a.attendance_date >= %s")
            params.append(criteria.date_from)
        if criteria.date_to is not None:
            clauses.append("a.attendance_date <= %s")
            params.append(criteria.date_to)

        where = where_sql(clauses)
        limit, limit_params = page_sql(page, page_size)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM attendance a {joins} WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("n", 0))
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance a {joins}
                WHERE {where}
                ORDER BY a.attendance_date DESC, a.attendance_id DESC {limit}
                """,
                tuple(params) + limit_params,
            )
            return [_row_to_attendance(r) for r in fetchall(cur)], total

    def list_by_student(self, tenant_id: int, student_id: int, start: date, end: date) -> Sequence[Attendance]:
        return self._select(
            "a.tenant_id=%s AND a.student_id=%s AND a.attendance_date BETWEEN %s AND %s",
            (int(tenant_id), int(student_id), start, end),
            "ORDER BY a.attendance_date DESC",
        )

    def list_by_trip(self, tenant_id: int, trip_id: int) -> Sequence[Attendance]:
        return self._select("a.tenant_id=%s AND a.trip_id=%s", (int(tenant_id), int(trip_id)), "ORDER BY a.boarding_time")

    def present_student_ids(self, tenant_id: int, student_ids: Sequence[int], on_date: date) -> set[int]:
        if not student_ids:
            return set()
        placeholders = ",".join(["%s"] * len(student_ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT DISTINCT student_id FROM attendance
                WHERE tenant_id=%s AND attendance_date=%s AND status=%s AND is_deleted=0
                  AND student_id IN ({placeholders})
                """,
                (int(tenant_id), on_date, AttendanceStatus.PRESENT.value) + tuple(int(i) for i in student_ids),
            )
            return {int(r["student_id"]) for r in fetchall(cur)}

    def create(self, attendance: Attendance) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance(
                    tenant_id, student_id, trip_id, attendance_date, status, boarding_time, alighting_time,
                    boarding_location, alighting_location, notes, recorded_by, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (int(attendance.tenant_id),) + _attendance_params(attendance) + (datetime.now(),),
            )
            return int(cur.lastrowid)

    def update(self, attendance: Attendance) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance
                SET student_id=%s, trip_id=%s, attendance_date=%s, status=%s, boarding_time=%s, alighting_time=%s,
                    boarding_location=%s, alighting_location=%s, notes=%s, recorded_by=%s, updated_at=%s
                WHERE tenant_id=%s AND attendance_id=%s AND is_deleted=0
                """,
                _attendance_params(attendance) + (datetime.now(), int(attendance.tenant_id), int(attendance.attendance_id)),
            )
            return cur.rowcount > 0

    def soft_delete(self, *, tenant_id: int, attendance_id: int, deleted_by: Optional[int]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            return soft_delete_row(
                cur, table="attendance", id_column="attendance_id", row_id=attendance_id, tenant_id=tenant_id, deleted_by=deleted_by
            )
