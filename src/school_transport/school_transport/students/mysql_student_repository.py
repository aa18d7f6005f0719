from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

from ..common.value_objects import Address, FullName
from ..core.enums import Role, StudentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, page_sql, soft_delete_row, where_sql
from ..users.mysql_user_repository import insert_user
from .model import SchoolStatistics, Student, StudentSearch
from .repository import StudentRepository

_COLUMNS = """
    student_id, tenant_id, student_number, first_name, middle_name, last_name, date_of_birth, grade, school,
    street, city, state, zip_code, country, phone, email, parent_name, parent_phone, parent_email, parent_user_id,
    emergency_contact, emergency_phone, status, enrollment_date, special_needs, medical_conditions, allergies, notes,
    route_id, route_stop_id, rfid_tag
"""

_SORT_COLUMNS = {
    "name": ("last_name", "first_name"),
    "studentnumber": ("student_number",),
    "grade": ("grade",),
    "school": ("school",),
    "status": ("status",),
    "enrollmentdate": ("enrollment_date",),
}


def _row_to_student(r: dict) -> Student:
    return Student(
        student_id=int(r["student_id"]),
        tenant_id=int(r["tenant_id"]),
        student_number=r["student_number"],
        name=FullName(first_name=r["first_name"], last_name=r["last_name"], middle_name=r.get("middle_name")),
        date_of_birth=r["date_of_birth"],
        grade=r["grade"],
        school=r["school"],
        address=Address(
            street=r["street"], city=r["city"], state=r["state"], zip_code=r["zip_code"], country=r.get("country") or "USA"
        ),
        enrollment_date=r["enrollment_date"],
        status=StudentStatus(r["status"]),
        phone=r.get("phone"),
        email=r.get("email"),
        parent_name=r.get("parent_name"),
        parent_phone=r.get("parent_phone"),
        parent_email=r.get("parent_email"),
        parent_user_id=r.get("parent_user_id"),
        emergency_contact=r.get("emergency_contact"),
        emergency_phone=r.get("emergency_phone"),
        special_needs=r.get("special_needs"),
        medical_conditions=r.get("medical_conditions"),
        allergies=r.get("allergies"),
        notes=r.get("notes"),
        route_id=r.get("route_id"),
        route_stop_id=r.get("route_stop_id"),
        rfid_tag=r.get("rfid_tag"),
    )


def _student_params(s: Student) -> tuple:
    return (
        s.student_number, s.name.first_name, s.name.middle_name, s.name.last_name, s.date_of_birth, s.grade, s.school,
        s.address.street, s.address.city, s.address.state, s.address.zip_code, s.address.country,
        s.phone, s.email, s.parent_name, s.parent_phone, s.parent_email, s.parent_user_id,
        s.emergency_contact, s.emergency_phone, s.status.value, s.enrollment_date,
        s.special_needs, s.medical_conditions, s.allergies, s.notes, s.route_id, s.route_stop_id, s.rfid_tag,
    )


def _insert_student(cur, s: Student) -> int:
    cur.execute(
        """
        INSERT INTO students(
            tenant_id, student_number, first_name, middle_name, last_name, date_of_birth, grade, school,
            street, city, state, zip_code, country, phone, email, parent_name, parent_phone, parent_email, parent_user_id,
            emergency_contact, emergency_phone, status, enrollment_date, special_needs, medical_conditions, allergies,
            notes, route_id, route_stop_id, rfid_tag, created_at
        )
        VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
        """,
        (int(s.tenant_id),) + _student_params(s) + (datetime.now(),),
    )
    return int(cur.lastrowid)


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select(self, where: str, params: tuple, suffix: str = "") -> list[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students WHERE {where} AND is_deleted=0 {suffix}", params)
            return [_row_to_student(r) for r in fetchall(cur)]

    def get_by_id(self, tenant_id: int, student_id: int) -> Optional[Student]:
        rows = self._select("tenant_id=%s AND student_id=%s", (int(tenant_id), int(student_id)))
        return rows[0] if rows else None

    def get_by_number(self, tenant_id: int, student_number: str) -> Optional[Student]:
        rows = self._select("tenant_id=%s AND student_number=%s", (int(tenant_id), student_number))
        return rows[0] if rows else None

    def search(self, *, tenant_id: int, criteria: StudentSearch, page: int, page_size: int) -> tuple[list[Student], int]:
        clauses = ["tenant_id=%s", "is_deleted=0"]
        params: list[object] = [int(tenant_id)]

        if criteria.search_term:
            like = f"%{criteria.search_term}%"
            clauses.append("(first_name LIKE %s OR last_name LIKE %s OR student_number LIKE %s OR school LIKE %s)")
            params.extend([like, like, like, like])
        if criteria.grade:
            clauses.append("grade=%s")
            params.append(criteria.grade)
        if criteria.school:
            clauses.append("school=%s")
            params.append(criteria.school)
        if criteria.status is not None:
            clauses.append("status=%s")
            params.append(criteria.status.value)
        if criteria.route_id is not None:
            clauses.append("route_id=%s")
            params.append(int(criteria.route_id))

        direction = "DESC" if criteria.sort_descending else "ASC"
        sort_cols = _SORT_COLUMNS.get((criteria.sort_by or "").lower(), ("last_name", "first_name"))
        order = ", ".join(f"{c} {direction}" for c in sort_cols)

        where = where_sql(clauses)
        limit, limit_params = page_sql(page, page_size)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM students WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("n", 0))
            cur.execute(
                f"SELECT {_COLUMNS} FROM students WHERE {where} ORDER BY {order} {limit}",
                tuple(params) + limit_params,
            )
            return [_row_to_student(r) for r in fetchall(cur)], total

    def list_by_route(self, tenant_id: int, route_id: int) -> Sequence[Student]:
        return self._select("tenant_id=%s AND route_id=%s", (int(tenant_id), int(route_id)), "ORDER BY last_name, first_name")

    def list_by_stops(self, tenant_id: int, stop_ids: Sequence[int]) -> Sequence[Student]:
        if not stop_ids:
            return []
        marks = ", ".join(["%s"] * len(stop_ids))
        return self._select(
            f"tenant_id=%s AND route_stop_id IN ({marks}) AND status=%s",
            (int(tenant_id), *[int(s) for s in stop_ids], StudentStatus.ACTIVE.value),
        )

    def create(self, student: Student) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            return _insert_student(cur, student)

    def create_with_parent(
        self,
        student: Student,
        *,
        username: str,
        email: str,
        password_hash: str,
        role: Role,
        first_name: Optional[str],
        last_name: Optional[str],
        phone: Optional[str],
    ) -> tuple[int, int]:
        # one cursor, one transaction: both rows or neither
        with db_cursor(self._conn_factory) as (_, cur):
            user_id = insert_user(
                cur,
                tenant_id=student.tenant_id,
                username=username,
                email=email,
                password_hash=password_hash,
                role=role,
                first_name=first_name,
                last_name=last_name,
                phone=phone,
            )
            student_id = _insert_student(cur, replace(student, parent_user_id=user_id))
            return student_id, user_id

    def update(self, student: Student) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE students SET
                    student_number=%s, first_name=%s, middle_name=%s, last_name=%s, date_of_birth=%s, grade=%s, school=%s,
                    street=%s, city=%s, state=%s, zip_code=%s, country=%s, phone=%s, email=%s, parent_name=%s,
                    parent_phone=%s, parent_email=%s, parent_user_id=%s, emergency_contact=%s, emergency_phone=%s,
                    status=%s, enrollment_date=%s, special_needs=%s, medical_conditions=%s, allergies=%s, notes=%s,
                    route_id=%s, route_stop_id=%s, rfid_tag=%s, updated_at=%s
                WHERE tenant_id=%s AND student_id=%s AND is_deleted=0
                """,
                _student_params(student) + (datetime.now(), int(student.tenant_id), int(student.student_id)),
            )
            return cur.rowcount > 0

    def set_route(self, *, tenant_id: int, student_id: int, route_id: Optional[int], route_stop_id: Optional[int]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE students SET route_id=%s, route_stop_id=%s, updated_at=%s
                WHERE tenant_id=%s AND student_id=%s AND is_deleted=0
                """,
                (route_id, route_stop_id, datetime.now(), int(tenant_id), int(student_id)),
            )
            return cur.rowcount > 0

    def update_status_bulk(self, *, tenant_id: int, student_ids: Sequence[int], status: StudentStatus) -> int:
        if not student_ids:
            return 0
        marks = ", ".join(["%s"] * len(student_ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE students SET status=%s, updated_at=%s
                WHERE tenant_id=%s AND is_deleted=0 AND student_id IN ({marks})
                """,
                (status.value, datetime.now(), int(tenant_id), *[int(s) for s in student_ids]),
            )
            return int(cur.rowcount)

    def soft_delete(self, *, tenant_id: int, student_id: int, deleted_by: Optional[int]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            return soft_delete_row(cur, table="students", id_column="student_id", row_id=student_id, tenant_id=tenant_id, deleted_by=deleted_by)

    def school_statistics(self, tenant_id: int) -> Sequence[SchoolStatistics]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT school,
                       COUNT(*) AS total,
                       SUM(status='ACTIVE') AS active,
                       SUM(status='INACTIVE') AS inactive,
                       SUM(route_id IS NOT NULL) AS with_routes
                FROM students
                WHERE tenant_id=%s AND is_deleted=0
                GROUP BY school
                ORDER BY school
                """,
                (int(tenant_id),),
            )
            return [
                SchoolStatistics(
                    school_name=r["school"],
                    total_students=int(r["total"]),
                    active_students=int(r["active"] or 0),
                    inactive_students=int(r["inactive"] or 0),
                    students_with_routes=int(r["with_routes"] or 0),
                    students_without_routes=int(r["total"]) - int(r["with_routes"] or 0),
                )
                for r in fetchall(cur)
            ]
