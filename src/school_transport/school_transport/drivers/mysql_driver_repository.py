from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..common.value_objects import Address, FullName
from ..core.enums import DriverStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, page_sql, soft_delete_row, where_sql
from .model import Driver, DriverSearch
from .repository import DriverRepository

_COLUMNS = """
    driver_id, tenant_id, employee_number, first_name, middle_name, last_name, license_number, license_expiry, phone,
    email, street, city, state, zip_code, country, hire_date, date_of_birth, status, emergency_contact, emergency_phone,
    medical_certificate_expiry, background_check_date, last_training_date, user_id, notes
"""


def _row_to_driver(r: dict) -> Driver:
    address = None
    if r.get("street"):
        address = Address(
            street=r["street"], city=r.get("city") or "", state=r.get("state") or "",
            zip_code=r.get("zip_code") or "", country=r.get("country") or "USA",
        )
    return Driver(
        driver_id=int(r["driver_id"]),
        tenant_id=int(r["tenant_id"]),
        employee_number=r["employee_number"],
        name=FullName(first_name=r["first_name"], last_name=r["last_name"], middle_name=r.get("middle_name")),
        license_number=r["license_number"],
        license_expiry=r["license_expiry"],
        phone=r["phone"],
        hire_date=r["hire_date"],
        status=DriverStatus(r["status"]),
        email=r.get("email"),
        address=address,
        date_of_birth=r.get("date_of_birth"),
        emergency_contact=r.get("emergency_contact"),
        emergency_phone=r.get("emergency_phone"),
        medical_certificate_expiry=r.get("medical_certificate_expiry"),
        background_check_date=r.get("background_check_date"),
        last_training_date=r.get("last_training_date"),
        user_id=r.get("user_id"),
        notes=r.get("notes"),
    )


def _driver_params(d: Driver) -> tuple:
    a = d.address
    return (
        d.employee_number, d.name.first_name, d.name.middle_name, d.name.last_name, d.license_number, d.license_expiry,
        d.phone, d.email, a.street if a else None, a.city if a else None, a.state if a else None,
        a.zip_code if a else None, a.country if a else None, d.hire_date, d.date_of_birth, d.status.value,
        d.emergency_contact, d.emergency_phone, d.medical_certificate_expiry, d.background_check_date,
        d.last_training_date, d.user_id, d.notes,
    )


class MySQLDriverRepository(DriverRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select(self, where: str, params: tuple, suffix: str = "") -> list[Driver]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM drivers WHERE {where} AND is_deleted=0 {suffix}", params)
            return [_row_to_driver(r) for r in fetchall(cur)]

    def get_by_id(self, tenant_id: int, driver_id: int) -> Optional[Driver]:
        rows = self._select("tenant_id=%s AND driver_id=%s", (int(tenant_id), int(driver_id)))
        return rows[0] if rows else None

    def get_by_license(self, tenant_id: int, license_number: str) -> Optional[Driver]:
        rows = self._select("tenant_id=%s AND license_number=%s", (int(tenant_id), license_number))
        return rows[0] if rows else None

    def get_by_employee_number(self, tenant_id: int, employee_number: str) -> Optional[Driver]:
        rows = self._select("tenant_id=%s AND employee_number=%s", (int(tenant_id), employee_number))
        return rows[0] if rows else None

    def search(self, *, tenant_id: int, criteria: DriverSearch, page: int, page_size: int) -> tuple[list[Driver], int]:
        clauses = ["tenant_id=%s", "is_deleted=0"]
        params: list[object] = [int(tenant_id)]
        if criteria.search_term:
            like = f"%{criteria.search_term}%"
            clauses.append("(first_name LIKE %s OR last_name LIKE %s OR employee_number LIKE %s OR license_number LIKE %s)")
            params.extend([like, like, like, like])
        if criteria.status is not None:
            clauses.append("status=%s")
            params.append(criteria.status.value)

        where = where_sql(clauses)
        limit, limit_params = page_sql(page, page_size)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM drivers WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("n", 0))
            cur.execute(
                f"SELECT {_COLUMNS} FROM drivers WHERE {where} ORDER BY last_name, first_name {limit}",
                tuple(params) + limit_params,
            )
            return [_row_to_driver(r) for r in fetchall(cur)], total

    def list_available(self, tenant_id: int, on_date: date) -> Sequence[Driver]:
        return self._select(
            "tenant_id=%s AND status=%s AND license_expiry > %s",
            (int(tenant_id), DriverStatus.ACTIVE.value, on_date),
            "ORDER BY last_name, first_name",
        )

    def list_by_status(self, tenant_id: int, status: DriverStatus) -> Sequence[Driver]:
        return self._select("tenant_id=%s AND status=%s", (int(tenant_id), status.value), "ORDER BY last_name, first_name")

    def create(self, driver: Driver) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO drivers(
                    tenant_id, employee_number, first_name, middle_name, last_name, license_number, license_expiry, phone,
                    email, street, city, state, zip_code, country, hire_date, date_of_birth, status, emergency_contact,
                    emergency_phone, medical_certificate_expiry, background_check_date, last_training_date, user_id, notes,
                    created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (int(driver.tenant_id),) + _driver_params(driver) + (datetime.now(),),
            )
            return int(cur.lastrowid)

    def update(self, driver: Driver) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE drivers SET
                    employee_number=%s, first_name=%s, middle_name=%s, last_name=%s, license_number=%s, license_expiry=%s,
                    phone=%s, email=%s, street=%s, city=%s, state=%s, zip_code=%s, country=%s, hire_date=%s,
                    date_of_birth=%s, status=%s, emergency_contact=%s, emergency_phone=%s, medical_certificate_expiry=%s,
                    background_check_date=%s, last_training_date=%s, user_id=%s, notes=%s, updated_at=%s
                WHERE tenant_id=%s AND driver_id=%s AND is_deleted=0
                """,
                _driver_params(driver) + (datetime.now(), int(driver.tenant_id), int(driver.driver_id)),
            )
            return cur.rowcount > 0

    def soft_delete(self, *, tenant_id: int, driver_id: int, deleted_by: Optional[int]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            return soft_delete_row(cur, table="drivers", id_column="driver_id", row_id=driver_id, tenant_id=tenant_id, deleted_by=deleted_by)
