from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import VehicleStatus, VehicleType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, fetchone, page_sql, soft_delete_row, where_sql
from .model import Vehicle, VehicleSearch
from .repository import VehicleRepository

_COLUMNS = """
    vehicle_id, tenant_id, vehicle_number, license_plate, vehicle_type, make, model, year, color, capacity, vin, mileage,
    fuel_type, status, registration_expiry, inspection_expiry, insurance_expiry, driver_id, current_latitude,
    current_longitude, last_location_update, notes
"""


def _row_to_vehicle(r: dict) -> Vehicle:
    return Vehicle(
        vehicle_id=int(r["vehicle_id"]),
        tenant_id=int(r["tenant_id"]),
        vehicle_number=r["vehicle_number"],
        license_plate=r["license_plate"],
        vehicle_type=VehicleType(r["vehicle_type"]),
        make=r["make"],
        model=r["model"],
        year=int(r["year"]),
        capacity=int(r["capacity"]),
        status=VehicleStatus(r["status"]),
        color=r.get("color"),
        vin=r.get("vin"),
        mileage=float(r.get("mileage") or 0),
        fuel_type=r.get("fuel_type"),
        registration_expiry=r.get("registration_expiry"),
        inspection_expiry=r.get("inspection_expiry"),
        insurance_expiry=r.get("insurance_expiry"),
        driver_id=r.get("driver_id"),
        current_latitude=as_float(r.get("current_latitude")),
        current_longitude=as_float(r.get("current_longitude")),
        last_location_update=r.get("last_location_update"),
        notes=r.get("notes"),
    )


def _vehicle_params(v: Vehicle) -> tuple:
    return (
        v.vehicle_number, v.license_plate, v.vehicle_type.value, v.make, v.model, int(v.year), v.color, int(v.capacity),
        v.vin, v.mileage, v.fuel_type, v.status.value, v.registration_expiry, v.inspection_expiry, v.insurance_expiry,
        v.driver_id, v.notes,
    )


class MySQLVehicleRepository(VehicleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select(self, where: str, params: tuple, suffix: str = "") -> list[Vehicle]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM vehicles WHERE {where} AND is_deleted=0 {suffix}", params)
            return [_row_to_vehicle(r) for r in fetchall(cur)]

    def _update(self, sql_set: str, params: tuple, tenant_id: int, vehicle_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE vehicles SET {sql_set}, updated_at=%s WHERE tenant_id=%s AND vehicle_id=%s AND is_deleted=0",
                params + (datetime.now(), int(tenant_id), int(vehicle_id)),
            )
            return cur.rowcount > 0

    def get_by_id(self, tenant_id: int, vehicle_id: int) -> Optional[Vehicle]:
        rows = self._select("tenant_id=%s AND vehicle_id=%s", (int(tenant_id), int(vehicle_id)))
        return rows[0] if rows else None

    def get_by_number(self, tenant_id: int, vehicle_number: str) -> Optional[Vehicle]:
        rows = self._select("tenant_id=%s AND vehicle_number=%s", (int(tenant_id), vehicle_number))
        return rows[0] if rows else None

    def get_by_plate(self, tenant_id: int, license_plate: str) -> Optional[Vehicle]:
        rows = self._select("tenant_id=%s AND license_plate=%s", (int(tenant_id), license_plate))
        return rows[0] if rows else None

    def search(self, *, tenant_id: int, criteria: VehicleSearch, page: int, page_size: int) -> tuple[list[Vehicle], int]:
        clauses = ["tenant_id=%s", "is_deleted=0"]
        params: list[object] = [int(tenant_id)]
        if criteria.search_term:
            like = f"%{criteria.search_term}%"
            clauses.append("(vehicle_number LIKE %s OR license_plate LIKE %s OR make LIKE %s OR model LIKE %s)")
            params.extend([like, like, like, like])
        if criteria.status is not None:
            clauses.append("status=%s")
            params.append(criteria.status.value)
        if criteria.vehicle_type is not None:
            clauses.append("vehicle_type=%s")
            params.append(criteria.vehicle_type.value)

        where = where_sql(clauses)
        limit, limit_params = page_sql(page, page_size)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM vehicles WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("n", 0))
            cur.execute(
                f"SELECT {_COLUMNS} FROM vehicles WHERE {where} ORDER BY vehicle_number {limit}",
                tuple(params) + limit_params,
            )
            return [_row_to_vehicle(r) for r in fetchall(cur)], total

    def list_available(self, tenant_id: int, on_date: date) -> Sequence[Vehicle]:
        return self._select(
            "tenant_id=%s AND status=%s AND insurance_expiry > %s AND registration_expiry > %s",
            (int(tenant_id), VehicleStatus.ACTIVE.value, on_date, on_date),
            "ORDER BY vehicle_number",
        )

    def create(self, vehicle: Vehicle) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO vehicles(
                    tenant_id, vehicle_number, license_plate, vehicle_type, make, model, year, color, capacity, vin,
                    mileage, fuel_type, status, registration_expiry, inspection_expiry, insurance_expiry, driver_id,
                    notes, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (int(vehicle.tenant_id),) + _vehicle_params(vehicle) + (datetime.now(),),
            )
            return int(cur.lastrowid)

    def update(self, vehicle: Vehicle) -> bool:
        return self._update(
            """
            vehicle_number=%s, license_plate=%s, vehicle_type=%s, make=%s, model=%s, year=%s, color=%s, capacity=%s,
            vin=%s, mileage=%s, fuel_type=%s, status=%s, registration_expiry=%s, inspection_expiry=%s,
            insurance_expiry=%s, driver_id=%s, notes=%s
            """,
            _vehicle_params(vehicle),
            vehicle.tenant_id,
            vehicle.vehicle_id,
        )

    def set_driver(self, *, tenant_id: int, vehicle_id: int, driver_id: Optional[int]) -> bool:
        return self._update("driver_id=%s", (driver_id,), tenant_id, vehicle_id)

    def set_status(self, *, tenant_id: int, vehicle_id: int, status: VehicleStatus) -> bool:
        return self._update("status=%s", (status.value,), tenant_id, vehicle_id)

    def update_location(self, *, tenant_id: int, vehicle_id: int, latitude: float, longitude: float, at: datetime) -> bool:
        return self._update(
            "current_latitude=%s, current_longitude=%s, last_location_update=%s", (latitude, longitude, at), tenant_id, vehicle_id
        )

    def update_mileage(self, *, tenant_id: int, vehicle_id: int, mileage: float) -> bool:
        return self._update("mileage=%s", (mileage,), tenant_id, vehicle_id)

    def soft_delete(self, *, tenant_id: int, vehicle_id: int, deleted_by: Optional[int]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            return soft_delete_row(cur, table="vehicles", id_column="vehicle_id", row_id=vehicle_id, tenant_id=tenant_id, deleted_by=deleted_by)
