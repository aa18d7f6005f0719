from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from ..core.enums import TripStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, fetchone, page_sql, soft_delete_row, where_sql
from .model import Trip, TripSearch
from .repository import TripRepository

_COLUMNS = """
    trip_id, tenant_id, route_id, vehicle_id, driver_id, scheduled_start, scheduled_end, actual_start, actual_end,
    status, start_mileage, end_mileage, notes
"""


def _row_to_trip(r: dict) -> Trip:
    return Trip(
        trip_id=int(r["trip_id"]),
        tenant_id=int(r["tenant_id"]),
        route_id=int(r["route_id"]),
        vehicle_id=int(r["vehicle_id"]),
        driver_id=int(r["driver_id"]),
        scheduled_start=r["scheduled_start"],
        scheduled_end=r["scheduled_end"],
        status=TripStatus(r["status"]),
        actual_start=r.get("actual_start"),
        actual_end=r.get("actual_end"),
        start_mileage=as_float(r.get("start_mileage")),
        end_mileage=as_float(r.get("end_mileage")),
        notes=r.get("notes"),
    )


def _trip_params(t: Trip) -> tuple:
    return (
        int(t.route_id), int(t.vehicle_id), int(t.driver_id), t.scheduled_start, t.scheduled_end, t.actual_start,
        t.actual_end, t.status.value, t.start_mileage, t.end_mileage, t.notes,
    )


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, datetime.min.time())
    return start, start + timedelta(days=1)


class MySQLTripRepository(TripRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select(self, where: str, params: tuple, suffix: str = "") -> list[Trip]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM trips WHERE {where} AND is_deleted=0 {suffix}", params)
            return [_row_to_trip(r) for r in fetchall(cur)]

    def get_by_id(self, tenant_id: int, trip_id: int) -> Optional[Trip]:
        rows = self._select("tenant_id=%s AND trip_id=%s", (int(tenant_id), int(trip_id)))
        return rows[0] if rows else None

    def search(self, *, tenant_id: int, criteria: TripSearch, page: int, page_size: int) -> tuple[list[Trip], int]:
        clauses = ["tenant_id=%s", "is_deleted=0"]
        params: list[object] = [int(tenant_id)]
        for column, value in (
            ("route_id", criteria.route_id),
            ("vehicle_id", criteria.vehicle_id),
            ("driver_id", criteria.driver_id),
        ):
            if value is not None:
                clauses.append(f"{column}=%s")
                params.append(int(value))
        if criteria.status is not None:
            clauses.append("status=%s")
            params.append(criteria.status.value)
        if criteria.date_from is not None:
            clauses.append("scheduled_start >= %s")
            params.append(_day_bounds(criteria.date_from)[0])
        if criteria.date_to is not None:
            clauses.append("scheduled_start < %s")
            params.append(_day_bounds(criteria.date_to)[1])

        where = where_sql(clauses)
        limit, limit_params = page_sql(page, page_size)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM trips WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("n", 0))
            cur.execute(
                f"SELECT {_COLUMNS} FROM trips WHERE {where} ORDER BY scheduled_start DESC {limit}",
                tuple(params) + limit_params,
            )
            return [_row_to_trip(r) for r in fetchall(cur)], total

    def list_by_route_and_date(self, tenant_id: int, route_id: int, trip_date: date) -> Sequence[Trip]:
        start, end = _day_bounds(trip_date)
        return self._select(
            "tenant_id=%s AND route_id=%s AND scheduled_start >= %s AND scheduled_start < %s",
            (int(tenant_id), int(route_id), start, end),
            "ORDER BY scheduled_start",
        )

    def list_active(self, tenant_id: int, trip_date: date) -> Sequence[Trip]:
        start, end = _day_bounds(trip_date)
        return self._select(
            "tenant_id=%s AND status=%s AND scheduled_start >= %s AND scheduled_start < %s",
            (int(tenant_id), TripStatus.IN_PROGRESS.value, start, end),
            "ORDER BY scheduled_start",
        )

    def get_in_progress_for_vehicle(self, tenant_id: int, vehicle_id: int) -> Optional[Trip]:
        rows = self._select(
            "tenant_id=%s AND vehicle_id=%s AND status=%s",
            (int(tenant_id), int(vehicle_id), TripStatus.IN_PROGRESS.value),
            "ORDER BY actual_start DESC LIMIT 1",
        )
        return rows[0] if rows else None

    def create(self, trip: Trip) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO trips(
                    tenant_id, route_id, vehicle_id, driver_id, scheduled_start, scheduled_end, actual_start,
                    actual_end, status, start_mileage, end_mileage, notes, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (int(trip.tenant_id),) + _trip_params(trip) + (datetime.now(),),
            )
            return int(cur.lastrowid)

    def update(self, trip: Trip) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE trips
                SET route_id=%s, vehicle_id=%s, driver_id=%s, scheduled_start=%s, scheduled_end=%s, actual_start=%s,
                    actual_end=%s, status=%s, start_mileage=%s, end_mileage=%s, notes=%s, updated_at=%s
                WHERE tenant_id=%s AND trip_id=%s AND is_deleted=0
                """,
                _trip_params(trip) + (datetime.now(), int(trip.tenant_id), int(trip.trip_id)),
            )
            return cur.rowcount > 0

    def soft_delete(self, *, tenant_id: int, trip_id: int, deleted_by: Optional[int]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            return soft_delete_row(cur, table="trips", id_column="trip_id", row_id=trip_id, tenant_id=tenant_id, deleted_by=deleted_by)
