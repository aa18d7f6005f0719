from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import RouteStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    as_float,
    db_cursor,
    fetchall,
    fetchone,
    normalize_mysql_time,
    page_sql,
    soft_delete_row,
    where_sql,
)
from .model import Route, RouteSearch, RouteStop
from .repository import RouteRepository

_ROUTE_COLUMNS = """
    route_id, tenant_id, route_number, name, description, status, start_time, end_time, distance_km,
    estimated_duration_minutes, start_location, end_location, vehicle_id, driver_id, notes
"""
_STOP_COLUMNS = """
    stop_id, tenant_id, route_id, name, address, latitude, longitude, stop_order,
    scheduled_arrival, scheduled_departure, is_active
"""


def _row_to_route(r: dict) -> Route:
    return Route(
        route_id=int(r["route_id"]),
        tenant_id=int(r["tenant_id"]),
        route_number=r["route_number"],
        name=r["name"],
        description=r.get("description"),
        status=RouteStatus(r["status"]),
        start_time=normalize_mysql_time(r["start_time"]),
        end_time=normalize_mysql_time(r["end_time"]),
        distance_km=float(r.get("distance_km") or 0),
        estimated_duration_minutes=int(r.get("estimated_duration_minutes") or 0),
        start_location=r.get("start_location"),
        end_location=r.get("end_location"),
        vehicle_id=r.get("vehicle_id"),
        driver_id=r.get("driver_id"),
        notes=r.get("notes"),
    )


def _row_to_stop(r: dict) -> RouteStop:
    return RouteStop(
        stop_id=int(r["stop_id"]),
        tenant_id=int(r["tenant_id"]),
        route_id=int(r["route_id"]),
        name=r["name"],
        address=r.get("address"),
        latitude=as_float(r["latitude"]),
        longitude=as_float(r["longitude"]),
        stop_order=int(r["stop_order"]),
        scheduled_arrival=normalize_mysql_time(r.get("scheduled_arrival")),
        scheduled_departure=normalize_mysql_time(r.get("scheduled_departure")),
        is_active=bool(r.get("is_active", True)),
    )


def _route_params(rt: Route) -> tuple:
    return (
        rt.route_number, rt.name, rt.description, rt.status.value, rt.start_time, rt.end_time, rt.distance_km,
        rt.estimated_duration_minutes, rt.start_location, rt.end_location, rt.vehicle_id, rt.driver_id, rt.notes,
    )


class MySQLRouteRepository(RouteRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _get_one(self, where: str, params: tuple) -> Optional[Route]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_ROUTE_COLUMNS} FROM routes WHERE {where} AND is_deleted=0", params)
            row = fetchone(cur)
            return _row_to_route(row) if row else None

    def get_by_id(self, tenant_id: int, route_id: int) -> Optional[Route]:
        return self._get_one("tenant_id=%s AND route_id=%s", (int(tenant_id), int(route_id)))

    def get_by_number(self, tenant_id: int, route_number: str) -> Optional[Route]:
        return self._get_one("tenant_id=%s AND route_number=%s", (int(tenant_id), route_number))

    def search(self, *, tenant_id: int, criteria: RouteSearch, page: int, page_size: int) -> tuple[list[Route], int]:
        clauses = ["tenant_id=%s", "is_deleted=0"]
        params: list[object] = [int(tenant_id)]
        if criteria.search_term:
            like = f"%{criteria.search_term}%"
            clauses.append("(route_number LIKE %s OR name LIKE %s OR description LIKE %s)")
            params.extend([like, like, like])
        if criteria.status is not None:
            clauses.append("status=%s")
            params.append(criteria.status.value)
        if criteria.vehicle_id is not None:
            clauses.append("vehicle_id=%s")
            params.append(int(criteria.vehicle_id))
        if criteria.driver_id is not None:
            clauses.append("driver_id=%s")
            params.append(int(criteria.driver_id))

        where = where_sql(clauses)
        limit, limit_params = page_sql(page, page_size)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM routes WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("n", 0))
            cur.execute(
                f"SELECT {_ROUTE_COLUMNS} FROM routes WHERE {where} ORDER BY route_number {limit}",
                tuple(params) + limit_params,
            )
            return [_row_to_route(r) for r in fetchall(cur)], total

    def create(self, route: Route) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO routes(
                    tenant_id, route_number, name, description, status, start_time, end_time, distance_km,
                    estimated_duration_minutes, start_location, end_location, vehicle_id, driver_id, notes, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (int(route.tenant_id),) + _route_params(route) + (datetime.now(),),
            )
            return int(cur.lastrowid)

    def update(self, route: Route) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE routes SET
                    route_number=%s, name=%s, description=%s, status=%s, start_time=%s, end_time=%s, distance_km=%s,
                    estimated_duration_minutes=%s, start_location=%s, end_location=%s, vehicle_id=%s, driver_id=%s,
                    notes=%s, updated_at=%s
                WHERE tenant_id=%s AND route_id=%s AND is_deleted=0
                """,
                _route_params(route) + (datetime.now(), int(route.tenant_id), int(route.route_id)),
            )
            return cur.rowcount > 0

    def soft_delete(self, *, tenant_id: int, route_id: int, deleted_by: Optional[int]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            return soft_delete_row(cur, table="routes", id_column="route_id", row_id=route_id, tenant_id=tenant_id, deleted_by=deleted_by)

    def list_stops(self, tenant_id: int, route_id: int) -> Sequence[RouteStop]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_STOP_COLUMNS} FROM route_stops
                WHERE tenant_id=%s AND route_id=%s AND is_deleted=0 AND is_active=1
                ORDER BY stop_order
                """,
                (int(tenant_id), int(route_id)),
            )
            return [_row_to_stop(r) for r in fetchall(cur)]

    def get_stop(self, tenant_id: int, stop_id: int) -> Optional[RouteStop]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_STOP_COLUMNS} FROM route_stops WHERE tenant_id=%s AND stop_id=%s AND is_deleted=0",
                (int(tenant_id), int(stop_id)),
            )
            row = fetchone(cur)
            return _row_to_stop(row) if row else None

    def add_stop(self, stop: RouteStop) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO route_stops(
                    tenant_id, route_id, name, address, latitude, longitude, stop_order,
                    scheduled_arrival, scheduled_departure, is_active, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(stop.tenant_id), int(stop.route_id), stop.name, stop.address, stop.latitude, stop.longitude,
                    int(stop.stop_order), stop.scheduled_arrival, stop.scheduled_departure, int(stop.is_active),
                    datetime.now(),
                ),
            )
            return int(cur.lastrowid)

    def remove_stop(self, *, tenant_id: int, stop_id: int, deleted_by: Optional[int]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            return soft_delete_row(cur, table="route_stops", id_column="stop_id", row_id=stop_id, tenant_id=tenant_id, deleted_by=deleted_by)
