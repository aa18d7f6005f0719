from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import VehicleLocation
from .repository import VehicleLocationRepository

_COLUMNS = "location_id, tenant_id, vehicle_id, trip_id, latitude, longitude, speed_kmh, heading_deg, recorded_at, is_active"


def _row_to_location(r: dict) -> VehicleLocation:
    return VehicleLocation(
        location_id=int(r["location_id"]),
        tenant_id=int(r["tenant_id"]),
        vehicle_id=int(r["vehicle_id"]),
        trip_id=r.get("trip_id"),
        latitude=float(r["latitude"]),
        longitude=float(r["longitude"]),
        speed_kmh=float(r.get("speed_kmh") or 0),
        heading_deg=float(r.get("heading_deg") or 0),
        recorded_at=r["recorded_at"],
        is_active=bool(r.get("is_active", 1)),
    )


class MySQLVehicleLocationRepository(VehicleLocationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def add(self, location: VehicleLocation) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO vehicle_locations(
                    tenant_id, vehicle_id, trip_id, latitude, longitude, speed_kmh, heading_deg, recorded_at, is_active
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(location.tenant_id),
                    int(location.vehicle_id),
                    location.trip_id,
                    location.latitude,
                    location.longitude,
                    round(location.speed_kmh, 2),
                    round(location.heading_deg, 2),
                    location.recorded_at,
                    1 if location.is_active else 0,
                ),
            )
            return int(cur.lastrowid)

    def latest(self, tenant_id: int, vehicle_id: int, *, before: Optional[datetime] = None) -> Optional[VehicleLocation]:
        clauses = "tenant_id=%s AND vehicle_id=%s"
        params: tuple = (int(tenant_id), int(vehicle_id))
        if before is not None:
            clauses += " AND recorded_at < %s"
            params += (before,)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM vehicle_locations WHERE {clauses} ORDER BY recorded_at DESC LIMIT 1", params
            )
            row = fetchone(cur)
            return _row_to_location(row) if row else None

    def latest_active(self, tenant_id: int, vehicle_id: int) -> Optional[VehicleLocation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM vehicle_locations
                WHERE tenant_id=%s AND vehicle_id=%s AND is_active=1
                ORDER BY recorded_at DESC LIMIT 1
                """,
                (int(tenant_id), int(vehicle_id)),
            )
            row = fetchone(cur)
            return _row_to_location(row) if row else None

    def average_speed_since(self, tenant_id: int, vehicle_id: int, since: datetime) -> float:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT AVG(speed_kmh) AS avg_speed FROM vehicle_locations
                WHERE tenant_id=%s AND vehicle_id=%s AND recorded_at >= %s AND speed_kmh > 0
                """,
                (int(tenant_id), int(vehicle_id), since),
            )
            row = fetchone(cur) or {}
            return float(row.get("avg_speed") or 0)

    def history(self, tenant_id: int, vehicle_id: int, start: datetime, end: datetime) -> Sequence[VehicleLocation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM vehicle_locations
                WHERE tenant_id=%s AND vehicle_id=%s AND recorded_at BETWEEN %s AND %s
                ORDER BY recorded_at
                """,
                (int(tenant_id), int(vehicle_id), start, end),
            )
            return [_row_to_location(r) for r in fetchall(cur)]

    def deactivate_vehicle(self, tenant_id: int, vehicle_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE vehicle_locations SET is_active=0 WHERE tenant_id=%s AND vehicle_id=%s AND is_active=1",
                (int(tenant_id), int(vehicle_id)),
            )
            return int(cur.rowcount or 0)

    def active_latest_per_vehicle(self, tenant_id: int) -> Sequence[VehicleLocation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM vehicle_locations l
                WHERE l.tenant_id=%s AND l.is_active=1
                  AND l.recorded_at = (
                    SELECT MAX(x.recorded_at) FROM vehicle_locations x
                    WHERE x.tenant_id = l.tenant_id AND x.vehicle_id = l.vehicle_id AND x.is_active=1
                  )
                ORDER BY l.vehicle_id
                """,
                (int(tenant_id),),
            )
            return [_row_to_location(r) for r in fetchall(cur)]
